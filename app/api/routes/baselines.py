import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_analyzer, get_baseline_tracker
from app.core.validators import RequestValidator
from app.core.exceptions import BaselineNotFoundError
from app.models.baseline import DeviationAnalysis, PersonalBaseline
from app.models.requests import BaselineRequest

router = APIRouter(prefix="/api/v1/baselines", tags=["baselines"])
logger = logging.getLogger(__name__)


@router.get(
    "/{user_id}",
    response_model=PersonalBaseline,
    summary="Текущий персональный baseline",
    responses={404: {"description": "Baseline еще не создан"}},
)
def get_baseline(
    user_id: str,
    tracker=Depends(get_baseline_tracker),
) -> PersonalBaseline:
    baseline = tracker.get_baseline(user_id)
    if baseline is None:
        raise BaselineNotFoundError(user_id)
    return baseline


@router.post(
    "/{user_id}",
    response_model=PersonalBaseline,
    summary="Создать или обновить baseline",
    description="""
    Анализирует записи и вливает результат в baseline пользователя.
    Первый вызов создает baseline, последующие обновляют его
    экспоненциальным скользящим средним.
    """,
    responses={413: {"description": "Слишком много записей в запросе"}},
)
def update_baseline(
    user_id: str,
    request: BaselineRequest,
    analyzer=Depends(get_analyzer),
    tracker=Depends(get_baseline_tracker),
) -> PersonalBaseline:
    RequestValidator.validate_recordings_count(request.recordings)
    biomarkers = analyzer.analyze(request.recordings)
    return tracker.update_baseline(user_id, biomarkers, request.features)


@router.post(
    "/{user_id}/deviation",
    response_model=DeviationAnalysis,
    summary="Отклонение текущих показателей от baseline",
    description="""
    Сравнивает текущие записи и сводку признаков с персональным baseline.
    Baseline не изменяется. Если baseline еще нет, возвращается
    незначимый результат с рекомендацией продолжить сбор данных.
    """,
    responses={413: {"description": "Слишком много записей в запросе"}},
)
def analyze_deviation(
    user_id: str,
    request: BaselineRequest,
    analyzer=Depends(get_analyzer),
    tracker=Depends(get_baseline_tracker),
) -> DeviationAnalysis:
    RequestValidator.validate_recordings_count(request.recordings)
    biomarkers = analyzer.analyze(request.recordings)
    analysis = tracker.analyze_deviation(user_id, biomarkers, request.features)
    logger.info(
        f"Отклонение для {user_id}: significant={analysis.is_significant}, "
        f"score={analysis.deviation_score:.1f}"
    )
    return analysis
