import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_analyzer
from app.core.validators import RequestValidator
from app.models.biomarkers import StatisticalBiomarkers
from app.models.requests import AnalyzeRequest

router = APIRouter(prefix="/api/v1/biomarkers", tags=["biomarkers"])
logger = logging.getLogger(__name__)


@router.post(
    "/analyze",
    response_model=StatisticalBiomarkers,
    summary="Статистические биомаркеры речи по записям",
    description="""
    Извлекает реплики владельца записи, отбрасывает невалидные сегменты и
    возвращает средние с доверительными интервалами, тренд темпа речи,
    недельную динамику, эффекты времени суток и оценку качества данных.

    Отсутствие валидных данных не является ошибкой: возвращается пустой
    отчет с рекомендацией собрать больше данных.
    """,
    responses={
        200: {"description": "Отчет построен"},
        413: {"description": "Слишком много записей в запросе"},
        422: {"description": "Некорректное тело запроса"},
    },
)
def analyze_biomarkers(
    request: AnalyzeRequest,
    analyzer=Depends(get_analyzer),
) -> StatisticalBiomarkers:
    RequestValidator.validate_recordings_count(request.recordings)
    logger.info(f"Запрос анализа биомаркеров: {len(request.recordings)} записей")
    return analyzer.analyze(request.recordings)
