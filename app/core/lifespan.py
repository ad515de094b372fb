import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Инициализация синглтонов при старте.
    Эталонные выборки строятся заранее, чтобы первый запрос не ждал numpy.
    """
    logger.info("🚀 Запуск Speech Biomarkers API")

    from app.api.deps import get_analyzer, get_baseline_tracker

    analyzer = get_analyzer()
    analyzer.norms.rank(0.0, 0.0, 0.0)
    get_baseline_tracker()
    app.state.initialized = True

    logger.info(
        f"✅ Приложение готово (timezone={settings.timezone or 'local'}, "
        f"reference_sample_size={settings.reference_sample_size})"
    )
    try:
        yield
    finally:
        store = get_baseline_tracker().store
        logger.info(f"🛑 Завершение работы, baseline в памяти: {len(store.user_ids())}")
