import logging
from functools import lru_cache

from app.services.baseline_store import BaselineStore, InMemoryBaselineStore
from app.services.baseline_tracker import PersonalBaselineTracker
from app.services.biomarker_analyzer import BiomarkerAnalyzer
from app.services.reference_norms import ReferenceNorms
from app.services.segment_extractor import SegmentExtractor

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_segment_extractor() -> SegmentExtractor:
    """Создает экстрактор сегментов с порогами из настроек"""
    return SegmentExtractor()


@lru_cache(maxsize=1)
def get_analyzer() -> BiomarkerAnalyzer:
    """Создает агрегатор биомаркеров"""
    return BiomarkerAnalyzer(extractor=get_segment_extractor(), norms=ReferenceNorms())


@lru_cache(maxsize=1)
def get_baseline_store() -> BaselineStore:
    """Создает хранилище baseline (в памяти процесса)"""
    logger.info("Используется InMemoryBaselineStore")
    return InMemoryBaselineStore()


@lru_cache(maxsize=1)
def get_baseline_tracker() -> PersonalBaselineTracker:
    """Создает трекер персонального baseline"""
    return PersonalBaselineTracker(store=get_baseline_store())
