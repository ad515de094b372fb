"""
Сервисы анализа речевых биомаркеров.
"""
from app.services.segment_extractor import SegmentExtractor
from app.services.reference_norms import ReferenceNorms
from app.services.biomarker_analyzer import BiomarkerAnalyzer
from app.services.baseline_store import BaselineStore, InMemoryBaselineStore
from app.services.baseline_tracker import (
    PersonalBaselineTracker,
    select_context_bucket,
    select_time_bucket,
)

__all__ = [
    # Извлечение и агрегация
    "SegmentExtractor",
    "ReferenceNorms",
    "BiomarkerAnalyzer",

    # Baseline
    "BaselineStore",
    "InMemoryBaselineStore",
    "PersonalBaselineTracker",
    "select_time_bucket",
    "select_context_bucket",
]
