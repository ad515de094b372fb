import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import app` works during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models.baseline import FeatureSummary  # noqa: E402
from app.models.biomarkers import SpeechSegment, StatisticalBiomarkers  # noqa: E402
from app.models.recording import ContentNode, Recording  # noqa: E402
from app.models.statistics import (  # noqa: E402
    DataQualityMetrics,
    INSUFFICIENT_TREND,
    StatisticalResult,
)
from app.services.baseline_store import InMemoryBaselineStore  # noqa: E402
from app.services.baseline_tracker import PersonalBaselineTracker  # noqa: E402
from app.services.biomarker_analyzer import BiomarkerAnalyzer  # noqa: E402
from app.services.reference_norms import ReferenceNorms  # noqa: E402
from app.services.segment_extractor import SegmentExtractor  # noqa: E402

# Понедельник, 09:00 UTC
MONDAY_MORNING = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
HOUR_MS = 60 * 60 * 1000


def make_node(content, start_ms, end_ms, speaker="user", children=None, name="Me"):
    return ContentNode(
        type="blockquote",
        content=content,
        speaker_name=name,
        speaker_identifier=speaker,
        start_offset_ms=start_ms,
        end_offset_ms=end_ms,
        children=children or [],
    )


def make_recording(rec_id, nodes, start=MONDAY_MORNING):
    return Recording(
        id=rec_id,
        title=f"Recording {rec_id}",
        start_time=start,
        end_time=start + timedelta(hours=8),
        contents=nodes,
    )


def make_segment(wpm, timestamp, recording_id="r1", start_ms=0.0, duration_ms=60000.0):
    """Валидный сегмент с заданным темпом: wpm слов за одну минуту"""
    word_count = int(wpm)
    return SpeechSegment(
        content=" ".join(["word"] * word_count),
        start_offset_ms=start_ms,
        end_offset_ms=start_ms + duration_ms,
        duration_ms=duration_ms,
        word_count=word_count,
        words_per_minute=word_count / (duration_ms / 60000.0),
        timestamp=timestamp,
        recording_id=recording_id,
        speaker_name="Me",
        is_valid=True,
        quality_flags=[],
    )


def hourly_segments(rates, start=MONDAY_MORNING, recording_id="r1"):
    """Сегменты одной записи с интервалом в час"""
    return [
        make_segment(
            rate,
            start + timedelta(hours=i),
            recording_id=recording_id,
            start_ms=i * HOUR_MS,
        )
        for i, rate in enumerate(rates)
    ]


def make_result(value, se=0.0, n=50):
    return StatisticalResult(
        value=value,
        confidence_interval=(value - 1.96 * se, value + 1.96 * se),
        standard_error=se,
        sample_size=n,
    )


def make_biomarkers(speech_rate=140.0, se=2.0, n=50, pause=1.0, vocabulary=6.0):
    return StatisticalBiomarkers(
        speech_rate=make_result(speech_rate, se, n),
        pause_duration=make_result(pause, 0.1, n),
        vocabulary_complexity=make_result(vocabulary, 0.2, n),
        words_per_turn=make_result(12.0, 1.0, n),
        speech_rate_trend=INSUFFICIENT_TREND,
        data_quality=DataQualityMetrics(
            total_segments=n,
            valid_segments=n,
            outliers=0,
            quality_score=1.0,
            reliability="high",
        ),
        reliability="medium",
        analysis_date=MONDAY_MORNING.isoformat(),
        data_timespan="1 days, 0 hours",
        total_analysis_time=n * 60000.0,
    )


def make_features(**overrides):
    values = dict(
        fluency_score=75.0,
        energy_level=70.0,
        disfluency_rate=2.0,
        rhythm_consistency=0.8,
        cognitive_load=0.3,
        recovery_rate=15.0,
        predicted_high_point="10:00",
        predicted_low_point="15:00",
    )
    values.update(overrides)
    return FeatureSummary(**values)


@pytest.fixture
def extractor():
    return SegmentExtractor(
        min_words=3, min_duration_ms=500, min_wpm=30, max_wpm=400, min_chars=10
    )


@pytest.fixture
def analyzer(extractor):
    return BiomarkerAnalyzer(
        extractor=extractor,
        norms=ReferenceNorms(sample_size=1000, seed=42),
        tz=timezone.utc,
    )


@pytest.fixture
def store():
    return InMemoryBaselineStore()


@pytest.fixture
def tracker(store):
    return PersonalBaselineTracker(
        store=store, tz=timezone.utc, ema_max_alpha=0.3, ema_segment_scale=100
    )
