from datetime import timedelta, timezone

import pytest

from app.services.biomarker_analyzer import BiomarkerAnalyzer
from app.services.reference_norms import (
    PAUSE_DURATION_NORM,
    SPEECH_RATE_NORM,
    ReferenceNorms,
)
from app.services.statistics import DEGENERATE_F_STATISTIC
from conftest import (
    MONDAY_MORNING,
    hourly_segments,
    make_node,
    make_recording,
    make_segment,
)

SCENARIO_RATES = [120, 130, 125, 128, 122, 131]


def test_six_segment_scenario(analyzer):
    report = analyzer.analyze_segments(hourly_segments(SCENARIO_RATES))

    assert report.speech_rate.value == pytest.approx(126.0)
    assert report.speech_rate.sample_size == 6
    low, high = report.speech_rate.confidence_interval
    assert low <= 126.0 <= high
    assert report.speech_rate_trend.significance != "insufficient_data"
    assert report.data_quality.valid_segments == 6
    assert report.reliability == "low"


def test_trend_requires_five_points(analyzer):
    report = analyzer.analyze_segments(hourly_segments([120, 130, 125, 128]))
    assert report.speech_rate_trend.significance == "insufficient_data"
    assert report.speech_rate_trend.slope == 0.0


def test_report_metadata(analyzer):
    report = analyzer.analyze_segments(hourly_segments(SCENARIO_RATES))

    assert report.data_timespan == "5 hours"
    assert report.total_analysis_time == pytest.approx(6 * 60000.0)
    assert report.words_per_turn.value == pytest.approx(126.0)
    assert report.analysis_date.endswith("+00:00")


def test_timespan_with_days(analyzer):
    segments = [
        make_segment(120, MONDAY_MORNING),
        make_segment(125, MONDAY_MORNING + timedelta(days=2, hours=3), recording_id="r2"),
    ]
    assert analyzer.analyze_segments(segments).data_timespan == "2 days, 3 hours"


def test_recommendations_for_small_sample(analyzer):
    report = analyzer.analyze_segments(hourly_segments(SCENARIO_RATES))
    assert report.minimum_data_recommendations == [
        "Collect more data: Need 44 additional valid segments for medium reliability",
        "For high reliability: Need 94 additional valid segments",
        "Insufficient data for trend analysis: Need minimum 30 segments",
        "Collect data over longer period: Need minimum 1 week for reliable patterns",
    ]


def test_low_quality_recommendation(analyzer):
    valid = hourly_segments(SCENARIO_RATES)
    invalid = [
        s.model_copy(update={"is_valid": False, "quality_flags": ["too_few_words"]})
        for s in hourly_segments([10, 10, 10, 10, 10, 10], recording_id="noise")
    ]
    report = analyzer.analyze_segments(valid + invalid)

    assert report.data_quality.total_segments == 12
    assert report.data_quality.quality_score == pytest.approx(0.5)
    assert "Improve data quality: High rate of invalid segments detected" in (
        report.minimum_data_recommendations
    )
    # невалидные сегменты не влияют на средние
    assert report.speech_rate.value == pytest.approx(126.0)


def test_pauses_only_within_same_recording(analyzer):
    first = make_segment(120, MONDAY_MORNING, recording_id="a", start_ms=0, duration_ms=3000)
    other = make_segment(
        120, MONDAY_MORNING + timedelta(seconds=5), recording_id="b",
        start_ms=5000, duration_ms=3000,
    )
    report = analyzer.analyze_segments([first, other])
    assert report.pause_duration.sample_size == 0

    same = make_segment(
        120, MONDAY_MORNING + timedelta(seconds=5), recording_id="a",
        start_ms=5000, duration_ms=3000,
    )
    report = analyzer.analyze_segments([first, same])
    assert report.pause_duration.sample_size == 1
    assert report.pause_duration.value == pytest.approx(2.0)


def test_long_gaps_are_not_pauses(analyzer):
    report = analyzer.analyze_segments(hourly_segments(SCENARIO_RATES))
    assert report.pause_duration.sample_size == 0


def test_explicit_zero_pause_limit_disables_pauses(extractor):
    analyzer = BiomarkerAnalyzer(
        extractor=extractor, norms=ReferenceNorms(), tz=timezone.utc, max_pause_ms=0
    )
    first = make_segment(120, MONDAY_MORNING, start_ms=0, duration_ms=3000)
    second = make_segment(120, MONDAY_MORNING + timedelta(seconds=5), start_ms=5000, duration_ms=3000)

    assert analyzer.max_pause_ms == 0
    assert analyzer.analyze_segments([first, second]).pause_duration.sample_size == 0


def test_empty_report_without_valid_segments(analyzer):
    recording = make_recording("r1", [make_node("um", 0, 300)])
    report = analyzer.analyze([recording])

    assert report.speech_rate.value == 0.0
    assert report.speech_rate.sample_size == 0
    assert report.speech_rate_trend.significance == "insufficient_data"
    assert report.weekly_trends == []
    assert report.minimum_data_recommendations == ["No valid data found"]
    assert report.data_timespan == "No data"
    assert report.reliability == "low"
    assert report.percentile_rankings.speech_rate == 50


def test_weekly_trends_start_on_sunday(analyzer):
    saturday = MONDAY_MORNING + timedelta(days=5)
    sunday = MONDAY_MORNING + timedelta(days=6)
    segments = [
        make_segment(120, MONDAY_MORNING),
        make_segment(130, saturday, recording_id="r2"),
        make_segment(140, sunday, recording_id="r3"),
    ]
    weekly = analyzer.analyze_segments(segments).weekly_trends

    assert [w.week for w in weekly] == ["2024-03-03", "2024-03-10"]
    assert [w.segment_count for w in weekly] == [2, 1]
    assert weekly[0].speech_rate.value == pytest.approx(125.0)


def test_time_of_day_uses_configured_timezone(extractor):
    plus_three = timezone(timedelta(hours=3))
    analyzer = BiomarkerAnalyzer(extractor=extractor, norms=ReferenceNorms(), tz=plus_three)
    late_evening_utc = MONDAY_MORNING.replace(hour=22)
    segments = [make_segment(120, late_evening_utc), make_segment(124, MONDAY_MORNING, recording_id="r2")]

    pattern = analyzer.analyze_segments(segments).time_of_day_effects.pattern
    assert [p.hour for p in pattern] == [1, 12]


def test_time_of_day_variation(analyzer):
    morning = [make_segment(r, MONDAY_MORNING + timedelta(minutes=i), recording_id=f"m{i}")
               for i, r in enumerate([100, 102, 98])]
    evening = [make_segment(r, MONDAY_MORNING.replace(hour=19) + timedelta(minutes=i), recording_id=f"e{i}")
               for i, r in enumerate([160, 158, 162])]
    effects = analyzer.analyze_segments(morning + evening).time_of_day_effects

    assert [p.hour for p in effects.pattern] == [9, 19]
    assert effects.pattern[0].mean_wpm == pytest.approx(100.0)
    assert effects.pattern[1].segment_count == 3
    assert effects.significant_variation
    assert effects.p_value == 0.01


def test_constant_hours_with_different_rates_are_significant(analyzer):
    nine = [make_segment(100, MONDAY_MORNING + timedelta(minutes=i), recording_id=f"n{i}") for i in range(2)]
    noon = [make_segment(200, MONDAY_MORNING.replace(hour=12) + timedelta(minutes=i), recording_id=f"d{i}")
            for i in range(2)]
    effects = analyzer.analyze_segments(nine + noon).time_of_day_effects

    assert effects.significant_variation
    assert effects.p_value == 0.01
    assert effects.f_statistic == DEGENERATE_F_STATISTIC


def test_vocabulary_score():
    assert BiomarkerAnalyzer.vocabulary_score("one two three") == pytest.approx(10 + (11 / 3) * 0.5)
    assert BiomarkerAnalyzer.vocabulary_score("go go go go") == pytest.approx(2.5 + 1.0)
    assert BiomarkerAnalyzer.vocabulary_score("   ") is None


def test_analyze_from_recordings(analyzer):
    nodes = [
        make_node("I think we should start the review now", 0, 4000),
        make_node("Other speaker interrupts here briefly", 4500, 6000, speaker=None),
        make_node("Then we can finish the remaining items", 7000, 11000),
    ]
    report = analyzer.analyze([make_recording("r1", nodes)])

    assert report.speech_rate.sample_size == 2
    assert report.pause_duration.sample_size == 1
    assert report.pause_duration.value == pytest.approx(3.0)
    assert report.vocabulary_complexity.sample_size == 2


def test_percentiles_are_deterministic(analyzer):
    segments = hourly_segments(SCENARIO_RATES)
    first = analyzer.analyze_segments(segments).percentile_rankings
    second = analyzer.analyze_segments(segments).percentile_rankings

    assert first == second
    assert 0 <= first.speech_rate < 50


def test_reference_samples_are_seeded():
    norms = ReferenceNorms(sample_size=200, seed=7)
    assert norms.sample(SPEECH_RATE_NORM) == ReferenceNorms(sample_size=200, seed=7).sample(SPEECH_RATE_NORM)
    assert len(norms.sample(PAUSE_DURATION_NORM)) == 200
    assert norms.sample(SPEECH_RATE_NORM) != ReferenceNorms(sample_size=200, seed=8).sample(SPEECH_RATE_NORM)
