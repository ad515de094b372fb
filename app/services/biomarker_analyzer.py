"""
Агрегация валидных сегментов в статистический отчет по биомаркерам речи.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional

from app.core.config import settings
from app.models.biomarkers import (
    HourlyPattern,
    PercentileRankings,
    SpeechSegment,
    StatisticalBiomarkers,
    TimeOfDayEffects,
    WeeklyTrend,
)
from app.models.recording import Recording
from app.models.statistics import (
    DataQualityMetrics,
    EMPTY_RESULT,
    INSUFFICIENT_TREND,
    Reliability,
    TrendAnalysis,
)
from app.services import statistics as stats
from app.services.reference_norms import ReferenceNorms
from app.services.segment_extractor import (
    FLAG_UNREALISTIC_SPEECH_RATE,
    SegmentExtractor,
)

logger = logging.getLogger(__name__)

# --------------------
# Пороги надежности и рекомендаций
# --------------------

HIGH_RELIABILITY_SEGMENTS = 100
HIGH_RELIABILITY_QUALITY = 0.8
MEDIUM_RELIABILITY_SEGMENTS = 30
MEDIUM_RELIABILITY_QUALITY = 0.6

RECOMMENDED_MEDIUM_SEGMENTS = 50
RECOMMENDED_HIGH_SEGMENTS = 100
TREND_ANALYSIS_SEGMENTS = 30
MIN_QUALITY_SCORE = 0.7
MIN_TIMESPAN_DAYS = 7

MS_PER_HOUR = 60 * 60 * 1000


class BiomarkerAnalyzer:
    """Строит StatisticalBiomarkers из записей или готовых сегментов"""

    def __init__(
        self,
        extractor: Optional[SegmentExtractor] = None,
        norms: Optional[ReferenceNorms] = None,
        tz: Optional[tzinfo] = None,
        max_pause_ms: Optional[float] = None,
        trend_min_points: Optional[int] = None,
        confidence_level: Optional[float] = None,
    ):
        self.extractor = extractor or SegmentExtractor()
        self.norms = norms or ReferenceNorms()
        self.tz = tz if tz is not None else settings.get_tzinfo()
        self.max_pause_ms = max_pause_ms if max_pause_ms is not None else settings.max_pause_ms
        self.trend_min_points = (
            trend_min_points if trend_min_points is not None else settings.trend_min_points
        )
        self.confidence_level = (
            confidence_level if confidence_level is not None else settings.confidence_level
        )

    def analyze(self, recordings: Iterable[Recording]) -> StatisticalBiomarkers:
        """Извлекает сегменты и строит отчет"""
        recordings = list(recordings)
        logger.info(f"Статистический анализ {len(recordings)} записей")
        segments = self.extractor.extract(recordings)
        return self.analyze_segments(segments)

    def analyze_segments(self, segments: List[SpeechSegment]) -> StatisticalBiomarkers:
        """
        Строит отчет по уже извлеченным сегментам.

        Невалидные сегменты учитываются только в оценке качества данных.
        Отсутствие валидных сегментов является ожидаемым исходом: возвращается
        пустой отчет, а не исключение.
        """
        segments = sorted(segments, key=lambda s: s.timestamp)
        valid = [s for s in segments if s.is_valid]

        if not valid:
            logger.info("Валидных сегментов нет, возвращаем пустой отчет")
            return self._empty_report()

        data_quality = self._assess_data_quality(segments, valid)

        speech_rate = self._summarize([s.words_per_minute for s in valid])
        pause_duration = self._summarize(self._calculate_pause_durations(valid))
        vocabulary_complexity = self._summarize(self._calculate_vocabulary_scores(valid))
        words_per_turn = self._summarize([float(s.word_count) for s in valid])

        timespan = valid[-1].timestamp - valid[0].timestamp
        reliability = self._assess_reliability(data_quality, len(valid))

        report = StatisticalBiomarkers(
            speech_rate=speech_rate,
            pause_duration=pause_duration,
            vocabulary_complexity=vocabulary_complexity,
            words_per_turn=words_per_turn,
            speech_rate_trend=self._calculate_trend(valid),
            weekly_trends=self._calculate_weekly_trends(valid),
            data_quality=data_quality,
            percentile_rankings=self.norms.rank(
                speech_rate.value, pause_duration.value, vocabulary_complexity.value
            ),
            reliability=reliability,
            minimum_data_recommendations=self._generate_recommendations(
                len(valid), data_quality, timespan
            ),
            time_of_day_effects=self._analyze_time_of_day(valid),
            analysis_date=datetime.now(timezone.utc).isoformat(),
            data_timespan=self._format_timespan(timespan),
            total_analysis_time=sum(s.duration_ms for s in valid),
        )

        logger.info(
            f"Анализ завершен: {len(valid)} валидных сегментов, "
            f"{speech_rate.value:.1f} WPM, надежность {reliability}"
        )
        return report

    def _summarize(self, values: List[float]):
        return stats.statistical_result(values, self.confidence_level)

    def _calculate_pause_durations(self, segments: List[SpeechSegment]) -> List[float]:
        """Паузы между соседними сегментами одной записи, в секундах"""
        pauses = []
        for current, following in zip(segments, segments[1:]):
            if current.recording_id != following.recording_id:
                continue
            pause_ms = following.start_offset_ms - current.end_offset_ms
            if 0 < pause_ms < self.max_pause_ms:
                pauses.append(pause_ms / 1000.0)
        return pauses

    @staticmethod
    def vocabulary_score(text: str) -> Optional[float]:
        """TTR * 10 + средняя длина слова * 0.5"""
        words = [w for w in text.split() if w]
        if not words:
            return None
        ttr = len({w.lower() for w in words}) / len(words)
        avg_word_length = sum(len(w) for w in words) / len(words)
        return ttr * 10 + avg_word_length * 0.5

    def _calculate_vocabulary_scores(self, segments: List[SpeechSegment]) -> List[float]:
        scores = (self.vocabulary_score(s.content) for s in segments)
        return [score for score in scores if score is not None]

    def _calculate_trend(self, segments: List[SpeechSegment]) -> TrendAnalysis:
        """Регрессия WPM по часам от первого сегмента"""
        if len(segments) < self.trend_min_points:
            return INSUFFICIENT_TREND

        start = segments[0].timestamp
        hours = [(s.timestamp - start).total_seconds() * 1000 / MS_PER_HOUR for s in segments]
        rates = [s.words_per_minute for s in segments]
        return stats.linear_regression(hours, rates)

    def _local(self, moment: datetime) -> datetime:
        # при tz=None используется локальный пояс хоста
        return moment.astimezone(self.tz)

    def week_start(self, moment: datetime) -> str:
        """ISO-дата последнего воскресенья (локальная полночь)"""
        local = self._local(moment)
        days_since_sunday = (local.weekday() + 1) % 7
        return (local.date() - timedelta(days=days_since_sunday)).isoformat()

    def _calculate_weekly_trends(self, segments: List[SpeechSegment]) -> List[WeeklyTrend]:
        weekly: Dict[str, List[float]] = defaultdict(list)
        for segment in segments:
            weekly[self.week_start(segment.timestamp)].append(segment.words_per_minute)

        return [
            WeeklyTrend(
                week=week,
                speech_rate=self._summarize(rates),
                segment_count=len(rates),
            )
            for week, rates in sorted(weekly.items())
        ]

    def _analyze_time_of_day(self, segments: List[SpeechSegment]) -> TimeOfDayEffects:
        """Средний WPM по часам суток и упрощенная проверка вариации"""
        hourly: Dict[int, List[float]] = defaultdict(list)
        for segment in segments:
            hourly[self._local(segment.timestamp).hour].append(segment.words_per_minute)

        pattern = [
            HourlyPattern(
                hour=hour,
                mean_wpm=stats.mean(rates),
                confidence_interval=stats.confidence_interval(rates, self.confidence_level),
                segment_count=len(rates),
            )
            for hour, rates in sorted(hourly.items())
        ]

        f_statistic, p_value = stats.variance_ratio_test(list(hourly.values()))
        return TimeOfDayEffects(
            pattern=pattern,
            f_statistic=f_statistic,
            significant_variation=p_value < 0.05,
            p_value=p_value,
        )

    @staticmethod
    def _assess_data_quality(
        all_segments: List[SpeechSegment],
        valid_segments: List[SpeechSegment],
    ) -> DataQualityMetrics:
        outliers = [s for s in all_segments if FLAG_UNREALISTIC_SPEECH_RATE in s.quality_flags]
        return stats.assess_data_quality(
            [s.words_per_minute for s in all_segments],
            [s.words_per_minute for s in valid_segments],
            [s.words_per_minute for s in outliers],
        )

    @staticmethod
    def _assess_reliability(data_quality: DataQualityMetrics, valid_count: int) -> Reliability:
        if valid_count >= HIGH_RELIABILITY_SEGMENTS and data_quality.quality_score >= HIGH_RELIABILITY_QUALITY:
            return "high"
        if valid_count >= MEDIUM_RELIABILITY_SEGMENTS and data_quality.quality_score >= MEDIUM_RELIABILITY_QUALITY:
            return "medium"
        return "low"

    @staticmethod
    def _generate_recommendations(
        valid_count: int,
        data_quality: DataQualityMetrics,
        timespan: timedelta,
    ) -> List[str]:
        """Рекомендации по сбору данных (детерминированный список)"""
        recommendations: List[str] = []

        if valid_count < RECOMMENDED_MEDIUM_SEGMENTS:
            recommendations.append(
                f"Collect more data: Need {RECOMMENDED_MEDIUM_SEGMENTS - valid_count} "
                f"additional valid segments for medium reliability"
            )

        if valid_count < RECOMMENDED_HIGH_SEGMENTS:
            recommendations.append(
                f"For high reliability: Need {RECOMMENDED_HIGH_SEGMENTS - valid_count} "
                f"additional valid segments"
            )

        if data_quality.quality_score < MIN_QUALITY_SCORE:
            recommendations.append("Improve data quality: High rate of invalid segments detected")

        if valid_count < TREND_ANALYSIS_SEGMENTS:
            recommendations.append(
                f"Insufficient data for trend analysis: Need minimum {TREND_ANALYSIS_SEGMENTS} segments"
            )

        if timespan < timedelta(days=MIN_TIMESPAN_DAYS):
            recommendations.append(
                "Collect data over longer period: Need minimum 1 week for reliable patterns"
            )

        return recommendations

    @staticmethod
    def _format_timespan(timespan: timedelta) -> str:
        days = timespan.days
        hours = timespan.seconds // 3600
        if days > 0:
            return f"{days} days, {hours} hours"
        return f"{hours} hours"

    @staticmethod
    def _empty_report() -> StatisticalBiomarkers:
        """Отчет-сентинел для случая без валидных данных"""
        return StatisticalBiomarkers(
            speech_rate=EMPTY_RESULT,
            pause_duration=EMPTY_RESULT,
            vocabulary_complexity=EMPTY_RESULT,
            words_per_turn=EMPTY_RESULT,
            speech_rate_trend=INSUFFICIENT_TREND,
            weekly_trends=[],
            data_quality=DataQualityMetrics(
                total_segments=0,
                valid_segments=0,
                outliers=0,
                quality_score=0.0,
                reliability="low",
            ),
            percentile_rankings=PercentileRankings(),
            reliability="low",
            minimum_data_recommendations=["No valid data found"],
            time_of_day_effects=TimeOfDayEffects(),
            analysis_date=datetime.now(timezone.utc).isoformat(),
            data_timespan="No data",
            total_analysis_time=0.0,
        )
