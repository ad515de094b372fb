"""
Персональный baseline пользователя и анализ отклонений от него.

Жизненный цикл на пользователя: нет baseline -> создан -> обновляется
(EMA по каждому вызову). Анализ отклонений только читает baseline.
"""
import logging
import math
import threading
from datetime import datetime, timezone, tzinfo
from typing import Dict, List, Optional

from app.core.config import settings
from app.models.baseline import (
    AlertThresholds,
    BaselineMetrics,
    CognitiveThreshold,
    ContextBucket,
    ContextualNorms,
    DeviationAnalysis,
    FeatureSummary,
    HealthIndicators,
    LevelThreshold,
    MetricDeviation,
    MetricNorm,
    PersonalBaseline,
    PersonalPatterns,
    SpeechRateThreshold,
    TimeBasedNorms,
    TimeBucket,
    TRACKED_METRICS,
)
from app.models.biomarkers import StatisticalBiomarkers
from app.models.statistics import StatisticalResult
from app.services import statistics as stats
from app.services.baseline_store import BaselineStore, InMemoryBaselineStore

logger = logging.getLogger(__name__)

# Начальные оценки СКО и полуширины диапазона для сигналов,
# по которым при создании есть только одно значение
INITIAL_SPREAD = {
    "fluency_score": (10.0, 15.0),
    "energy_level": (15.0, 20.0),
    "disfluency_rate": (2.0, 3.0),
    "rhythm_consistency": (0.1, 0.15),
}

ENERGY_CRITICAL = 30.0
ENERGY_WARNING = 40.0
FLUENCY_CRITICAL = 50.0
FLUENCY_WARNING = 60.0
COGNITIVE_OVERLOAD = 0.8
COGNITIVE_CONCERN = 0.6

CRITICAL_Z = 2.0
MIN_AFFECTED_FOR_SIGNIFICANCE = 2
MIN_AFFECTED_FOR_REST = 3
RESILIENCE_SCALE = 20.0

STABILITY_METRICS = ("speech_rate", "fluency_score", "energy_level")
DAY_BUCKETS = (TimeBucket.MORNING, TimeBucket.AFTERNOON, TimeBucket.EVENING)

NO_BASELINE_INTERPRETATION = "No baseline established yet. More data needed."
INSUFFICIENT_DATA_INTERPRETATION = "Not enough valid speech in this period to compare with baseline."
NOMINAL_INTERPRETATION = "Performance within normal personal range."


def select_time_bucket(hour: int) -> TimeBucket:
    """
    Корзина времени суток по локальному часу.

    Ночные часы (0-5) не имеют своей корзины: для них используется
    только "overall".
    """
    if 6 <= hour < 12:
        return TimeBucket.MORNING
    if 12 <= hour < 18:
        return TimeBucket.AFTERNOON
    if 18 <= hour < 24:
        return TimeBucket.EVENING
    return TimeBucket.OVERALL


def select_context_bucket(moment: datetime) -> ContextBucket:
    """Weekend для субботы и воскресенья, иначе workday"""
    return ContextBucket.WEEKEND if moment.weekday() >= 5 else ContextBucket.WORKDAY


class PersonalBaselineTracker:
    """Создание, EMA-обновление и проверка отклонений персонального baseline"""

    def __init__(
        self,
        store: Optional[BaselineStore] = None,
        tz: Optional[tzinfo] = None,
        ema_max_alpha: Optional[float] = None,
        ema_segment_scale: Optional[float] = None,
    ):
        self.store = store if store is not None else InMemoryBaselineStore()
        self.tz = tz if tz is not None else settings.get_tzinfo()
        self.ema_max_alpha = ema_max_alpha if ema_max_alpha is not None else settings.ema_max_alpha
        self.ema_segment_scale = (
            ema_segment_scale if ema_segment_scale is not None else settings.ema_segment_scale
        )

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # --------------------
    # Публичный API
    # --------------------

    def get_baseline(self, user_id: str) -> Optional[PersonalBaseline]:
        return self.store.get(user_id)

    def update_baseline(
        self,
        user_id: str,
        biomarkers: StatisticalBiomarkers,
        features: FeatureSummary,
        segment_count: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PersonalBaseline:
        """
        Создает baseline при первом вызове, иначе смешивает текущие
        значения с сохраненными через EMA.

        Args:
            user_id: Идентификатор пользователя
            biomarkers: Отчет агрегатора за текущий период
            features: Сводка внешних анализаторов
            segment_count: Объем новых данных (по умолчанию число валидных сегментов)
            now: Момент обновления (по умолчанию текущее время)

        Returns:
            Сохраненный baseline
        """
        now = self._now(now)
        if segment_count is None:
            segment_count = biomarkers.data_quality.valid_segments

        # чтение-изменение-запись одного пользователя не должны пересекаться
        with self._user_lock(user_id):
            existing = self.store.get(user_id)
            if existing is None:
                baseline = self._create_baseline(user_id, biomarkers, features, segment_count, now)
                logger.info(
                    f"Создан baseline ({segment_count} сегментов)",
                    extra={"user_id": user_id},
                )
            else:
                baseline = self._update_existing(existing, biomarkers, features, segment_count, now)
                logger.info(
                    f"Обновлен baseline: всего точек {baseline.data_points}",
                    extra={"user_id": user_id},
                )
            self.store.put(baseline)

        return baseline

    def analyze_deviation(
        self,
        user_id: str,
        biomarkers: StatisticalBiomarkers,
        features: FeatureSummary,
        now: Optional[datetime] = None,
    ) -> DeviationAnalysis:
        """Сравнивает текущие значения с baseline; baseline не изменяется"""
        baseline = self.store.get(user_id)
        if baseline is None:
            return DeviationAnalysis(
                is_significant=False,
                deviation_score=0.0,
                affected_metrics=[],
                interpretation=NO_BASELINE_INTERPRETATION,
                recommendations=["Continue monitoring to establish personal baseline"],
            )

        local_now = self._now(now).astimezone(self.tz)
        time_bucket = select_time_bucket(local_now.hour)
        context_bucket = select_context_bucket(local_now)
        logger.debug(
            f"Отклонения для {user_id}: корзины {time_bucket.value}/{context_bucket.value}"
        )

        if biomarkers.speech_rate.sample_size == 0:
            return DeviationAnalysis(
                is_significant=False,
                deviation_score=0.0,
                affected_metrics=[],
                interpretation=INSUFFICIENT_DATA_INTERPRETATION,
                recommendations=["Collect more valid speech before comparing with your baseline"],
                time_bucket=time_bucket,
                context_bucket=context_bucket,
            )

        deviations = self._calculate_deviations(
            biomarkers, features, baseline.time_norm(time_bucket), baseline.alert_thresholds
        )
        analysis = self._build_analysis(deviations, baseline)
        analysis.time_bucket = time_bucket
        analysis.context_bucket = context_bucket
        return analysis

    def ema_alpha(self, segment_count: int) -> float:
        """Вес новых данных: растет с числом сегментов, ограничен ema_max_alpha"""
        if self.ema_segment_scale <= 0:
            return self.ema_max_alpha
        return min(self.ema_max_alpha, max(0, segment_count) / self.ema_segment_scale)

    @staticmethod
    def blend_norm(norm: MetricNorm, current: float, alpha: float) -> None:
        """EMA-обновление одной нормы (на месте)"""
        norm.mean = (1 - alpha) * norm.mean + alpha * current
        low, high = norm.range
        norm.range = (min(low, current), max(high, current))
        deviation_sq = (current - norm.mean) ** 2
        norm.std_dev = math.sqrt((1 - alpha) * norm.std_dev ** 2 + alpha * deviation_sq)

    # --------------------
    # Создание и обновление
    # --------------------

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now

    @staticmethod
    def _current_values(
        biomarkers: StatisticalBiomarkers,
        features: FeatureSummary,
    ) -> Dict[str, float]:
        """Текущие значения метрик; метрики отчета без выборки не включаются"""
        values = {
            metric: result.value
            for metric, result in (
                ("speech_rate", biomarkers.speech_rate),
                ("pause_duration", biomarkers.pause_duration),
                ("vocabulary_complexity", biomarkers.vocabulary_complexity),
            )
            if result.sample_size > 0
        }
        values.update(
            fluency_score=features.fluency_score,
            energy_level=features.energy_level,
            disfluency_rate=features.disfluency_rate,
            rhythm_consistency=features.rhythm_consistency,
        )
        return values

    @staticmethod
    def _measured_norm(result: StatisticalResult) -> MetricNorm:
        # СКО восстанавливается из стандартной ошибки: SE * sqrt(n)
        return MetricNorm(
            mean=result.value,
            std_dev=result.standard_error * math.sqrt(result.sample_size),
            range=result.confidence_interval,
        )

    def _initial_metrics(
        self,
        biomarkers: StatisticalBiomarkers,
        values: Dict[str, float],
    ) -> BaselineMetrics:
        norms = {
            "speech_rate": self._measured_norm(biomarkers.speech_rate),
            "pause_duration": self._measured_norm(biomarkers.pause_duration),
            "vocabulary_complexity": self._measured_norm(biomarkers.vocabulary_complexity),
        }
        for metric, (std_dev, half_width) in INITIAL_SPREAD.items():
            value = values[metric]
            low = value - half_width
            if metric == "disfluency_rate":
                low = max(0.0, low)
            norms[metric] = MetricNorm(mean=value, std_dev=std_dev, range=(low, value + half_width))
        return BaselineMetrics(**norms)

    def _create_baseline(
        self,
        user_id: str,
        biomarkers: StatisticalBiomarkers,
        features: FeatureSummary,
        segment_count: int,
        now: datetime,
    ) -> PersonalBaseline:
        values = self._current_values(biomarkers, features)
        initial = self._initial_metrics(biomarkers, values)

        # Каждая корзина получает отдельную копию
        time_norms = TimeBasedNorms(
            **{bucket.value: initial.model_copy(deep=True) for bucket in TimeBucket}
        )
        contextual_norms = ContextualNorms(
            **{bucket.value: initial.model_copy(deep=True) for bucket in ContextBucket}
        )

        speech_rate = biomarkers.speech_rate
        margin = 2 * speech_rate.standard_error
        alert_thresholds = AlertThresholds(
            speech_rate=SpeechRateThreshold(
                lower=speech_rate.value - margin,
                upper=speech_rate.value + margin,
            ),
            energy=LevelThreshold(critical=ENERGY_CRITICAL, warning=ENERGY_WARNING),
            fluency=LevelThreshold(critical=FLUENCY_CRITICAL, warning=FLUENCY_WARNING),
            cognitive=CognitiveThreshold(overload=COGNITIVE_OVERLOAD, concern=COGNITIVE_CONCERN),
        )

        patterns = PersonalPatterns(recovery_duration=features.recovery_rate)
        self._apply_predicted_points(patterns, features)

        timestamp = now.isoformat()
        return PersonalBaseline(
            user_id=user_id,
            established_date=timestamp,
            last_updated=timestamp,
            data_points=segment_count,
            time_based_norms=time_norms,
            contextual_norms=contextual_norms,
            personal_patterns=patterns,
            alert_thresholds=alert_thresholds,
            health_indicators=HealthIndicators(
                resilience=self._resilience(features),
                variability_index=(
                    speech_rate.standard_error / speech_rate.value if speech_rate.value else 0.0
                ),
            ),
        )

    def _update_existing(
        self,
        baseline: PersonalBaseline,
        biomarkers: StatisticalBiomarkers,
        features: FeatureSummary,
        segment_count: int,
        now: datetime,
    ) -> PersonalBaseline:
        values = self._current_values(biomarkers, features)
        alpha = self.ema_alpha(segment_count)

        local_now = now.astimezone(self.tz)
        time_bucket = select_time_bucket(local_now.hour)
        context_bucket = select_context_bucket(local_now)
        logger.debug(
            f"EMA для {baseline.user_id}: alpha={alpha:.3f}, "
            f"корзины {time_bucket.value}/{context_bucket.value}"
        )

        targets = [baseline.time_norm(TimeBucket.OVERALL), baseline.context_norm(context_bucket)]
        if time_bucket != TimeBucket.OVERALL:
            targets.append(baseline.time_norm(time_bucket))

        for metrics in targets:
            for metric in TRACKED_METRICS:
                if metric in values:
                    self.blend_norm(getattr(metrics, metric), values[metric], alpha)

        self._apply_predicted_points(baseline.personal_patterns, features)
        baseline.personal_patterns.recovery_duration = features.recovery_rate

        indicators = baseline.health_indicators
        indicators.baseline_stability = self._stability(baseline)
        indicators.adaptability = self._adaptability(baseline)
        indicators.resilience = self._resilience(features)

        baseline.last_updated = now.isoformat()
        baseline.data_points += segment_count
        return baseline

    @staticmethod
    def _apply_predicted_points(patterns: PersonalPatterns, features: FeatureSummary) -> None:
        if features.predicted_high_point:
            patterns.optimal_hours = [features.predicted_high_point]
        if features.predicted_low_point:
            patterns.fatigue_times = [features.predicted_low_point]

    @staticmethod
    def _resilience(features: FeatureSummary) -> float:
        return min(1.0, max(0.0, features.recovery_rate / RESILIENCE_SCALE))

    @staticmethod
    def _stability(baseline: PersonalBaseline) -> float:
        """1 минус средний коэффициент вариации между утром, днем и вечером"""
        total = 0.0
        for metric in STABILITY_METRICS:
            means = [getattr(baseline.time_norm(b), metric).mean for b in DAY_BUCKETS]
            total += stats.coefficient_of_variation(means)
        return max(0.0, 1 - total / len(STABILITY_METRICS))

    @staticmethod
    def _adaptability(baseline: PersonalBaseline) -> float:
        """1 минус относительная разница будни/выходные по темпу и энергии"""
        workday = baseline.context_norm(ContextBucket.WORKDAY)
        weekend = baseline.context_norm(ContextBucket.WEEKEND)

        def relative_diff(metric: str) -> float:
            base = getattr(workday, metric).mean
            if base == 0:
                return 0.0
            return abs(base - getattr(weekend, metric).mean) / abs(base)

        diff = (relative_diff("speech_rate") + relative_diff("energy_level")) / 2
        return max(0.0, 1 - diff)

    # --------------------
    # Отклонения
    # --------------------

    @staticmethod
    def _calculate_deviations(
        biomarkers: StatisticalBiomarkers,
        features: FeatureSummary,
        norm: BaselineMetrics,
        thresholds: AlertThresholds,
    ) -> Dict[str, MetricDeviation]:
        speech_rate = biomarkers.speech_rate.value
        energy = features.energy_level
        fluency = features.fluency_score

        return {
            "speech_rate": MetricDeviation(
                metric="speech_rate",
                value=speech_rate,
                expected=norm.speech_rate.mean,
                z_score=stats.z_score(speech_rate, norm.speech_rate.mean, norm.speech_rate.std_dev),
                is_abnormal=(
                    speech_rate < thresholds.speech_rate.lower
                    or speech_rate > thresholds.speech_rate.upper
                ),
            ),
            "energy_level": MetricDeviation(
                metric="energy_level",
                value=energy,
                expected=norm.energy_level.mean,
                z_score=stats.z_score(energy, norm.energy_level.mean, norm.energy_level.std_dev),
                is_abnormal=energy < thresholds.energy.warning,
            ),
            "fluency_score": MetricDeviation(
                metric="fluency_score",
                value=fluency,
                expected=norm.fluency_score.mean,
                z_score=stats.z_score(fluency, norm.fluency_score.mean, norm.fluency_score.std_dev),
                is_abnormal=fluency < thresholds.fluency.warning,
            ),
            # у когнитивной нагрузки нет нормы в baseline, только порог
            "cognitive_load": MetricDeviation(
                metric="cognitive_load",
                value=features.cognitive_load,
                is_abnormal=features.cognitive_load > thresholds.cognitive.concern,
            ),
        }

    @staticmethod
    def _build_analysis(
        deviations: Dict[str, MetricDeviation],
        baseline: PersonalBaseline,
    ) -> DeviationAnalysis:
        abnormal = [d for d in deviations.values() if d.is_abnormal]
        affected = [d.metric for d in abnormal]
        total_z = sum(abs(d.z_score) for d in abnormal)
        has_critical = any(abs(d.z_score) > CRITICAL_Z for d in abnormal)

        is_significant = len(affected) >= MIN_AFFECTED_FOR_SIGNIFICANCE or has_critical

        # Порядок приоритета интерпретаций фиксирован
        if not is_significant:
            interpretation = NOMINAL_INTERPRETATION
        elif deviations["energy_level"].is_abnormal:
            interpretation = "Significant fatigue detected. Energy levels well below your baseline."
        elif deviations["cognitive_load"].is_abnormal:
            interpretation = "High cognitive load detected. Speech patterns indicate mental strain."
        elif deviations["fluency_score"].is_abnormal:
            interpretation = "Reduced fluency compared to baseline. May indicate stress or fatigue."
        else:
            interpretation = "Multiple metrics outside normal range. Monitor closely."

        patterns = baseline.personal_patterns
        recommendations: List[str] = []
        if deviations["energy_level"].is_abnormal:
            recommendations.append("Consider taking a 15-20 minute break")
            recommendations.append(
                f"Your optimal recovery time is typically {patterns.recovery_duration:g} minutes"
            )
        if deviations["cognitive_load"].is_abnormal:
            recommendations.append("Simplify current tasks or delegate if possible")
            recommendations.append("Practice deep breathing to reduce cognitive load")
        if len(affected) >= MIN_AFFECTED_FOR_REST:
            recommendations.append("Multiple indicators suggest you need rest")
            if patterns.fatigue_times:
                recommendations.append(f"Next predicted low energy: {patterns.fatigue_times[0]}")

        return DeviationAnalysis(
            is_significant=is_significant,
            deviation_score=min(100.0, 10 * total_z),
            affected_metrics=affected,
            interpretation=interpretation,
            recommendations=recommendations,
            metric_deviations=list(deviations.values()),
        )
