"""
Модели персонального baseline и анализа отклонений.
"""
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class TimeBucket(str, Enum):
    """Корзины baseline по времени суток"""
    MORNING = "morning"        # 6-12
    AFTERNOON = "afternoon"    # 12-18
    EVENING = "evening"        # 18-24
    OVERALL = "overall"        # все время; ночные часы попадают только сюда


class ContextBucket(str, Enum):
    """Контекстные корзины baseline"""
    WORKDAY = "workday"
    WEEKEND = "weekend"
    MEETINGS = "meetings"
    CASUAL = "casual"


TRACKED_METRICS = (
    "speech_rate",
    "pause_duration",
    "vocabulary_complexity",
    "fluency_score",
    "energy_level",
    "disfluency_rate",
    "rhythm_consistency",
)


class MetricNorm(BaseModel):
    mean: float
    std_dev: float
    range: Tuple[float, float]


class BaselineMetrics(BaseModel):
    """Норма по каждому отслеживаемому сигналу"""
    speech_rate: MetricNorm
    pause_duration: MetricNorm
    vocabulary_complexity: MetricNorm
    fluency_score: MetricNorm
    energy_level: MetricNorm
    disfluency_rate: MetricNorm
    rhythm_consistency: MetricNorm


class TimeBasedNorms(BaseModel):
    morning: BaselineMetrics
    afternoon: BaselineMetrics
    evening: BaselineMetrics
    overall: BaselineMetrics


class ContextualNorms(BaseModel):
    workday: BaselineMetrics
    weekend: BaselineMetrics
    meetings: BaselineMetrics
    casual: BaselineMetrics


class StressPattern(BaseModel):
    speech_acceleration: float = 1.1        # насколько быстрее при стрессе
    vocabulary_constriction: float = 0.8    # насколько проще слова
    disfluency_increase: float = 1.5        # насколько больше запинок
    pause_reduction: float = 0.7            # насколько короче паузы


class PersonalPatterns(BaseModel):
    optimal_hours: List[str] = Field(default_factory=list)
    fatigue_times: List[str] = Field(default_factory=list)
    recovery_duration: float = Field(0.0, description="Минуты на восстановление")
    stress_signature: StressPattern = Field(default_factory=StressPattern)


class SpeechRateThreshold(BaseModel):
    lower: float
    upper: float


class LevelThreshold(BaseModel):
    critical: float
    warning: float


class CognitiveThreshold(BaseModel):
    overload: float
    concern: float


class AlertThresholds(BaseModel):
    speech_rate: SpeechRateThreshold
    energy: LevelThreshold
    fluency: LevelThreshold
    cognitive: CognitiveThreshold


class HealthIndicators(BaseModel):
    baseline_stability: float = 0.5   # 0-1
    adaptability: float = 0.5         # 0-1
    resilience: float = 0.0           # 0-1
    variability_index: float = 0.0


class PersonalBaseline(BaseModel):
    """Персональный baseline пользователя (изменяемый, живет в хранилище)"""
    user_id: str
    established_date: str
    last_updated: str
    data_points: int

    time_based_norms: TimeBasedNorms
    contextual_norms: ContextualNorms
    personal_patterns: PersonalPatterns
    alert_thresholds: AlertThresholds
    health_indicators: HealthIndicators

    def time_norm(self, bucket: TimeBucket) -> BaselineMetrics:
        return getattr(self.time_based_norms, bucket.value)

    def context_norm(self, bucket: ContextBucket) -> BaselineMetrics:
        return getattr(self.contextual_norms, bucket.value)


class FeatureSummary(BaseModel):
    """
    Сводка внешних анализаторов ритма/запинок/энергии.
    Трекер не знает, как эти значения получены.
    """
    fluency_score: float = Field(..., ge=0.0, le=100.0)
    energy_level: float = Field(..., ge=0.0, le=100.0)
    disfluency_rate: float = Field(..., ge=0.0, description="Запинок на 100 слов")
    rhythm_consistency: float = Field(..., ge=0.0, le=1.0)
    cognitive_load: float = Field(..., ge=0.0, le=1.0)
    recovery_rate: float = Field(0.0, ge=0.0)
    predicted_high_point: Optional[str] = None
    predicted_low_point: Optional[str] = None


class MetricDeviation(BaseModel):
    metric: str
    value: float
    expected: Optional[float] = None
    z_score: float = 0.0
    is_abnormal: bool = False


class DeviationAnalysis(BaseModel):
    is_significant: bool
    deviation_score: float = Field(description="0-100, тяжесть отклонения")
    affected_metrics: List[str] = Field(default_factory=list)
    interpretation: str
    recommendations: List[str] = Field(default_factory=list)
    metric_deviations: List[MetricDeviation] = Field(default_factory=list)
    time_bucket: Optional[TimeBucket] = None
    context_bucket: Optional[ContextBucket] = None
