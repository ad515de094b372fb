from typing import Literal, Tuple
from pydantic import BaseModel, ConfigDict


Significance = Literal["significant", "not_significant", "insufficient_data"]
Reliability = Literal["high", "medium", "low"]


class StatisticalResult(BaseModel):
    """Точечная оценка с доверительным интервалом"""
    model_config = ConfigDict(frozen=True)

    value: float
    confidence_interval: Tuple[float, float]
    standard_error: float
    sample_size: int


class TrendAnalysis(BaseModel):
    """Результат линейной регрессии метрики по времени"""
    model_config = ConfigDict(frozen=True)

    slope: float
    r_squared: float
    p_value: float
    significance: Significance
    confidence_interval: Tuple[float, float]


class DataQualityMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_segments: int
    valid_segments: int
    outliers: int
    quality_score: float  # 0-1
    reliability: Reliability


EMPTY_RESULT = StatisticalResult(
    value=0.0,
    confidence_interval=(0.0, 0.0),
    standard_error=0.0,
    sample_size=0,
)

INSUFFICIENT_TREND = TrendAnalysis(
    slope=0.0,
    r_squared=0.0,
    p_value=1.0,
    significance="insufficient_data",
    confidence_interval=(0.0, 0.0),
)
