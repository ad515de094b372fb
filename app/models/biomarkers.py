"""
Модели сегментов речи и агрегированного отчета по биомаркерам.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from app.models.statistics import (
    DataQualityMetrics,
    Reliability,
    StatisticalResult,
    TrendAnalysis,
)


class SpeechSegment(BaseModel):
    """Одна реплика владельца записи с производными метриками"""
    model_config = ConfigDict(frozen=True)

    content: str
    start_offset_ms: float
    end_offset_ms: float
    duration_ms: float
    word_count: int
    words_per_minute: float
    timestamp: datetime = Field(description="Старт записи + смещение реплики")
    recording_id: str
    speaker_name: Optional[str] = None
    is_valid: bool
    quality_flags: List[str] = Field(default_factory=list)


class WeeklyTrend(BaseModel):
    week: str = Field(description="ISO-дата воскресенья, начинающего неделю")
    speech_rate: StatisticalResult
    segment_count: int


class PercentileRankings(BaseModel):
    """Положение относительно синтетических популяционных норм (0-100)"""
    speech_rate: int = 50
    pause_duration: int = 50
    vocabulary_complexity: int = 50


class HourlyPattern(BaseModel):
    hour: int
    mean_wpm: float
    confidence_interval: Tuple[float, float]
    segment_count: int


class TimeOfDayEffects(BaseModel):
    pattern: List[HourlyPattern] = Field(default_factory=list)
    f_statistic: float = 0.0
    significant_variation: bool = False
    p_value: float = 1.0


class StatisticalBiomarkers(BaseModel):
    """Полный статистический отчет по валидным сегментам"""
    speech_rate: StatisticalResult
    pause_duration: StatisticalResult
    vocabulary_complexity: StatisticalResult
    words_per_turn: StatisticalResult

    speech_rate_trend: TrendAnalysis
    weekly_trends: List[WeeklyTrend] = Field(default_factory=list)

    data_quality: DataQualityMetrics
    percentile_rankings: PercentileRankings = Field(default_factory=PercentileRankings)

    reliability: Reliability
    minimum_data_recommendations: List[str] = Field(default_factory=list)

    time_of_day_effects: TimeOfDayEffects = Field(default_factory=TimeOfDayEffects)

    analysis_date: str
    data_timespan: str
    total_analysis_time: float = Field(description="Суммарная длительность валидных сегментов, мс")
