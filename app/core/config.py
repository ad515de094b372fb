from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator


class Settings(BaseSettings):
    """Application configuration settings."""

    # Часовой пояс для "локального" времени (час суток, неделя, выходные).
    # None означает локальный пояс хоста
    timezone: Optional[str] = Field(default=None, alias="TIMEZONE")

    # Правила валидности сегментов
    min_segment_words: int = Field(default=3, alias="MIN_SEGMENT_WORDS")
    min_segment_duration_ms: float = Field(
        default=500.0, alias="MIN_SEGMENT_DURATION_MS"
    )
    min_segment_wpm: float = Field(default=30.0, alias="MIN_SEGMENT_WPM")
    max_segment_wpm: float = Field(default=400.0, alias="MAX_SEGMENT_WPM")
    min_segment_chars: int = Field(default=10, alias="MIN_SEGMENT_CHARS")

    # Настройки статистики
    max_pause_ms: float = Field(default=30000.0, alias="MAX_PAUSE_MS")
    trend_min_points: int = Field(default=5, alias="TREND_MIN_POINTS")
    confidence_level: float = Field(default=0.95, alias="CONFIDENCE_LEVEL")
    reference_sample_size: int = Field(
        default=1000, alias="REFERENCE_SAMPLE_SIZE"
    )
    reference_seed: int = Field(default=42, alias="REFERENCE_SEED")

    # Настройки персонального baseline (EMA)
    ema_max_alpha: float = Field(default=0.3, alias="EMA_MAX_ALPHA")
    ema_segment_scale: float = Field(default=100.0, alias="EMA_SEGMENT_SCALE")

    # Ограничения API
    max_recordings_per_request: int = Field(
        default=500, alias="MAX_RECORDINGS_PER_REQUEST"
    )

    # Настройки логирования
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_max_size_mb: int = Field(default=10, alias="LOG_MAX_SIZE_MB")
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("timezone")
    def validate_timezone(cls, v):
        if v is None or v == "":
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"TIMEZONE '{v}' is not a valid IANA zone name")
        return v

    @field_validator("confidence_level")
    def validate_confidence_level(cls, v):
        if not 0 < v < 1:
            raise ValueError("CONFIDENCE_LEVEL must be between 0 and 1")
        return v

    @field_validator("ema_max_alpha")
    def validate_ema_max_alpha(cls, v):
        if not 0 < v <= 1:
            raise ValueError("EMA_MAX_ALPHA must be in (0, 1]")
        return v

    @field_validator(
        "ema_segment_scale",
        "reference_sample_size",
        "trend_min_points",
        "max_pause_ms",
        "max_recordings_per_request",
    )
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("log_max_size_mb")
    def validate_log_max_size(cls, v):
        if v <= 0:
            raise ValueError("LOG_MAX_SIZE_MB must be positive")
        if v > 100:  # 100 MB max
            raise ValueError("LOG_MAX_SIZE_MB cannot exceed 100")
        return v

    @field_validator("log_backup_count")
    def validate_log_backup_count(cls, v):
        if v < 0:
            raise ValueError("LOG_BACKUP_COUNT cannot be negative")
        if v > 20:
            raise ValueError("LOG_BACKUP_COUNT cannot exceed 20")
        return v

    @model_validator(mode="after")
    def validate_wpm_range(self):
        if self.min_segment_wpm >= self.max_segment_wpm:
            raise ValueError("MIN_SEGMENT_WPM must be below MAX_SEGMENT_WPM")
        return self

    def get_tzinfo(self) -> Optional[ZoneInfo]:
        """Возвращает tzinfo для настроенного пояса (None для локального пояса)"""
        return ZoneInfo(self.timezone) if self.timezone else None


settings = Settings()
