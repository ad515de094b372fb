"""
Тела запросов HTTP API.
"""
from typing import List

from pydantic import BaseModel, Field

from app.models.baseline import FeatureSummary
from app.models.recording import Recording


class AnalyzeRequest(BaseModel):
    recordings: List[Recording] = Field(
        default_factory=list,
        description="Записи с репликами (формат провайдера, camelCase допускается)",
    )


class BaselineRequest(AnalyzeRequest):
    features: FeatureSummary = Field(..., description="Сводка внешних анализаторов")
