"""
Входные модели: записи (recordings) и узлы их содержимого в формате
провайдера записей.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentNode(BaseModel):
    """Узел содержимого записи (реплика, заголовок и т.п.)"""
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field("blockquote", description="Тип узла: blockquote|heading1|...")
    content: Optional[str] = Field(None, description="Текст узла")
    speaker_name: Optional[str] = Field(None, alias="speakerName")
    speaker_identifier: Optional[str] = Field(
        None, alias="speakerIdentifier",
        description="'user' для реплик владельца записи")
    start_offset_ms: Optional[float] = Field(
        None, alias="startOffsetMs", description="Начало относительно старта записи, мс")
    end_offset_ms: Optional[float] = Field(
        None, alias="endOffsetMs", description="Конец относительно старта записи, мс")
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    children: List["ContentNode"] = Field(default_factory=list)


class Recording(BaseModel):
    """Запись с абсолютным временем начала и списком узлов"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: Optional[str] = None
    start_time: datetime = Field(alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    contents: List[ContentNode] = Field(default_factory=list)


ContentNode.model_rebuild()
