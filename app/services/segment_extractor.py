"""
Извлечение реплик владельца записи и проверка их пригодности для статистики.
"""
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from app.core.config import settings
from app.models.biomarkers import SpeechSegment
from app.models.recording import ContentNode, Recording

logger = logging.getLogger(__name__)

SUBJECT_SPEAKER = "user"

# Флаги качества
FLAG_TOO_FEW_WORDS = "too_few_words"
FLAG_TOO_SHORT_DURATION = "too_short_duration"
FLAG_UNREALISTIC_SPEECH_RATE = "unrealistic_speech_rate"
FLAG_TOO_BRIEF_CONTENT = "too_brief_content"
FLAG_MINIMAL_SPEECH = "minimal_speech"
FLAG_INVALID_TIMING = "invalid_timing"

# Реплики, состоящие только из междометия
MINIMAL_SPEECH_PATTERN = re.compile(
    r"^(yeah|uh+|um+|hm+|ah+|mhm|mm+)[.!?]?$", flags=re.IGNORECASE
)


def count_words(text: str) -> int:
    """Число слов по пробельной токенизации (пустые токены отбрасываются)"""
    return len([w for w in text.split() if w])


def calculate_wpm(word_count: int, duration_ms: float) -> float:
    if duration_ms <= 0:
        return 0.0
    return word_count / (duration_ms / 60000.0)


class SegmentExtractor:
    """Строит сегменты из узлов записей и помечает невалидные"""

    def __init__(
        self,
        min_words: Optional[int] = None,
        min_duration_ms: Optional[float] = None,
        min_wpm: Optional[float] = None,
        max_wpm: Optional[float] = None,
        min_chars: Optional[int] = None,
    ):
        self.min_words = min_words if min_words is not None else settings.min_segment_words
        self.min_duration_ms = (
            min_duration_ms if min_duration_ms is not None else settings.min_segment_duration_ms
        )
        self.min_wpm = min_wpm if min_wpm is not None else settings.min_segment_wpm
        self.max_wpm = max_wpm if max_wpm is not None else settings.max_segment_wpm
        self.min_chars = min_chars if min_chars is not None else settings.min_segment_chars

    def extract(self, recordings: Iterable[Recording]) -> List[SpeechSegment]:
        """
        Извлекает все реплики владельца (валидные и невалидные).

        Returns:
            Сегменты, отсортированные по абсолютному времени
        """
        segments: List[SpeechSegment] = []
        for recording in recordings:
            recording_start = self._as_aware(recording.start_time)
            for node in self._walk(recording.contents):
                if not self._is_subject_node(node):
                    continue
                segments.append(self._build_segment(node, recording.id, recording_start))

        segments.sort(key=lambda s: s.timestamp)

        valid_count = sum(1 for s in segments if s.is_valid)
        logger.info(f"Извлечено сегментов: {len(segments)}, валидных: {valid_count}")
        return segments

    def validate(self, content: str, word_count: int, duration_ms: float, wpm: float) -> List[str]:
        """Возвращает список флагов качества; пустой список означает валидный сегмент"""
        flags: List[str] = []

        if word_count < self.min_words:
            flags.append(FLAG_TOO_FEW_WORDS)

        if duration_ms < self.min_duration_ms:
            flags.append(FLAG_TOO_SHORT_DURATION)

        if wpm > self.max_wpm or wpm < self.min_wpm:
            flags.append(FLAG_UNREALISTIC_SPEECH_RATE)

        if len(content) < self.min_chars:
            flags.append(FLAG_TOO_BRIEF_CONTENT)

        if MINIMAL_SPEECH_PATTERN.match(content):
            flags.append(FLAG_MINIMAL_SPEECH)

        return flags

    def _build_segment(
        self,
        node: ContentNode,
        recording_id: str,
        recording_start: datetime,
    ) -> SpeechSegment:
        content = node.content.strip()
        word_count = count_words(content)
        start_ms = float(node.start_offset_ms)
        end_ms = float(node.end_offset_ms)

        timestamp = self._offset_timestamp(recording_start, start_ms)
        timing_ok = (
            timestamp is not None
            and math.isfinite(end_ms)
            and end_ms >= start_ms
        )
        if timing_ok:
            duration_ms = end_ms - start_ms
            wpm = calculate_wpm(word_count, duration_ms)
        else:
            duration_ms = 0.0
            wpm = 0.0
            if timestamp is None:
                timestamp = recording_start

        flags = self.validate(content, word_count, duration_ms, wpm)
        if not timing_ok:
            flags.insert(0, FLAG_INVALID_TIMING)
            logger.debug(
                f"Некорректные тайминги в записи {recording_id}: start={start_ms}, end={end_ms}"
            )

        return SpeechSegment(
            content=content,
            start_offset_ms=start_ms if math.isfinite(start_ms) else 0.0,
            end_offset_ms=end_ms if math.isfinite(end_ms) else 0.0,
            duration_ms=duration_ms,
            word_count=word_count,
            words_per_minute=wpm,
            timestamp=timestamp,
            recording_id=recording_id,
            speaker_name=node.speaker_name,
            is_valid=not flags,
            quality_flags=flags,
        )

    @staticmethod
    def _is_subject_node(node: ContentNode) -> bool:
        return (
            node.speaker_identifier == SUBJECT_SPEAKER
            and bool(node.content)
            and node.start_offset_ms is not None
            and node.end_offset_ms is not None
        )

    @staticmethod
    def _offset_timestamp(recording_start: datetime, offset_ms: float) -> Optional[datetime]:
        """Абсолютное время по смещению; None, если смещение не представимо датой"""
        if not math.isfinite(offset_ms):
            return None
        try:
            return recording_start + timedelta(milliseconds=offset_ms)
        except (OverflowError, ValueError):
            return None

    @classmethod
    def _walk(cls, nodes: List[ContentNode]) -> Iterable[ContentNode]:
        """Обход узлов в глубину (реплики бывают вложены в заголовки)"""
        for node in nodes:
            yield node
            if node.children:
                yield from cls._walk(node.children)

    @staticmethod
    def _as_aware(moment: datetime) -> datetime:
        # Время без пояса трактуем как UTC
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment
