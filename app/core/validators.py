import logging
from typing import Sized

from app.core.config import settings
from app.core.exceptions import RequestTooLargeError

logger = logging.getLogger(__name__)


class RequestValidator:
    """Проверки тела запроса до запуска анализа"""

    @staticmethod
    def validate_recordings_count(recordings: Sized, max_count: int = None) -> None:
        """
        Ограничивает число записей в одном запросе.

        Raises:
            RequestTooLargeError: если записей больше лимита
        """
        limit = max_count if max_count is not None else settings.max_recordings_per_request
        if len(recordings) > limit:
            logger.warning(f"Запрос отклонен: {len(recordings)} записей при лимите {limit}")
            raise RequestTooLargeError(
                f"Too many recordings in one request: {len(recordings)} (max {limit})"
            )
