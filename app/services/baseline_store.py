"""
Хранилище персональных baseline.

BaselineStore задает абстрактный порт, InMemoryBaselineStore является реализацией
по умолчанию (данные живут до перезапуска процесса).
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from app.models.baseline import PersonalBaseline

logger = logging.getLogger(__name__)


class BaselineStore(ABC):
    @abstractmethod
    def get(self, user_id: str) -> Optional[PersonalBaseline]:
        """Baseline пользователя или None"""

    @abstractmethod
    def put(self, baseline: PersonalBaseline) -> None:
        """Сохраняет baseline (создает или заменяет)"""

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Удаляет baseline; True, если он существовал"""

    @abstractmethod
    def user_ids(self) -> List[str]:
        """Пользователи, для которых есть baseline"""


class InMemoryBaselineStore(BaselineStore):
    """Словарь в памяти; наружу отдаются копии, чтобы изменения шли только через put"""

    def __init__(self):
        self._baselines: Dict[str, PersonalBaseline] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[PersonalBaseline]:
        with self._lock:
            baseline = self._baselines.get(user_id)
        return baseline.model_copy(deep=True) if baseline else None

    def put(self, baseline: PersonalBaseline) -> None:
        with self._lock:
            self._baselines[baseline.user_id] = baseline.model_copy(deep=True)
        logger.debug(f"Baseline сохранен: user={baseline.user_id}")

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._baselines.pop(user_id, None) is not None

    def user_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._baselines)

    def __len__(self) -> int:
        return len(self._baselines)
