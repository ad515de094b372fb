"""
Синтетические эталонные распределения для процентильных рангов.

Выборки детерминированы (фиксированный seed) и кешируются, поэтому
процентили воспроизводимы между запусками. Это относительное
позиционирование, а не клиническая норма.
"""
from functools import lru_cache
from typing import NamedTuple, Tuple

import numpy as np

from app.core.config import settings
from app.models.biomarkers import PercentileRankings
from app.services.statistics import percentile


class NormSpec(NamedTuple):
    mean: float
    std: float
    stream: int  # смещение seed, чтобы выборки были независимыми


SPEECH_RATE_NORM = NormSpec(150.0, 30.0, 0)        # WPM взрослых в разговоре
PAUSE_DURATION_NORM = NormSpec(1.2, 0.5, 1)        # секунды
VOCABULARY_COMPLEXITY_NORM = NormSpec(6.0, 1.5, 2) # оценочная норма


@lru_cache(maxsize=32)
def reference_sample(mean: float, std: float, size: int, seed: int) -> Tuple[float, ...]:
    """Нормальная выборка фиксированного размера из генератора с seed"""
    rng = np.random.default_rng(seed)
    return tuple(float(v) for v in rng.normal(loc=mean, scale=std, size=size))


class ReferenceNorms:
    """Процентили метрик относительно эталонных выборок"""

    def __init__(self, sample_size: int = None, seed: int = None):
        self.sample_size = sample_size or settings.reference_sample_size
        self.seed = seed if seed is not None else settings.reference_seed

    def sample(self, norm: NormSpec) -> Tuple[float, ...]:
        return reference_sample(norm.mean, norm.std, self.sample_size, self.seed + norm.stream)

    def rank(
        self,
        speech_rate: float,
        pause_duration: float,
        vocabulary_complexity: float,
    ) -> PercentileRankings:
        return PercentileRankings(
            speech_rate=percentile(speech_rate, self.sample(SPEECH_RATE_NORM)),
            pause_duration=percentile(pause_duration, self.sample(PAUSE_DURATION_NORM)),
            vocabulary_complexity=percentile(
                vocabulary_complexity, self.sample(VOCABULARY_COMPLEXITY_NORM)
            ),
        )
