from __future__ import annotations

import random
from typing import Protocol


class RandomSource(Protocol):
    def random(self) -> float: ...


class SystemRandomSource:
    def __init__(self) -> None:
        self._random = random.SystemRandom()

    def random(self) -> float:
        return self._random.random()


class SeededRandomSource:
    def __init__(self, seed: int) -> None:
        self._random = random.Random(seed)

    def random(self) -> float:
        return self._random.random()


def should_lock(random_source: RandomSource, chance: float) -> bool:
    if chance <= 0:
        return False
    return random_source.random() < chance
