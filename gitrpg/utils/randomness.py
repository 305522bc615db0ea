"""Random sources for the combat engines.

Every probability draw (crit rolls, turn-order jitter, damage variance,
boss targeting) goes through an object with a single `uniform(lo, hi)`
method. Production passes nothing and gets an unseeded source; tests pass a
seed or a scripted sequence.
"""
from __future__ import annotations

import random
from typing import Iterable, Optional, Protocol


class RandomSource(Protocol):
    def uniform(self, lo: float, hi: float) -> float:
        ...


class SeededRandom:
    """Seedable Mersenne Twister source (`random.Random`), not OS entropy."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def uniform(self, lo: float, hi: float) -> float:
        # random.uniform can return hi; keep draws in [lo, hi)
        return lo + (hi - lo) * self._rng.random()


class ScriptedRandom:
    """Replays fixed unit draws in [0, 1), scaled into each requested range.

    Handy for pinning a scenario: `ScriptedRandom([0.5])` makes every
    variance draw exactly 1.0 and every jitter draw exactly 1.0.
    """

    def __init__(self, draws: Iterable[float], cycle: bool = True):
        self._draws = list(draws)
        if not self._draws:
            raise ValueError("ScriptedRandom needs at least one draw")
        for d in self._draws:
            if not 0.0 <= d < 1.0:
                raise ValueError(f"draw {d} outside [0, 1)")
        self._cycle = cycle
        self._pos = 0

    def uniform(self, lo: float, hi: float) -> float:
        if self._pos >= len(self._draws):
            if not self._cycle:
                raise IndexError("scripted draws exhausted")
            self._pos = 0
        d = self._draws[self._pos]
        self._pos += 1
        return lo + (hi - lo) * d


def default_source(rng: Optional[RandomSource] = None) -> RandomSource:
    return rng if rng is not None else SeededRandom()
