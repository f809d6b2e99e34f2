"""Seedable randomness for the draw engines.

Every random decision in a session goes through one RandomSource, so a
seeded session replays the same draws.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from narrative_engine.core.logging import get_logger


logger = get_logger(__name__)


@runtime_checkable
class RandomSource(Protocol):
    """What the draw engines need from a random number generator."""

    def random(self) -> float:
        """Return a float in [0.0, 1.0)."""
        ...

    def randrange(self, stop: int) -> int:
        """Return an int in [0, stop)."""
        ...


class SeededRandom:
    """RandomSource backed by a private random.Random instance.

    Example:
        >>> rng = SeededRandom(seed=42)
        >>> 0 <= rng.randrange(10) < 10
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the random source.

        Args:
            seed: Optional seed for reproducible draws.
        """
        self._seed = seed
        self._random = random.Random(seed)
        logger.debug("SeededRandom initialized", seed=seed)

    @property
    def seed(self) -> int | None:
        return self._seed

    def reseed(self, seed: int | None = None) -> None:
        """Restart the sequence, optionally from a new seed."""
        if seed is not None:
            self._seed = seed
        self._random.seed(self._seed)

    def random(self) -> float:
        return self._random.random()

    def randrange(self, stop: int) -> int:
        return self._random.randrange(stop)


def weighted_index(rng: RandomSource, weights: Sequence[float]) -> int | None:
    """Pick an index with probability proportional to its weight.

    Args:
        rng: Random source to draw from.
        weights: Non-negative weights.

    Returns:
        The chosen index, or None when no weight is positive.
    """
    total = sum(w for w in weights if w > 0)
    if total <= 0:
        return None

    target = rng.random() * total
    cumulative = 0.0
    last_positive = None
    for index, weight in enumerate(weights):
        if weight <= 0:
            continue
        cumulative += weight
        last_positive = index
        if target < cumulative:
            return index
    # float rounding can leave target a hair above the final cumulative sum
    return last_positive


def roll_chance(rng: RandomSource, chance: float, *, scale: float = 100.0) -> bool:
    """Roll a percentage chance.

    Args:
        rng: Random source to draw from.
        chance: Success chance on a 0..scale range.
        scale: Value representing certainty.

    Returns:
        True on success.
    """
    return rng.random() * scale < chance


__all__ = [
    "RandomSource",
    "SeededRandom",
    "weighted_index",
    "roll_chance",
]
