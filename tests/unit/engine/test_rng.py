"""Tests for the seedable random source and its helpers."""

from __future__ import annotations

import pytest

from narrative_engine.engine.rng import RandomSource, SeededRandom, roll_chance, weighted_index


class FixedRandom:
    """RandomSource returning a scripted sequence of floats."""

    def __init__(self, *values: float) -> None:
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0)

    def randrange(self, stop: int) -> int:
        return int(self.random() * stop)


class TestSeededRandom:
    """Tests for SeededRandom."""

    def test_same_seed_same_sequence(self) -> None:
        """Test equal seeds produce equal sequences."""
        first = SeededRandom(seed=42)
        second = SeededRandom(seed=42)
        assert [first.randrange(100) for _ in range(10)] == [second.randrange(100) for _ in range(10)]

    def test_reseed_restarts(self) -> None:
        """Test reseeding replays the sequence."""
        rng = SeededRandom(seed=7)
        before = [rng.random() for _ in range(5)]
        rng.reseed()
        assert [rng.random() for _ in range(5)] == before

    def test_reseed_with_new_seed(self) -> None:
        """Test reseeding can switch seeds."""
        rng = SeededRandom(seed=1)
        rng.reseed(2)
        assert rng.seed == 2
        assert rng.random() == SeededRandom(seed=2).random()

    def test_satisfies_protocol(self) -> None:
        """Test SeededRandom is a RandomSource."""
        assert isinstance(SeededRandom(), RandomSource)


class TestWeightedIndex:
    """Tests for weighted_index."""

    def test_no_positive_weight(self) -> None:
        """Test None is returned when nothing can be picked."""
        assert weighted_index(FixedRandom(0.5), [0, 0.0, -1]) is None
        assert weighted_index(FixedRandom(0.5), []) is None

    @pytest.mark.parametrize(("roll", "expected"), [(0.0, 0), (0.24, 0), (0.26, 1), (0.99, 1)])
    def test_proportional_to_weight(self, roll: float, expected: int) -> None:
        """Test the roll lands in the weight band of the chosen index."""
        assert weighted_index(FixedRandom(roll), [1, 3]) == expected

    def test_zero_weights_skipped(self) -> None:
        """Test zero-weight entries are never chosen."""
        assert weighted_index(FixedRandom(0.0), [0, 2, 0]) == 1

    def test_rounding_falls_back_to_last_positive(self) -> None:
        """Test a roll at the very top still picks an index."""
        assert weighted_index(FixedRandom(1.0), [1, 1, 0]) == 1


class TestRollChance:
    """Tests for roll_chance."""

    def test_bounds(self) -> None:
        """Test 100 always succeeds and 0 never does."""
        rng = SeededRandom(seed=3)
        assert all(roll_chance(rng, 100) for _ in range(50))
        assert not any(roll_chance(rng, 0) for _ in range(50))

    def test_threshold(self) -> None:
        """Test the roll must fall strictly below the chance."""
        assert roll_chance(FixedRandom(0.29), 30)
        assert not roll_chance(FixedRandom(0.30), 30)

    def test_custom_scale(self) -> None:
        """Test chances on a different scale."""
        assert roll_chance(FixedRandom(0.4), 0.5, scale=1.0)
