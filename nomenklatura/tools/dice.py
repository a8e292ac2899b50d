"""
Random source for the turn engine.

All randomness in a turn flows through one Dice instance so that a seed
reproduces the whole turn.
"""

import random
from dataclasses import dataclass
from typing import Sequence, TypeVar

T = TypeVar("T")


@dataclass
class RollResult:
    """Result of a percentile roll against a target number."""
    roll: int     # 1-100
    target: int   # Succeeds when roll <= target
    success: bool
    margin: int   # Positive = under target


class Dice:
    """
    Seedable wrapper around random.Random.

    Args:
        seed: Seed for reproducible turns. None draws from system entropy.
    """

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def reseed(self, seed: int | None) -> None:
        self.seed = seed
        self._rng.seed(seed)

    def uniform(self) -> float:
        """Uniform draw in [0, 1)."""
        return self._rng.random()

    def chance(self, probability: float) -> bool:
        """True with the given probability, clamped to [0, 1]."""
        probability = max(0.0, min(1.0, probability))
        return self._rng.random() < probability

    def randint(self, low: int, high: int) -> int:
        """Inclusive integer draw."""
        return self._rng.randint(low, high)

    def d100(self) -> int:
        return self._rng.randint(1, 100)

    def percentile(self, target: int) -> RollResult:
        """Roll d100 against target (clamped to 0-100); success on roll <= target."""
        target = max(0, min(100, target))
        roll = self.d100()
        return RollResult(
            roll=roll,
            target=target,
            success=roll <= target,
            margin=target - roll,
        )

    def spread(self, magnitude: int) -> int:
        """Symmetric integer noise in [-magnitude, magnitude]."""
        return self._rng.randint(-magnitude, magnitude)

    def choice(self, items: Sequence[T]) -> T:
        return self._rng.choice(items)
