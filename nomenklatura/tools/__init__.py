"""Tools for the Nomenklatura engine."""

from .dice import Dice, RollResult

__all__ = [
    "Dice",
    "RollResult",
]
