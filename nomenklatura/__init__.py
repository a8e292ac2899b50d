"""
Nomenklatura: turn orchestration and event pacing for a one-party state.

    from nomenklatura import advance_turn, load_scenario
    state = load_scenario("scenario.yaml")
    report = advance_turn(state, seed=1)
"""

from .config import ConfigError, load_balance
from .state.schema import GameState
from .state.store import load_scenario
from .systems.turns import TurnOrchestrator, advance_turn

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "GameState",
    "TurnOrchestrator",
    "advance_turn",
    "load_balance",
    "load_scenario",
]
