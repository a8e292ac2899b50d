"""
Game systems for Nomenklatura.

Each engine advances one slice of state per turn; the orchestrator
sequences them and the scheduler decides what reaches the player.
"""

from .economy import EconomicEngine, EconomicHealth
from .diplomacy import DiplomaticEngine, TreatyOutcome
from .political_ai import PoliticalEngine
from .strategy import StrategicAssessment, Strategy, GSAction, GSActionType, assess, select_action
from .incidents import CandidateIncident, IncidentType, IncidentPriority
from .generators import GENERATORS, default_generators
from .scheduler import PacingScheduler, SchedulerOutcome, SchedulerPhase, QuietReason, select_winner
from .errors import TurnError, InvalidPhaseError
from .turns import TurnOrchestrator, TurnPhase, advance_turn

__all__ = [
    "EconomicEngine",
    "EconomicHealth",
    "DiplomaticEngine",
    "TreatyOutcome",
    "PoliticalEngine",
    "StrategicAssessment",
    "Strategy",
    "GSAction",
    "GSActionType",
    "assess",
    "select_action",
    # Incidents and pacing
    "CandidateIncident",
    "IncidentType",
    "IncidentPriority",
    "GENERATORS",
    "default_generators",
    "PacingScheduler",
    "SchedulerOutcome",
    "SchedulerPhase",
    "QuietReason",
    "select_winner",
    # Turn engine
    "TurnOrchestrator",
    "TurnPhase",
    "TurnError",
    "InvalidPhaseError",
    "advance_turn",
]
