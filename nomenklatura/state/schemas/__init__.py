"""
Report schemas for the Nomenklatura turn engine.

    EconomicReport + MacroReport + DiplomaticReport + PoliticalEvent
        → TurnReport

All schemas are Pydantic BaseModel for validation and JSON serialization.
"""

from .event import TurnEvent
from .reports import (
    DiplomaticReport,
    EconomicReport,
    FiredIncident,
    MacroReport,
    PoliticalEvent,
    PoliticalEventKind,
)
from .turn_report import TurnReport

__all__ = [
    # Engine reports
    "EconomicReport",
    "MacroReport",
    "DiplomaticReport",
    "PoliticalEvent",
    "PoliticalEventKind",
    "FiredIncident",
    # Turn output
    "TurnReport",
    # Audit
    "TurnEvent",
]
