"""
TurnReport schema: the output of advance_turn.

Design invariants:
- state_snapshot is taken after every engine and the scheduler have run
- seed is recorded so the turn can be replayed against the same input state
- suppressed holds urgent incidents that lost out to pacing or the cap
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .event import TurnEvent
from .reports import (
    DiplomaticReport,
    EconomicReport,
    FiredIncident,
    MacroReport,
    PoliticalEvent,
)


class TurnReport(BaseModel):
    """Complete result of one orchestration pass."""
    turn_number: int
    seed: int | None = None

    ledger: EconomicReport
    treasury_delta: int = 0
    macro: MacroReport
    diplomacy: DiplomaticReport = Field(default_factory=DiplomaticReport)
    political_events: list[PoliticalEvent] = Field(default_factory=list)

    incidents: list[FiredIncident] = Field(default_factory=list)
    quiet: bool = False
    quiet_reason: str | None = None
    suppressed: list[FiredIncident] = Field(default_factory=list)

    events: list[TurnEvent] = Field(default_factory=list)
    state_snapshot: dict = Field(default_factory=dict)

    completed_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_incident(self) -> bool:
        return bool(self.incidents)

    @property
    def event_summary(self) -> list[str]:
        """Human-readable summary of audit events for quick display."""
        return [f"[{e.event_type}] {e.summary}" for e in self.events if e.summary]
