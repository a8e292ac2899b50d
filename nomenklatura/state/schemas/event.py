"""
TurnEvent schema: audit records produced while a turn advances.

Every engine emits TurnEvents as a record of what it changed. They never
mutate state; the engine applies the change and then records it.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field


class TurnEvent(BaseModel):
    """A single audit entry for the turn report."""
    event_id: str = Field(default_factory=lambda: str(uuid4())[:8])
    event_type: str  # e.g. "economy.ledger", "treaty.expired", "policy.decreed"
    turn: int = 0
    payload: dict = Field(default_factory=dict)
    # economy.ledger: {"net_change": -12, "applied": -12}
    # treaty.expired: {"country_id": "prussia", "treaty_type": "trade_agreement"}
    # policy.voted: {"slot_id": "...", "option_id": "...", "passed": False}

    # Human-readable summary for the turn feed
    summary: str = ""

    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def domain(self) -> str:
        """Leading segment of the event type ("economy", "policy", ...)."""
        return self.event_type.split(".", 1)[0]
