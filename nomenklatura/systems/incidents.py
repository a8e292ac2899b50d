"""
Candidate incidents for the pacing scheduler.

A candidate is a possible narrative interruption proposed by a generator.
Candidates are ephemeral: regenerated every turn from state, never
persisted. Only the scheduler's commit step writes anything back.
"""

from dataclasses import dataclass, field
from enum import Enum

from ..state.schemas.reports import FiredIncident


class IncidentType(str, Enum):
    """Kinds of narrative incident that can interrupt the player."""
    AMBIENT_TENSION = "ambient_tension"          # Foreshadowing, no action needed
    WORLD_NEWS = "world_news"                    # External events affecting player
    CHARACTER_MESSAGE = "character_message"      # NPC reaches out informally
    NETWORK_INTEL = "network_intel"              # Contacts share information
    ALLY_REQUEST = "ally_request"                # Ally asks for help
    RIVAL_ACTION = "rival_action"                # Rival makes a move
    PATRON_DIRECTIVE = "patron_directive"        # Patron gives orders or warnings
    CHARACTER_SUMMONS = "character_summons"      # NPC demands a meeting
    CONSEQUENCE_CALLBACK = "consequence_callback"  # Past decision resurfaces
    URGENT_INTERRUPTION = "urgent_interruption"  # Crisis breaks routine

    @property
    def display_name(self) -> str:
        return INCIDENT_DISPLAY_NAMES[self]


INCIDENT_DISPLAY_NAMES: dict[IncidentType, str] = {
    IncidentType.AMBIENT_TENSION: "Whispers",
    IncidentType.WORLD_NEWS: "News",
    IncidentType.CHARACTER_MESSAGE: "Message",
    IncidentType.NETWORK_INTEL: "Intelligence",
    IncidentType.ALLY_REQUEST: "Request",
    IncidentType.RIVAL_ACTION: "Rival Move",
    IncidentType.PATRON_DIRECTIVE: "From Your Patron",
    IncidentType.CHARACTER_SUMMONS: "Summons",
    IncidentType.CONSEQUENCE_CALLBACK: "Consequences",
    IncidentType.URGENT_INTERRUPTION: "Urgent",
}

class IncidentPriority(str, Enum):
    """Ordered priority: background < normal < elevated < urgent < critical."""
    BACKGROUND = "background"
    NORMAL = "normal"
    ELEVATED = "elevated"
    URGENT = "urgent"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]

    @property
    def is_urgent(self) -> bool:
        """Urgent-or-above priorities bypass the full cooldown."""
        return self.rank >= PRIORITY_RANK[IncidentPriority.URGENT]


PRIORITY_RANK: dict[IncidentPriority, int] = {
    IncidentPriority.BACKGROUND: 0,
    IncidentPriority.NORMAL: 1,
    IncidentPriority.ELEVATED: 2,
    IncidentPriority.URGENT: 3,
    IncidentPriority.CRITICAL: 4,
}

@dataclass
class CandidateIncident:
    """
    A potential incident (not persisted).

    flags and variables are commit markers: they are written to state only
    if the scheduler selects this candidate.
    """
    incident_type: IncidentType
    priority: IncidentPriority
    title: str
    text: str = ""
    payload: dict = field(default_factory=dict)
    target_ids: list[str] = field(default_factory=list)
    country_id: str | None = None
    source: str = ""  # Name of the generator that proposed it
    flags: list[str] = field(default_factory=list)
    variables: dict[str, str] = field(default_factory=dict)

    def to_fired(self) -> FiredIncident:
        return FiredIncident(
            incident_type=self.incident_type.value,
            priority=self.priority.value,
            title=self.title,
            text=self.text,
            source=self.source,
            target_ids=list(self.target_ids),
            country_id=self.country_id,
            payload=dict(self.payload),
        )
