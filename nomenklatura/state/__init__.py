"""State management for Nomenklatura games."""

from .schema import (
    GameState,
    NationalStats,
    EconomyState,
    Region,
    ForeignCountry,
    Treaty,
    WorldEvent,
    PolicySlot,
    PolicyOption,
    PolicyEffects,
    PolicyChangeRecord,
    VoteResult,
    Character,
    Goal,
    Faction,
    StandingCommittee,
    CongressSession,
    ShowTrial,
    HistoryEntry,
    CooldownEntry,
    PacingState,
    IncidentRecord,
    PoliticalBloc,
    GovernmentType,
    TreatyType,
    WorldEventType,
    LawCategory,
    RegionType,
    EconomicSystemType,
    EconomicCrisisType,
    CharacterStatus,
    CongressStatus,
    TrialPhase,
    generate_id,
)
from .store import ScenarioError, load_scenario, save_game
from .event_bus import EventBus, EventType, GameEvent

__all__ = [
    # Schema
    "GameState",
    "NationalStats",
    "EconomyState",
    "Region",
    "ForeignCountry",
    "Treaty",
    "WorldEvent",
    "PolicySlot",
    "PolicyOption",
    "PolicyEffects",
    "PolicyChangeRecord",
    "VoteResult",
    "Character",
    "Goal",
    "Faction",
    "StandingCommittee",
    "CongressSession",
    "ShowTrial",
    "HistoryEntry",
    "CooldownEntry",
    "PacingState",
    "IncidentRecord",
    # Enums
    "PoliticalBloc",
    "GovernmentType",
    "TreatyType",
    "WorldEventType",
    "LawCategory",
    "RegionType",
    "EconomicSystemType",
    "EconomicCrisisType",
    "CharacterStatus",
    "CongressStatus",
    "TrialPhase",
    "generate_id",
    # Store
    "ScenarioError",
    "load_scenario",
    "save_game",
    # Events
    "EventBus",
    "EventType",
    "GameEvent",
]
