"""
Game rules as pure functions.

Separates logic from data models for easier testing.
"""

from .pacing import (
    is_position_appropriate,
    is_on_cooldown,
    should_force_quiet,
    quiet_chance,
    incident_cap,
    next_consecutive_count,
)
from .policy import (
    PolicyPreference,
    build_agenda,
    faction_preferences,
    actionable,
    gs_power,
    decree_threshold,
    should_decree,
    member_power,
    act_chance,
    proposal_chance,
    simulate_vote,
    apply_policy_change,
    record_rejection,
)

__all__ = [
    # Pacing
    "is_position_appropriate",
    "is_on_cooldown",
    "should_force_quiet",
    "quiet_chance",
    "incident_cap",
    "next_consecutive_count",
    # Policy
    "PolicyPreference",
    "build_agenda",
    "faction_preferences",
    "actionable",
    "gs_power",
    "decree_threshold",
    "should_decree",
    "member_power",
    "act_chance",
    "proposal_chance",
    "simulate_vote",
    "apply_policy_change",
    "record_rejection",
]
