"""
Pacing and cooldown rules as pure functions.

The scheduler sequences these; none of them mutate state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..state.schema import CooldownEntry, GameState, PacingState
    from ..systems.incidents import IncidentPriority, IncidentType


def is_position_appropriate(
    incident_type: "IncidentType",
    position_index: int,
    gates: dict,
) -> bool:
    """
    Whether an incident type suits the player's rank.

    Args:
        incident_type: The candidate's type
        position_index: Player's current position (0 = lowest)
        gates: Mapping of type value -> [minimum, maximum or None]

    Returns:
        True if the player's position lies inside the gate. Types with no
        gate entry are always appropriate.
    """
    gate = gates.get(incident_type.value)
    if not gate:
        return True
    minimum, maximum = gate[0], gate[1] if len(gate) > 1 else None
    if minimum is not None and position_index < minimum:
        return False
    if maximum is not None and position_index > maximum:
        return False
    return True


def is_on_cooldown(
    incident_type: "IncidentType",
    priority: "IncidentPriority",
    turn: int,
    cooldowns: dict[str, "CooldownEntry"],
    priority_cooldowns: dict[str, int],
) -> bool:
    """
    Cooldown check for a candidate.

    A type with no cooldown entry is never on cooldown. Urgent-or-above
    candidates are held only for the reduced window of their priority:
    a window of 1 holds the turn after the type last fired.
    """
    entry = cooldowns.get(incident_type.value)
    if entry is None:
        return False
    if turn >= entry.expires_turn:
        return False
    if priority.is_urgent:
        reduced = priority_cooldowns.get(priority.value, 1)
        return turn <= entry.fired_turn + reduced
    return True


def should_force_quiet(pacing: "PacingState", config: dict) -> bool:
    """Counter at or over the ceiling forces a quiet turn."""
    return pacing.consecutive_event_turns >= config["max_consecutive_event_turns"]


def quiet_chance(state: "GameState", config: dict) -> float:
    """
    Probability that this turn is quiet, clamped to [0, 1].

    Early turns lean quiet to establish rhythm; each consecutive event turn
    makes a pause more likely; tension makes one less likely.
    """
    chance = config["quiet_chance_base"]
    # Added to the tension modifiers below rather than replacing them
    if state.turn_number <= config["early_game_turns"]:
        chance += config["early_game_bonus"]

    chance += state.pacing.consecutive_event_turns * config["per_consecutive_turn"]

    stats = state.stats
    if stats.stability < config["low_stability_threshold"]:
        chance -= config["low_stability_reduction"]
    if stats.rival_threat > config["high_rival_threshold"]:
        chance -= config["high_rival_reduction"]
    if stats.patron_favor < config["low_favor_threshold"]:
        chance -= config["low_favor_reduction"]

    return max(0.0, min(1.0, chance))


def incident_cap(state: "GameState", config: dict) -> int:
    """How many incidents may fire this turn: more during a crisis."""
    stats = state.stats
    in_crisis = (
        stats.stability < config["crisis_stability"]
        or stats.rival_threat > config["crisis_rival_threat"]
        or stats.patron_favor < config["crisis_patron_favor"]
    )
    if in_crisis:
        return config["crisis_max_incidents_per_turn"]
    return config["max_incidents_per_turn"]


def next_consecutive_count(current: int, fired: bool, fired_last_turn: bool) -> int:
    """
    Consecutive-event-turn counter after a non-forced turn.

    Firing increments once per turn. A quiet turn after a firing turn
    steps the counter down; a quiet turn after a quiet turn clears it.
    """
    if fired:
        return current + 1
    if fired_last_turn:
        return max(0, current - 1)
    return 0
