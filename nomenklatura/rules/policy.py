"""
Policy rules as pure functions.

Agenda construction, decree authority, committee voting and the effect of
switching a policy slot's option. The political engine sequences these.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..state.schema import LawCategory, PolicyChangeRecord, VoteResult

if TYPE_CHECKING:
    from ..state.schema import Character, GameState, PolicyOption, PolicySlot
    from ..tools.dice import Dice

logger = logging.getLogger(__name__)


@dataclass
class PolicyPreference:
    """An NPC's wish to move a slot to a particular option."""
    slot_id: str
    option_id: str
    priority: int  # 1-10
    reason: str = ""


# ─── Agenda Tables ───────────────────────────────────────────

# (trait, threshold, preferences) - trait must exceed threshold
PERSONALITY_AGENDA: list[tuple[str, int, list[PolicyPreference]]] = [
    ("ambition", 70, [
        PolicyPreference("presidium_term_limits", "term_limits_life_tenure", 10, "personal ambition"),
        PolicyPreference("presidium_emergency_powers", "emergency_gs_unilateral", 8, "personal ambition"),
        PolicyPreference("presidium_succession_rules", "succession_gs_designates", 7, "personal ambition"),
    ]),
    ("paranoia", 60, [
        PolicyPreference("security_surveillance_scope", "surveillance_universal", 9, "fear of plots"),
        PolicyPreference("security_arrest_authority", "arrest_extrajudicial", 8, "fear of plots"),
    ]),
    ("ruthlessness", 70, [
        PolicyPreference("security_arrest_authority", "arrest_extrajudicial", 9, "ruthless streak"),
    ]),
    ("competence", 70, [
        PolicyPreference("economy_enterprise_management", "enterprise_manager_autonomy", 6, "economic competence"),
    ]),
]

FACTION_PREFERENCES: dict[str, list[PolicyPreference]] = {
    "old_guard": [
        PolicyPreference("economy_enterprise_management", "enterprise_central_quotas", 7),
        PolicyPreference("economy_private_enterprise", "private_prohibited", 8),
        PolicyPreference("propaganda_press_control", "press_total_control", 6),
        PolicyPreference("propaganda_religious_policy", "religion_active_suppression", 5),
    ],
    "reformists": [
        PolicyPreference("economy_enterprise_management", "enterprise_manager_autonomy", 7),
        PolicyPreference("economy_private_enterprise", "private_licensed_businesses", 8),
        PolicyPreference("economy_foreign_trade", "trade_joint_ventures", 6),
        PolicyPreference("propaganda_press_control", "press_limited_freedom", 5),
    ],
    "princelings": [
        PolicyPreference("presidium_succession_rules", "succession_gs_designates", 6),
        PolicyPreference("military_budget_control", "budget_military_staff", 7),
        PolicyPreference("economy_foreign_trade", "trade_open_zones", 5),
    ],
    "youth_league": [
        PolicyPreference("congress_delegate_selection", "delegates_local_councils", 7),
        PolicyPreference("congress_legislative_power", "congress_genuine_input", 6),
        PolicyPreference("regions_governor_appointment", "governor_regional_election", 5),
    ],
    "regional": [
        PolicyPreference("regions_autonomy_level", "autonomy_economic", 9),
        PolicyPreference("regions_resource_revenue", "revenue_regional_retention", 8),
        PolicyPreference("regions_governor_appointment", "governor_local_council", 7),
    ],
}


def faction_preferences(faction_id: str | None) -> list[PolicyPreference]:
    """Preference table for a faction, highest priority first."""
    prefs = FACTION_PREFERENCES.get(faction_id or "", [])
    return sorted(prefs, key=lambda p: -p.priority)


def build_agenda(character: "Character") -> list[PolicyPreference]:
    """
    Merge personality-driven and faction-driven preferences.

    One preference per slot. A faction preference replaces a personality
    one only when its priority is strictly higher.

    Returns:
        Preferences sorted by priority, highest first
    """
    by_slot: dict[str, PolicyPreference] = {}

    for trait, threshold, prefs in PERSONALITY_AGENDA:
        if getattr(character, trait) <= threshold:
            continue
        for pref in prefs:
            existing = by_slot.get(pref.slot_id)
            if existing is None or pref.priority > existing.priority:
                by_slot[pref.slot_id] = pref

    for pref in FACTION_PREFERENCES.get(character.faction_id or "", []):
        existing = by_slot.get(pref.slot_id)
        if existing is None or pref.priority > existing.priority:
            by_slot[pref.slot_id] = PolicyPreference(
                pref.slot_id, pref.option_id, pref.priority, "faction interest"
            )

    return sorted(by_slot.values(), key=lambda p: -p.priority)


def actionable(
    pref: PolicyPreference,
    state: "GameState",
    power: int,
    position_index: int,
    allow_institutional: bool = True,
) -> bool:
    """Whether a preference could be submitted right now."""
    slot = state.policy_slot(pref.slot_id)
    if slot is None or slot.has_pending_proposal:
        return False
    if not allow_institutional and slot.category == LawCategory.INSTITUTIONAL:
        return False
    allowed, _ = slot.can_change(
        pref.option_id, power, position_index, state.faction_standings()
    )
    return allowed


# ─── Decree Authority ────────────────────────────────────────

def gs_power(gs: "Character", state: "GameState", config: dict) -> int:
    """
    Effective power of the General Secretary, clamped to the configured bounds.

    Base power plus a third of the GS faction's power, a bonus per committee
    seat the faction holds, and a stability term.
    """
    power = config["gs_base_power"]

    faction = state.faction(gs.faction_id) if gs.faction_id else None
    if faction:
        power += faction.power // 3

    if state.committee and gs.faction_id:
        seats = state.committee.faction_balance(state.characters).get(gs.faction_id, 0)
        power += seats * config["committee_seat_power"]

    power += (state.stats.stability - 50) // 5

    low, high = config["gs_power_bounds"]
    return max(low, min(high, power))


def decree_threshold(gs: "Character", state: "GameState", config: dict) -> int:
    """Power needed to decree instead of proposing."""
    threshold = config["decree_threshold_base"]
    if gs.ambition > 70:
        threshold -= 15
    if gs.loyalty > 60:
        threshold += 10
    stability = state.stats.stability
    if stability > 70:
        threshold += 10
    elif stability < 40:
        threshold -= 15
    low, high = config["decree_threshold_bounds"]
    return max(low, min(high, threshold))


def should_decree(
    slot: "PolicySlot",
    priority: int,
    power: int,
    threshold: int,
    stability: int,
    decrees_enabled: bool = True,
) -> bool:
    """
    Decree when the matter is pressing and power allows it.

    Institutional slots are never decreed.
    """
    if not decrees_enabled or slot.category == LawCategory.INSTITUTIONAL:
        return False
    if priority >= 8 and power > threshold:
        return True
    if stability < 40 and priority >= 7 and power > threshold - 10:
        return True
    return False


def member_power(member: "Character", state: "GameState") -> int:
    """Weight a committee member carries behind a proposal: half their faction's power plus rank."""
    faction = state.faction(member.faction_id) if member.faction_id else None
    power = (faction.power // 2 if faction else 0) + (member.position_index or 0) * 5
    return max(0, min(100, power))


def act_chance(gs: "Character") -> int:
    """Percent chance the GS pursues the agenda this turn."""
    return min(30, 10 + gs.ambition // 5)


def proposal_chance(member: "Character") -> int:
    """Percent chance a committee member submits a proposal this turn."""
    return 5 + member.ambition // 10


# ─── Voting ──────────────────────────────────────────────────

VOTE_TRAITS = ("loyalty", "ambition", "paranoia", "ruthlessness", "corruption")


def _dominant_trait(member: "Character") -> str:
    return max(VOTE_TRAITS, key=lambda trait: getattr(member, trait))


def simulate_vote(
    slot: "PolicySlot",
    option: "PolicyOption",
    state: "GameState",
    dice: "Dice",
    gs_position_index: int = 8,
) -> VoteResult:
    """
    Standing Committee vote on moving slot to option.

    Each member scores the option from faction interest, temperament and
    noise; the chair votes on its own rule.
    """
    committee = state.committee
    if committee is None or not committee.member_ids:
        return VoteResult(in_favor=4, against=3, abstained=0)

    player_is_gs = state.player_position_index >= gs_position_index
    in_favor = against = abstained = 0

    for member_id in committee.member_ids:
        if member_id == committee.chair_id:
            continue
        member = state.character(member_id)
        if member is None or not member.is_active:
            continue

        score = 0
        if member.faction_id in option.beneficiaries:
            score += 30
        if member.faction_id in option.losers:
            score -= 30
        score += option.effects.faction_modifiers.get(member.faction_id or "", 0)

        trait = _dominant_trait(member)
        if trait == "loyalty" and player_is_gs:
            score += 20
        elif trait == "ambition" and option.is_extreme:
            score += 10
        elif trait == "paranoia" and option.is_extreme:
            score -= 20

        score += dice.spread(10)

        if score > 15:
            in_favor += 1
        elif score < -15:
            against += 1
        else:
            abstained += 1

    if committee.chair_id:
        effects = option.effects
        if player_is_gs or effects.enables_decrees or effects.prevents_succession:
            in_favor += 1
        else:
            abstained += 1

    unanimous = (against == 0 and abstained == 0) or (in_favor == 0 and abstained == 0)
    return VoteResult(
        in_favor=in_favor,
        against=against,
        abstained=abstained,
        unanimous=unanimous,
    )


# ─── Applying Changes ────────────────────────────────────────

def apply_policy_change(
    state: "GameState",
    slot: "PolicySlot",
    option_id: str,
    changed_by: str | None,
    was_decreed: bool,
    vote: VoteResult | None = None,
    by_player: bool = False,
) -> PolicyChangeRecord | None:
    """
    Switch slot to option_id and apply the stat and faction consequences.

    The previous option's stat modifiers are withdrawn before the new ones
    are applied. Returns the history record, or None for an unknown option.
    """
    new_option = slot.option(option_id)
    if new_option is None:
        logger.warning(f"Policy slot {slot.slot_id} has no option {option_id}")
        return None

    old_option = slot.current_option
    if old_option:
        for stat, amount in old_option.effects.stat_modifiers.items():
            state.apply_stat(stat, -amount)
    for stat, amount in new_option.effects.stat_modifiers.items():
        state.apply_stat(stat, amount)

    for faction_id, amount in new_option.effects.faction_modifiers.items():
        faction = state.faction(faction_id)
        if faction:
            faction.player_standing = max(0, min(100, faction.player_standing + amount))

    if new_option.effects.enables_decrees:
        state.decrees_enabled = True
    elif old_option and old_option.effects.enables_decrees:
        state.decrees_enabled = False

    if new_option.effects.prevents_succession:
        state.add_flag("term_limits_abolished")

    record = PolicyChangeRecord(
        slot_id=slot.slot_id,
        previous_option_id=slot.current_option_id,
        new_option_id=option_id,
        changed_by=changed_by,
        changed_by_player=by_player,
        turn_changed=state.turn_number,
        was_decreed=was_decreed,
        vote_result=vote,
        passed=True,
    )
    slot.current_option_id = option_id
    slot.change_history.append(record)
    slot.clear_pending_proposal()
    return record


def record_rejection(
    state: "GameState",
    slot: "PolicySlot",
    option_id: str,
    proposed_by: str | None,
    vote: VoteResult,
) -> PolicyChangeRecord:
    """Record a failed vote and clear the pending proposal."""
    record = PolicyChangeRecord(
        slot_id=slot.slot_id,
        previous_option_id=slot.current_option_id,
        new_option_id=option_id,
        changed_by=proposed_by,
        turn_changed=state.turn_number,
        was_decreed=False,
        vote_result=vote,
        passed=False,
    )
    slot.change_history.append(record)
    slot.clear_pending_proposal()
    return record
