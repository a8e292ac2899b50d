"""
Strategic assessment for the General Secretary.

Reads the political situation from the GS's point of view and recommends
one action for the turn:

    assess(gs, state) -> StrategicAssessment
    select_action(assessment, gs, state) -> GSAction | None

Pure: nothing here mutates state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..state.schema import CharacterStatus

if TYPE_CHECKING:
    from ..state.schema import Character, GameState


class ThreatType(str, Enum):
    AMBITIOUS_RIVAL = "ambitious_rival"
    HOSTILE_MEMBER = "hostile_member"
    FACTION_OPPOSITION = "faction_opposition"
    INSTABILITY = "instability"
    MILITARY_UNREST = "military_unrest"
    POPULAR_UNREST = "popular_unrest"


class OpportunityType(str, Enum):
    POLICY_CHANGE = "policy_change"
    APPOINTMENT = "appointment"
    PURGE = "purge"


class Strategy(str, Enum):
    STABILIZE = "stabilize"
    ELIMINATE_THREAT = "eliminate_threat"
    CONSOLIDATE = "consolidate"
    BUILD_COALITION = "build_coalition"
    EXPAND = "expand"
    MAINTAIN = "maintain"


class GSActionType(str, Enum):
    PROPOSE_POLICY = "propose_policy"
    DECREE = "decree"
    TARGET_RIVAL = "target_rival"
    APPOINT_LOYALIST = "appoint_loyalist"
    BUILD_SUPPORT = "build_support"


class PowerLevel(str, Enum):
    SECURE = "secure"
    STABLE = "stable"
    PRECARIOUS = "precarious"
    CRITICAL = "critical"


class BalanceState(str, Enum):
    DOMINANT = "dominant"
    CONTESTED = "contested"
    WEAKENED = "weakened"


@dataclass
class Threat:
    threat_type: ThreatType
    severity: int
    description: str = ""
    character_id: str | None = None
    faction_id: str | None = None


@dataclass
class Opportunity:
    opportunity_type: OpportunityType
    value: int
    description: str = ""
    slot_id: str | None = None
    option_id: str | None = None
    character_id: str | None = None


@dataclass
class CommitteeLoyalty:
    overall: int = 50
    loyal: list[str] = field(default_factory=list)
    hostile: list[str] = field(default_factory=list)
    uncommitted: list[str] = field(default_factory=list)


@dataclass
class FactionBalance:
    gs_power: int = 0
    opposition_power: int = 0
    neutral_power: int = 0
    balance: BalanceState = BalanceState.CONTESTED


@dataclass
class PowerStability:
    overall: int
    factors: dict[str, int]
    level: PowerLevel


@dataclass
class StrategicAssessment:
    threats: list[Threat]
    opportunities: list[Opportunity]
    committee: CommitteeLoyalty
    factions: FactionBalance
    stability: PowerStability
    strategy: Strategy


@dataclass
class GSAction:
    action_type: GSActionType
    priority: int
    reason: str = ""
    slot_id: str | None = None
    option_id: str | None = None
    character_id: str | None = None
    faction_id: str | None = None


# (slot, desired option, value, description)
POLICY_OPPORTUNITIES: list[tuple[str, str, int, str]] = [
    ("presidium_term_limits", "term_limits_life_tenure", 9, "Abolish term limits to secure indefinite rule"),
    ("presidium_emergency_powers", "emergency_gs_unilateral", 8, "Expand emergency powers for unilateral action"),
    ("presidium_succession_rules", "succession_gs_designates", 7, "Control who succeeds you"),
    ("security_surveillance_scope", "surveillance_universal", 6, "Expand surveillance to monitor threats"),
]

FULL_COMMITTEE = 7


def _active_members(gs: "Character", state: "GameState") -> list["Character"]:
    if state.committee is None:
        return []
    members = []
    for member_id in state.committee.member_ids:
        if member_id == gs.character_id:
            continue
        member = state.character(member_id)
        if member is not None and member.is_active:
            members.append(member)
    return members


# ─── Assessment ──────────────────────────────────────────────

def identify_threats(gs: "Character", state: "GameState") -> list[Threat]:
    """Threats to the GS, most severe first."""
    threats: list[Threat] = []

    for member in _active_members(gs, state):
        if member.ambition > 70 and member.loyalty < 50:
            threats.append(Threat(
                ThreatType.AMBITIOUS_RIVAL,
                severity=(member.ambition + (100 - member.loyalty)) // 2 // 10,
                description=f"{member.name} is ambitious and not fully loyal",
                character_id=member.character_id,
            ))
        if member.disposition < 30:
            threats.append(Threat(
                ThreatType.HOSTILE_MEMBER,
                severity=(50 - member.disposition) // 10,
                description=f"{member.name} harbors resentment",
                character_id=member.character_id,
            ))

    for faction in state.factions:
        if faction.faction_id == gs.faction_id:
            continue
        if faction.power > 70 and faction.player_standing < 40:
            threats.append(Threat(
                ThreatType.FACTION_OPPOSITION,
                severity=faction.power // 15,
                description=f"The {faction.name or faction.faction_id} faction is powerful and hostile",
                faction_id=faction.faction_id,
            ))

    stats = state.stats
    if stats.stability < 40:
        threats.append(Threat(ThreatType.INSTABILITY, (50 - stats.stability) // 10,
                              "Political instability threatens authority"))
    if stats.military_loyalty < 50:
        threats.append(Threat(ThreatType.MILITARY_UNREST, (60 - stats.military_loyalty) // 10,
                              "The military's loyalty is questionable"))
    if stats.popular_support < 35:
        threats.append(Threat(ThreatType.POPULAR_UNREST, (50 - stats.popular_support) // 10,
                              "Popular discontent is growing"))

    threats.sort(key=lambda t: -t.severity)
    return threats


def identify_opportunities(gs: "Character", state: "GameState") -> list[Opportunity]:
    """Ways for the GS to gain power, most valuable first."""
    opportunities: list[Opportunity] = []

    for slot_id, option_id, value, description in POLICY_OPPORTUNITIES:
        slot = state.policy_slot(slot_id)
        if slot is not None and slot.current_option_id != option_id:
            opportunities.append(Opportunity(
                OpportunityType.POLICY_CHANGE, value, description,
                slot_id=slot_id, option_id=option_id,
            ))

    if state.committee is not None and len(state.committee.member_ids) < FULL_COMMITTEE:
        opportunities.append(Opportunity(
            OpportunityType.APPOINTMENT, 7, "Fill Standing Committee vacancy with a loyalist",
        ))

    for character in state.characters:
        if not character.is_active or character.is_patron or character.character_id == gs.character_id:
            continue
        vulnerable = character.corruption > 60 or character.disposition < 20
        if vulnerable and character.status == CharacterStatus.UNDER_INVESTIGATION:
            opportunities.append(Opportunity(
                OpportunityType.PURGE, 5, f"{character.name} is vulnerable and can be removed",
                character_id=character.character_id,
            ))

    opportunities.sort(key=lambda o: -o.value)
    return opportunities


def assess_committee(gs: "Character", state: "GameState") -> CommitteeLoyalty:
    result = CommitteeLoyalty()
    members = _active_members(gs, state)
    if not members:
        return result

    total = 0
    for member in members:
        score = member.loyalty
        if gs.faction_id and member.faction_id == gs.faction_id:
            score += 20
        score += member.disposition // 4
        score += member.fear_level // 5
        score -= member.grudge_level // 3
        score = max(0, min(100, score))
        total += score

        if score >= 70:
            result.loyal.append(member.character_id)
        elif score < 40:
            result.hostile.append(member.character_id)
        else:
            result.uncommitted.append(member.character_id)

    result.overall = total // len(members)
    return result


def assess_factions(gs: "Character", state: "GameState") -> FactionBalance:
    result = FactionBalance()
    for faction in state.factions:
        if faction.faction_id == gs.faction_id:
            result.gs_power = faction.power
        elif faction.player_standing < 40:
            result.opposition_power += faction.power
        else:
            result.neutral_power += faction.power

    if result.gs_power > result.opposition_power + 20:
        result.balance = BalanceState.DOMINANT
    elif result.gs_power < result.opposition_power - 20:
        result.balance = BalanceState.WEAKENED
    return result


def assess_power(gs: "Character", state: "GameState") -> PowerStability:
    factors = {
        "state_stability": state.stats.stability,
        "elite_loyalty": state.stats.elite_loyalty,
        "military_loyalty": state.stats.military_loyalty,
    }
    faction = state.faction(gs.faction_id) if gs.faction_id else None
    if faction is not None:
        factors["faction_power"] = faction.power

    overall = sum(factors.values()) // len(factors)
    if overall >= 70:
        level = PowerLevel.SECURE
    elif overall >= 50:
        level = PowerLevel.STABLE
    elif overall >= 30:
        level = PowerLevel.PRECARIOUS
    else:
        level = PowerLevel.CRITICAL
    return PowerStability(overall=overall, factors=factors, level=level)


def determine_strategy(
    gs: "Character",
    threats: list[Threat],
    opportunities: list[Opportunity],
    committee: CommitteeLoyalty,
    power: PowerStability,
) -> Strategy:
    if power.level == PowerLevel.CRITICAL:
        return Strategy.STABILIZE
    if threats and threats[0].severity >= 7:
        return Strategy.ELIMINATE_THREAT
    if gs.ambition > 60 and opportunities:
        return Strategy.CONSOLIDATE
    if committee.overall < 50:
        return Strategy.BUILD_COALITION
    if power.level == PowerLevel.SECURE and opportunities:
        return Strategy.EXPAND
    return Strategy.MAINTAIN


def assess(gs: "Character", state: "GameState") -> StrategicAssessment:
    """Full strategic read of the situation for this turn."""
    threats = identify_threats(gs, state)
    opportunities = identify_opportunities(gs, state)
    committee = assess_committee(gs, state)
    factions = assess_factions(gs, state)
    power = assess_power(gs, state)
    return StrategicAssessment(
        threats=threats,
        opportunities=opportunities,
        committee=committee,
        factions=factions,
        stability=power,
        strategy=determine_strategy(gs, threats, opportunities, committee, power),
    )


# ─── Action Selection ────────────────────────────────────────

def _policy_touching_faction(state: "GameState", faction_id: str, hurt: bool) -> tuple[str, str] | None:
    """First non-current option that hurts (or benefits) a faction."""
    for slot in state.policy_slots:
        for option in slot.options:
            group = option.losers if hurt else option.beneficiaries
            if faction_id in group and slot.current_option_id != option.id:
                return slot.slot_id, option.id
    return None


def _stabilize(assessment: StrategicAssessment) -> GSAction | None:
    factors = assessment.stability.factors
    weakest = min(factors, key=factors.get)
    if weakest == "military_loyalty":
        return GSAction(GSActionType.PROPOSE_POLICY, 9, "Shore up military support",
                        slot_id="military_budget_control", option_id="budget_military_staff")
    if weakest == "state_stability":
        return GSAction(GSActionType.DECREE, 8, "Stabilize through security measures",
                        slot_id="security_surveillance_scope", option_id="surveillance_targeted")
    return None


def _eliminate(assessment: StrategicAssessment, state: "GameState") -> GSAction | None:
    if not assessment.threats:
        return None
    top = assessment.threats[0]
    if top.threat_type in (ThreatType.AMBITIOUS_RIVAL, ThreatType.HOSTILE_MEMBER):
        return GSAction(GSActionType.TARGET_RIVAL, 9, f"Neutralize threat: {top.description}",
                        character_id=top.character_id)
    if top.threat_type == ThreatType.FACTION_OPPOSITION and top.faction_id:
        policy = _policy_touching_faction(state, top.faction_id, hurt=True)
        if policy:
            return GSAction(GSActionType.PROPOSE_POLICY, 8, f"Weaken {top.faction_id}",
                            slot_id=policy[0], option_id=policy[1], faction_id=top.faction_id)
        return None
    return _stabilize(assessment)


def _consolidate(assessment: StrategicAssessment, state: "GameState") -> GSAction | None:
    if not assessment.opportunities:
        return None
    best = assessment.opportunities[0]
    if best.opportunity_type == OpportunityType.POLICY_CHANGE:
        use_decree = state.decrees_enabled and assessment.stability.level == PowerLevel.SECURE
        return GSAction(
            GSActionType.DECREE if use_decree else GSActionType.PROPOSE_POLICY,
            best.value, best.description,
            slot_id=best.slot_id, option_id=best.option_id,
        )
    if best.opportunity_type == OpportunityType.APPOINTMENT:
        return GSAction(GSActionType.APPOINT_LOYALIST, best.value, best.description)
    return GSAction(GSActionType.TARGET_RIVAL, best.value, best.description,
                    character_id=best.character_id)


def _coalition(assessment: StrategicAssessment, state: "GameState") -> GSAction | None:
    for faction in state.factions:
        if 40 <= faction.player_standing < 60:
            policy = _policy_touching_faction(state, faction.faction_id, hurt=False)
            if policy:
                return GSAction(GSActionType.PROPOSE_POLICY, 6,
                                f"Win support from {faction.name or faction.faction_id}",
                                slot_id=policy[0], option_id=policy[1],
                                faction_id=faction.faction_id)
    # No policy to trade: court a wavering member directly
    if assessment.committee.uncommitted:
        return GSAction(GSActionType.BUILD_SUPPORT, 5, "Court an uncommitted committee member",
                        character_id=assessment.committee.uncommitted[0])
    return None


def select_action(
    assessment: StrategicAssessment,
    gs: "Character",
    state: "GameState",
) -> GSAction | None:
    """Pick the GS's move for the recommended strategy. None means hold."""
    strategy = assessment.strategy
    if strategy == Strategy.STABILIZE:
        return _stabilize(assessment)
    if strategy == Strategy.ELIMINATE_THREAT:
        return _eliminate(assessment, state)
    if strategy in (Strategy.CONSOLIDATE, Strategy.EXPAND):
        return _consolidate(assessment, state)
    if strategy == Strategy.BUILD_COALITION:
        return _coalition(assessment, state)
    return None
