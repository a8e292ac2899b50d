"""
Candidate incident generators.

Each generator reads state and proposes zero or more CandidateIncidents.
Generators never write to state: anything that must be remembered if the
incident fires (callback flags, NPC action turns) travels as a commit
marker on the candidate and is applied by the scheduler on selection.

    generator(state, dice, config) -> list[CandidateIncident]

default_generators(balance) returns them bound to a balance config, in
registration order.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Callable

from ..config import DEFAULT_BALANCE
from ..state.schema import CongressStatus, TrialPhase, WorldEventType
from .incidents import CandidateIncident, IncidentPriority, IncidentType

if TYPE_CHECKING:
    from ..state.schema import Character, GameState
    from ..tools.dice import Dice

logger = logging.getLogger(__name__)

Generator = Callable[["GameState", "Dice"], list[CandidateIncident]]


def _config(config: dict | None) -> dict:
    return config if config is not None else DEFAULT_BALANCE["incidents"]


def _label(character: "Character") -> str:
    return character.name or character.character_id


# ─── Patron ──────────────────────────────────────────────────

def patron_events(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """At most one patron incident, most severe first."""
    patron = state.patron
    if patron is None:
        return []

    favor = state.stats.patron_favor
    stability = state.stats.stability
    ids = [patron.character_id]
    name = _label(patron)

    if favor < 20 and dice.chance(0.40):
        return [CandidateIncident(
            IncidentType.CHARACTER_SUMMONS, IncidentPriority.URGENT,
            "Summoned", f"{name} wants to see you. Now.",
            target_ids=ids, source="patron", payload={"kind": "summons", "favor": favor},
        )]
    if stability < 30 and dice.chance(0.20 + (30 - stability) / 100):
        return [CandidateIncident(
            IncidentType.PATRON_DIRECTIVE, IncidentPriority.ELEVATED,
            "Orders From Above", f"{name} expects order restored in your department.",
            target_ids=ids, source="patron", payload={"kind": "directive", "stability": stability},
        )]
    if favor < 35 and dice.chance(0.15 + (35 - favor) / 100):
        return [CandidateIncident(
            IncidentType.PATRON_DIRECTIVE, IncidentPriority.ELEVATED,
            "A Word of Warning", f"{name} has noticed your recent missteps.",
            target_ids=ids, source="patron", payload={"kind": "warning", "favor": favor},
        )]
    if favor > 75 and dice.chance(0.10 + (favor - 75) / 100):
        return [CandidateIncident(
            IncidentType.PATRON_DIRECTIVE, IncidentPriority.NORMAL,
            "An Opportunity", f"{name} has a task that could advance your career.",
            target_ids=ids, source="patron", payload={"kind": "opportunity", "favor": favor},
        )]
    return []


# ─── Rival ───────────────────────────────────────────────────

def rival_action_chance(rival: "Character", state: "GameState", config: dict | None = None) -> float:
    cfg = _config(config)
    chance = cfg["rival_base_chance"]
    chance += state.stats.rival_threat / 400
    if state.stats.standing < 30:
        chance += 0.10
    if state.stats.patron_favor < 40:
        chance += 0.08
    chance += rival.ambition / 800
    chance -= rival.paranoia / 500
    return max(0.0, min(cfg["rival_max_chance"], chance))


def rival_events(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    rival = state.primary_rival
    if rival is None:
        return []
    if not dice.chance(rival_action_chance(rival, state, config)):
        return []

    threat = state.stats.rival_threat
    name = _label(rival)
    ids = [rival.character_id]
    if threat > 70:
        return [CandidateIncident(
            IncidentType.RIVAL_ACTION, IncidentPriority.ELEVATED,
            "A Move Against You", f"{name} has questioned your competence before the Committee.",
            target_ids=ids, source="rival", payload={"kind": "attack", "threat": threat},
        )]
    if threat > 50:
        return [CandidateIncident(
            IncidentType.RIVAL_ACTION, IncidentPriority.NORMAL,
            "Rumors Spread", f"{name} has been asking questions about your methods.",
            target_ids=ids, source="rival", payload={"kind": "scheme", "threat": threat},
        )]
    return [CandidateIncident(
        IncidentType.RIVAL_ACTION, IncidentPriority.BACKGROUND,
        "Testing the Waters", f"{name} sounds you out after the morning briefing.",
        target_ids=ids, source="rival", payload={"kind": "probe", "threat": threat},
    )]


# ─── Allies ──────────────────────────────────────────────────

def ally_events(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """One well-disposed character may reach out."""
    cfg = _config(config)
    for ally in state.characters:
        if not ally.is_active or ally.is_patron or ally.is_rival:
            continue
        if ally.disposition < cfg["ally_disposition"]:
            continue
        if not dice.chance((ally.disposition - 60) / 200 + 0.05):
            continue
        if ally.disposition > 80:
            return [CandidateIncident(
                IncidentType.CHARACTER_MESSAGE, IncidentPriority.NORMAL,
                "A Friendly Warning", f"{_label(ally)} shares something you should know.",
                target_ids=[ally.character_id], source="ally", payload={"kind": "intel"},
            )]
        return [CandidateIncident(
            IncidentType.ALLY_REQUEST, IncidentPriority.NORMAL,
            "A Favor Asked", f"{_label(ally)} needs your help with a delicate matter.",
            target_ids=[ally.character_id], source="ally", payload={"kind": "request"},
        )]
    return []


# ─── Consequences ────────────────────────────────────────────

def consequence_callbacks(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """
    Past decisions with a follow-up hook resurface after a few turns.

    The chance grows with time. Each decision calls back at most once,
    tracked by a callback flag committed on firing.
    """
    cfg = _config(config)
    for entry in state.history:
        if entry.kind != "decision" or not entry.follow_up_hook:
            continue
        turns_since = state.turn_number - entry.turn
        if not cfg["callback_min_turns"] <= turns_since <= cfg["callback_max_turns"]:
            continue
        flag = f"callback_{entry.id}"
        if state.has_flag(flag):
            continue
        if dice.chance((turns_since - 1) * 0.08 + 0.05):
            return [CandidateIncident(
                IncidentType.CONSEQUENCE_CALLBACK, IncidentPriority.ELEVATED,
                "Echoes of the Past", entry.follow_up_hook,
                source="consequence_callback",
                payload={"history_id": entry.id, "decision_turn": entry.turn},
                flags=[flag],
            )]
    return []


# ─── Urgent crises ───────────────────────────────────────────

# (stat, threshold, chance, title, text)
STAT_CRISES: list[tuple[str, int, float, str, str]] = [
    ("stability", 25, 0.35, "UNREST SPREADING", "Protests in the industrial districts. Quotas missed."),
    ("food_supply", 25, 0.35, "FOOD CRISIS DEEPENING", "Bread lines grow longer by the day."),
    ("military_loyalty", 25, 0.30, "MILITARY DISCONTENT", "Officers grumble about civilian interference."),
]


def urgent_stat_crisis(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    for stat, threshold, chance, title, text in STAT_CRISES:
        value = state.get_stat(stat)
        if value < threshold and dice.chance(chance):
            return [CandidateIncident(
                IncidentType.URGENT_INTERRUPTION, IncidentPriority.URGENT,
                title, text, source="urgent_stat_crisis",
                payload={"stat": stat, "value": value},
            )]
    return []


# ─── Ambient tension ─────────────────────────────────────────

def ambient_tension(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """Foreshadowing while pressure builds but before it breaks."""
    cfg = _config(config)
    if state.turn_number <= cfg["ambient_min_turn"]:
        return []

    chances = cfg["ambient_chances"]
    stats = state.stats
    candidates = []
    if 50 < stats.rival_threat < 80 and dice.chance(chances["rival_plotting"]):
        candidates.append(CandidateIncident(
            IncidentType.AMBIENT_TENSION, IncidentPriority.BACKGROUND,
            "Closed Doors", "Conversations stop when you enter the room.",
            source="ambient_tension", payload={"kind": "rival_plotting"},
        ))
    if 30 < stats.patron_favor < 50 and dice.chance(chances["patron_distant"]):
        candidates.append(CandidateIncident(
            IncidentType.AMBIENT_TENSION, IncidentPriority.BACKGROUND,
            "A Cooler Greeting", "Your patron's secretary no longer offers tea.",
            source="ambient_tension", payload={"kind": "patron_distant"},
        ))
    if 30 < stats.stability < 50 and dice.chance(chances["general_unease"]):
        candidates.append(CandidateIncident(
            IncidentType.AMBIENT_TENSION, IncidentPriority.BACKGROUND,
            "Unease", "The mood in the ministry is brittle.",
            source="ambient_tension", payload={"kind": "general_unease"},
        ))
    return candidates


# ─── Network intelligence ────────────────────────────────────

def network_intel(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    network = state.stats.network
    if network < 30:
        return []
    if not dice.chance(0.10 + (network - 30) / 280):
        return []
    high_quality = network >= 70 and dice.chance(0.3)
    return [CandidateIncident(
        IncidentType.NETWORK_INTEL,
        IncidentPriority.ELEVATED if high_quality else IncidentPriority.NORMAL,
        "Word From Your Contacts",
        "Your network has picked up something worth hearing.",
        source="network_intel",
        payload={"quality": "high" if high_quality else "routine", "network": network},
    )]


# ─── NPC autonomous actions ──────────────────────────────────

# (action, trait, threshold, incident type, priority)
NPC_ACTIONS: list[tuple[str, str, int, IncidentType, IncidentPriority]] = [
    ("denounce", "ruthlessness", 60, IncidentType.NETWORK_INTEL, IncidentPriority.ELEVATED),
    ("spread_rumors", "competence", 60, IncidentType.NETWORK_INTEL, IncidentPriority.NORMAL),
    ("curry_favor", "ambition", 60, IncidentType.CHARACTER_MESSAGE, IncidentPriority.BACKGROUND),
    ("seek_protection", "paranoia", 60, IncidentType.CHARACTER_MESSAGE, IncidentPriority.BACKGROUND),
]
DEFAULT_NPC_ACTION = ("propose_reform", IncidentType.CHARACTER_MESSAGE, IncidentPriority.NORMAL)


def npc_motivation(actor: "Character") -> int:
    return (
        20
        + actor.ambition // 3
        + actor.ruthlessness // 4
        + actor.competence // 4
        + actor.paranoia // 5
        + (actor.position_index or 0) * 3
    )


def _npc_action(actor: "Character") -> tuple[str, IncidentType, IncidentPriority]:
    """The first action the actor's temperament leans toward."""
    for action, trait, threshold, incident_type, priority in NPC_ACTIONS:
        if getattr(actor, trait) > threshold:
            return action, incident_type, priority
    return DEFAULT_NPC_ACTION


def npc_autonomous_actions(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """
    NPCs scheming against each other.

    Higher positions act first, up to a per-turn limit; an NPC that acted
    recently sits out. Only the most notable action surfaces.
    """
    cfg = _config(config)
    npcs = [c for c in state.characters if c.is_active and not c.is_patron and not c.is_rival]
    npcs.sort(key=lambda c: -(c.position_index or 0))

    actions: list[CandidateIncident] = []
    for actor in npcs:
        if len(actions) >= cfg["npc_max_actions"]:
            break
        marker = f"npc_last_action_{actor.character_id}"
        last = state.variables.get(marker)
        if last is not None and last.isdigit() and state.turn_number - int(last) < cfg["npc_action_gap"]:
            continue
        if not dice.chance(0.25 + npc_motivation(actor) / 200):
            continue
        targets = [c for c in npcs if c.character_id != actor.character_id]
        if not targets:
            continue

        target = dice.choice(targets)
        action, incident_type, priority = _npc_action(actor)
        actions.append(CandidateIncident(
            incident_type, priority,
            f"{_label(actor)} Moves",
            f"{_label(actor)} has turned attention to {_label(target)} ({action.replace('_', ' ')}).",
            target_ids=[actor.character_id, target.character_id],
            source="npc_autonomous_action",
            payload={"action": action},
            variables={marker: str(state.turn_number)},
        ))

    if not actions:
        return []
    return [max(actions, key=lambda c: c.priority.rank)]


# ─── Assassination risk ──────────────────────────────────────

def assassination_risk(state: "GameState") -> int:
    """Danger to the player's life, 0-100."""
    risk = 0
    rival = state.primary_rival
    if rival is not None:
        risk += rival.grudge_level // 2
        risk += rival.ruthlessness // 4

    hostile = [c for c in state.characters if c.is_active and c.disposition < -50 and c.ruthlessness > 50]
    risk += len(hostile) * 10

    risk -= state.stats.network // 2
    risk -= state.stats.patron_favor // 3

    if state.player_position_index >= 6:
        risk += 20

    old_guard = state.faction("old_guard")
    if old_guard is not None:
        risk -= old_guard.player_standing // 3

    if state.stats.stability < 40:
        risk += (40 - state.stats.stability) // 2

    return max(0, min(100, risk))


def assassination_events(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    risk = assassination_risk(state)
    turn = state.turn_number

    if turn > 5 and turn % 3 == 0 and risk > 60 and dice.chance((risk - 50) / 500):
        return [CandidateIncident(
            IncidentType.URGENT_INTERRUPTION, IncidentPriority.URGENT,
            "ATTEMPT ON YOUR LIFE", "Your car's brakes failed on the Ministry ramp.",
            source="assassination_risk", payload={"kind": "attempt", "risk": risk},
        )]
    if 40 < risk < 70 and dice.chance(0.05):
        return [CandidateIncident(
            IncidentType.NETWORK_INTEL, IncidentPriority.ELEVATED,
            "The Missing Dossier", "A file on your daily movements has vanished from the archive.",
            source="assassination_risk", payload={"kind": "warning", "risk": risk},
        )]
    return []


# ─── Party Congress ──────────────────────────────────────────

CONGRESS_PRIORITY: dict[CongressStatus, IncidentPriority] = {
    CongressStatus.CONVENING: IncidentPriority.ELEVATED,
    CongressStatus.DELIBERATING: IncidentPriority.NORMAL,
    CongressStatus.VOTING: IncidentPriority.NORMAL,
    CongressStatus.CONCLUDED: IncidentPriority.ELEVATED,
}


def congress_progression(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    session = state.current_congress
    if session is None or session.status_changed_turn != state.turn_number:
        return []
    return [CandidateIncident(
        IncidentType.WORLD_NEWS, CONGRESS_PRIORITY[session.status],
        f"Party Congress: {session.status.value.title()}",
        f"{session.delegates_present} delegates in the Great Hall.",
        target_ids=[session.session_id],
        source="congress_progression",
        payload={"status": session.status.value, "legitimacy": session.legitimacy_granted},
    )]


# ─── Tribunals ───────────────────────────────────────────────

def _purge_initiation(state: "GameState", dice: "Dice") -> CandidateIncident | None:
    instigators = [
        c for c in state.characters
        if c.is_active and (c.position_index or 0) >= 5 and c.ambition > 60 and c.ruthlessness > 50
    ]
    if not instigators:
        return None
    instigator = dice.choice(instigators)
    rank = instigator.position_index or 0
    targets = [
        c for c in state.characters
        if c.is_active
        and c.character_id != instigator.character_id
        and c.position_index is not None
        and abs(c.position_index - rank) <= 1
        and (c.is_rival or c.disposition < -20)
    ]
    if not targets:
        return None
    target = dice.choice(targets)
    return CandidateIncident(
        IncidentType.NETWORK_INTEL, IncidentPriority.ELEVATED,
        "Whispers of Accusation",
        f"{_label(instigator)} is assembling charges against {_label(target)}.",
        target_ids=[instigator.character_id, target.character_id],
        source="tribunal_progression",
        payload={"kind": "purge_initiation"},
    )


def tribunal_progression(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """Show trials that changed phase this turn, or rumours of a new one."""
    cfg = _config(config)
    turn = state.turn_number
    candidates = []
    for trial in state.show_trials:
        if trial.phase_changed_turn != turn:
            continue
        defendant = state.character(trial.defendant_id)
        name = _label(defendant) if defendant else trial.defendant_id
        candidates.append(CandidateIncident(
            IncidentType.WORLD_NEWS,
            IncidentPriority.ELEVATED if trial.phase == TrialPhase.VERDICT else IncidentPriority.NORMAL,
            f"The Trial of {name}",
            f"Proceedings against {name} ({trial.charge}): {trial.phase.value}.",
            target_ids=[trial.defendant_id],
            source="tribunal_progression",
            payload={"trial_id": trial.trial_id, "phase": trial.phase.value},
        ))

    if not state.active_trials and turn > 10 and dice.chance(cfg["purge_initiation_chance"]):
        initiation = _purge_initiation(state, dice)
        if initiation:
            candidates.append(initiation)
    return candidates


# ─── Corruption ──────────────────────────────────────────────

def corruption_trigger_chance(state: "GameState") -> int:
    """Percent chance per turn that an investigation is considered."""
    risk = max(state.stats.wealth_visibility, state.stats.corruption_evidence)
    if risk < 40:
        return 0
    if risk < 60:
        return 5
    if risk < 80:
        return 15
    return 30


def corruption_investigation(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    trigger = corruption_trigger_chance(state)
    if trigger == 0 or not dice.percentile(trigger).success:
        return []
    if not dice.chance(0.15):
        return []
    return [CandidateIncident(
        IncidentType.URGENT_INTERRUPTION, IncidentPriority.ELEVATED,
        "Questions About Your Finances",
        "The Party Control Commission has opened a file in your name.",
        source="corruption_investigation",
        payload={
            "wealth_visibility": state.stats.wealth_visibility,
            "corruption_evidence": state.stats.corruption_evidence,
        },
    )]


# ─── World news ──────────────────────────────────────────────

HEADLINE_EVENTS: set[WorldEventType] = {
    WorldEventType.COUP,
    WorldEventType.REVOLUTION,
    WorldEventType.PROXY_CONFLICT,
}


def world_news(state: "GameState", dice: "Dice", config: dict | None = None) -> list[CandidateIncident]:
    """This turn's world events and diplomatic crises, as news."""
    turn = state.turn_number
    candidates = []
    for event in state.world_events:
        if event.turn_occurred != turn:
            continue
        candidates.append(CandidateIncident(
            IncidentType.WORLD_NEWS,
            IncidentPriority.ELEVATED if event.event_type in HEADLINE_EVENTS else IncidentPriority.NORMAL,
            event.headline or event.event_type.value.replace("_", " ").title(),
            country_id=event.country_id,
            source="world_news",
            payload={"event_id": event.id, "event_type": event.event_type.value},
        ))

    for country in state.countries:
        if state.variables.get(f"diplomatic_crisis_{country.country_id}") == str(turn):
            candidates.append(CandidateIncident(
                IncidentType.WORLD_NEWS, IncidentPriority.ELEVATED,
                f"Crisis With {country.name or country.country_id}",
                f"Tension with {country.name or country.country_id} has reached breaking point.",
                country_id=country.country_id,
                source="world_news",
                payload={"kind": "diplomatic_crisis", "tension": country.diplomatic_tension},
            ))
    return candidates


# ─── Registry ────────────────────────────────────────────────

GENERATORS: list[tuple[str, Callable[..., list[CandidateIncident]]]] = [
    ("patron", patron_events),
    ("rival", rival_events),
    ("ally", ally_events),
    ("consequence_callback", consequence_callbacks),
    ("urgent_stat_crisis", urgent_stat_crisis),
    ("ambient_tension", ambient_tension),
    ("network_intel", network_intel),
    ("npc_autonomous_action", npc_autonomous_actions),
    ("assassination_risk", assassination_events),
    ("congress_progression", congress_progression),
    ("tribunal_progression", tribunal_progression),
    ("corruption_investigation", corruption_investigation),
    ("world_news", world_news),
]


def default_generators(balance: dict | None = None) -> list[tuple[str, Generator]]:
    """Registered generators bound to a balance config, in registration order."""
    config = (balance or DEFAULT_BALANCE)["incidents"]
    return [(name, partial(fn, config=config)) for name, fn in GENERATORS]
