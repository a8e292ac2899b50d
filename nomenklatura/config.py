"""
Balance configuration for the turn engine.

Every tunable constant the engines read lives in DEFAULT_BALANCE. A YAML
file can override any subset; load_balance deep-merges it over the
defaults so missing keys keep their default values.

Usage:
    balance = load_balance("balance.yaml")
    orchestrator = TurnOrchestrator(balance=balance)
"""

import copy
import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Balance file could not be read or is structurally invalid."""


# ─── Defaults ──────────────────────────────────────────────────

DEFAULT_BALANCE: dict = {
    "pacing": {
        "quiet_chance_base": 0.35,
        "early_game_turns": 3,
        "early_game_bonus": 0.25,
        "per_consecutive_turn": 0.15,
        "max_consecutive_event_turns": 2,
        "low_stability_threshold": 40,
        "low_stability_reduction": 0.15,
        "high_rival_threshold": 60,
        "high_rival_reduction": 0.10,
        "low_favor_threshold": 40,
        "low_favor_reduction": 0.10,
        "max_incidents_per_turn": 1,
        "crisis_max_incidents_per_turn": 2,
        "crisis_stability": 25,
        "crisis_rival_threat": 85,
        "crisis_patron_favor": 20,
    },
    # Full cooldown per incident type, in turns
    "cooldowns": {
        "patron_directive": 3,
        "character_summons": 4,
        "rival_action": 5,
        "consequence_callback": 2,
        "character_message": 3,
        "ambient_tension": 3,
        "urgent_interruption": 2,
        "network_intel": 3,
        "ally_request": 3,
        "world_news": 2,
    },
    # Turns an urgent-or-above candidate is held after its type fired
    "priority_cooldowns": {
        "urgent": 1,
        "critical": 1,
    },
    # [minimum, maximum] player position index per incident type
    "position_gates": {
        "ambient_tension": [0, 5],
        "world_news": [0, None],
        "character_message": [1, None],
        "network_intel": [2, None],
        "ally_request": [2, None],
        "rival_action": [2, None],
        "patron_directive": [1, None],
        "character_summons": [2, None],
        "consequence_callback": [0, None],
        "urgent_interruption": [3, None],
    },
    "economy": {
        "treasury_floor": -100,
        "domestic_minimum": 10,
        "military_base": 15,
        "social_base": 10,
        "soviet_debt": 5,
        "plan_turns_per_year": 4,
        "crisis_response": {
            "famine_ongoing": 15,
            "industrial_accident": 10,
            "natural_disaster": 12,
            "epidemic": 8,
        },
        "war_costs": {
            "war_with_canada": 25,
            "war_with_uk": 30,
            "war_with_japan": 20,
            "intervention_abroad": 15,
        },
        "resource_by_region": {
            "extractive": 15,
            "industrial": 5,
            "border": 3,
            "coastal": 4,
        },
    },
    "diplomacy": {
        "max_world_events": 3,
        "chain_lookback_turns": 3,
        "treaty_duration": 40,
        "base_probabilities": {
            "leadership_change": 0.02,
            "coup": 0.005,
            "revolution": 0.008,
            "purge": 0.03,
            "election_result": 0.02,
            "economic_crisis": 0.025,
            "industrial_accident": 0.02,
            "harvest_failure": 0.015,
            "trade_dispute": 0.03,
            "resource_discovery": 0.01,
            "border_incident": 0.04,
            "arms_build_up": 0.03,
            "defection": 0.015,
            "military_exercise": 0.04,
            "proxy_conflict": 0.02,
            "treaty_proposal": 0.025,
            "treaty_violation": 0.01,
            "ambassador_recall": 0.015,
            "summit_announcement": 0.02,
            "secret_negotiations": 0.015,
        },
        # past event -> {new event: multiplier}
        "chain_modifiers": {
            "border_incident": {"arms_build_up": 1.5, "military_exercise": 1.4, "ambassador_recall": 1.3},
            "arms_build_up": {"border_incident": 1.4, "proxy_conflict": 1.5, "treaty_violation": 1.3},
            "revolution": {"purge": 2.0, "economic_crisis": 1.5},
            "coup": {"purge": 2.0, "economic_crisis": 1.5},
            "economic_crisis": {"trade_dispute": 1.5, "revolution": 1.4, "harvest_failure": 1.3},
            "leadership_change": {"purge": 1.5, "treaty_proposal": 1.3},
            "treaty_proposal": {"summit_announcement": 1.6},
            "treaty_violation": {"ambassador_recall": 1.8, "border_incident": 1.4},
            "defection": {"secret_negotiations": 1.3, "ambassador_recall": 1.3},
        },
    },
    "politics": {
        "gs_position_index": 8,
        "gs_base_power": 80,
        "decree_threshold_base": 60,
        "decree_threshold_bounds": [40, 80],
        "gs_power_bounds": [30, 100],
        "committee_seat_power": 5,
        "faction_pressure_power": 60,
        "faction_pressure_chance": 0.05,
        "congress_interval": 4,
        "trial_phase_turns": 2,
    },
    "incidents": {
        "ambient_chances": {
            "rival_plotting": 0.15,
            "patron_distant": 0.12,
            "general_unease": 0.10,
        },
        "ambient_min_turn": 3,
        "rival_base_chance": 0.05,
        "rival_max_chance": 0.35,
        "ally_disposition": 65,
        "callback_min_turns": 2,
        "callback_max_turns": 10,
        "npc_max_actions": 3,
        "npc_action_gap": 2,
        "purge_initiation_chance": 0.03,
    },
}


# ─── Loading ───────────────────────────────────────────────────

def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into a copy of base; nested dicts merge key by key."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_balance() -> dict:
    """A private copy of the defaults, safe to mutate."""
    return copy.deepcopy(DEFAULT_BALANCE)


def load_balance(path: Path | str | None = None) -> dict:
    """
    Load balance overrides from YAML and merge them over the defaults.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file cannot be read, is not YAML, or its
            top level is not a mapping
    """
    if path is None:
        return default_balance()

    path = Path(path)
    if not path.exists():
        logger.info(f"No balance file at {path}, using defaults")
        return default_balance()

    try:
        with open(path, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read balance file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in balance file {path}: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigError(f"Balance file {path} must contain a mapping")

    balance = _deep_merge(DEFAULT_BALANCE, overrides)
    validate_balance(balance)
    logger.info(f"Loaded balance overrides from {path}: {sorted(overrides)}")
    return balance


def validate_balance(balance: dict) -> None:
    """
    Check that every incident type has a cooldown and a position gate.

    Raises:
        ConfigError: On a missing per-type entry
    """
    from .systems.incidents import IncidentType

    for section in ("cooldowns", "position_gates"):
        table = balance.get(section, {})
        missing = [t.value for t in IncidentType if t.value not in table]
        if missing:
            raise ConfigError(f"Balance section '{section}' missing entries for: {missing}")


def save_balance(balance: dict, path: Path | str) -> bool:
    """Write a balance dict to YAML. Returns True on success."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(balance, f, sort_keys=False)
        return True
    except OSError:
        logger.exception(f"Failed to save balance file {path}")
        return False
