"""
Scenario loading and game saves.

Scenarios are authored as YAML; saved games are pydantic JSON dumps.
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .schema import GameState

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    """A scenario file could not be read or does not describe a valid game."""


def load_scenario(path: Path | str) -> GameState:
    """
    Build a GameState from a YAML scenario file.

    Raises:
        ScenarioError: If the file is missing, not YAML, or fails validation
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ScenarioError(f"Cannot read scenario {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ScenarioError(f"Invalid YAML in scenario {path}: {e}") from e

    try:
        state = GameState.model_validate(data)
    except ValidationError as e:
        raise ScenarioError(f"Scenario {path} failed validation: {e}") from e

    logger.info(
        f"Loaded scenario '{state.name}' ({len(state.countries)} countries, "
        f"{len(state.characters)} characters, {len(state.policy_slots)} policy slots)"
    )
    return state


def save_game(state: GameState, saves_dir: Path | str = "saves") -> Path:
    """Write the game to `<saves_dir>/<id>.json` and return the file path."""
    saves_dir = Path(saves_dir)
    saves_dir.mkdir(parents=True, exist_ok=True)
    save_file = saves_dir / f"{state.id}.json"
    save_file.write_text(state.model_dump_json(indent=2))
    logger.debug(f"Saved game {state.id} at turn {state.turn_number}")
    return save_file
