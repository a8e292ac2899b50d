"""
Pytest fixtures for Nomenklatura engine tests.

Provides small hand-built game states, the bundled scenario and dice that
always or never succeed, so tests can force a branch without depending on
what a particular seed rolls.
"""

import pytest
from pathlib import Path

# Add the project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from nomenklatura.config import default_balance
from nomenklatura.state.event_bus import EventBus
from nomenklatura.state.schema import (
    Character,
    Faction,
    ForeignCountry,
    GameState,
    LawCategory,
    PolicyOption,
    PolicySlot,
    PoliticalBloc,
    Region,
    RegionType,
    StandingCommittee,
)
from nomenklatura.state.store import load_scenario
from nomenklatura.tools.dice import Dice, RollResult


SCENARIO_PATH = Path(__file__).parent.parent / "nomenklatura" / "data" / "default_scenario.yaml"


class AlwaysDice(Dice):
    """Every probabilistic check succeeds; choices take the first item."""

    def chance(self, probability: float) -> bool:
        return probability > 0

    def percentile(self, target: int) -> RollResult:
        target = max(0, min(100, target))
        return RollResult(roll=1, target=target, success=target >= 1, margin=target - 1)

    def spread(self, magnitude: int) -> int:
        return 0

    def choice(self, items):
        return items[0]


class NeverDice(Dice):
    """Every probabilistic check fails."""

    def chance(self, probability: float) -> bool:
        return probability >= 1

    def percentile(self, target: int) -> RollResult:
        target = max(0, min(100, target))
        return RollResult(roll=100, target=target, success=target >= 100, margin=target - 100)

    def spread(self, magnitude: int) -> int:
        return 0

    def choice(self, items):
        return items[0]


@pytest.fixture
def balance():
    """Private copy of the default balance, safe to mutate."""
    return default_balance()


@pytest.fixture
def dice():
    """Seeded dice for reproducible rolls."""
    return Dice(42)


@pytest.fixture
def always():
    return AlwaysDice(0)


@pytest.fixture
def never():
    return NeverDice(0)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def state():
    """Empty game at turn 0 with default stats."""
    return GameState(name="Test Game")


@pytest.fixture
def scenario_state():
    """The bundled scenario, freshly loaded."""
    return load_scenario(SCENARIO_PATH)


@pytest.fixture
def economy_slot():
    """Economic slot with three options; central quotas active."""
    return PolicySlot(
        slot_id="economy_enterprise_management",
        name="Enterprise Management",
        category=LawCategory.ECONOMIC,
        current_option_id="enterprise_central_quotas",
        options=[
            PolicyOption(id="enterprise_central_quotas", is_default=True,
                         minimum_power_required=0, minimum_position_index=0),
            PolicyOption(id="enterprise_regional_flexibility",
                         minimum_power_required=30, minimum_position_index=2),
            PolicyOption(
                id="enterprise_manager_autonomy",
                beneficiaries=["reformists"],
                losers=["old_guard"],
                minimum_power_required=50,
                minimum_position_index=5,
            ),
        ],
    )


@pytest.fixture
def institutional_slot():
    """Institutional slot: may be proposed, never decreed."""
    return PolicySlot(
        slot_id="presidium_term_limits",
        name="Term Limits",
        category=LawCategory.INSTITUTIONAL,
        current_option_id="term_limits_two_terms",
        options=[
            PolicyOption(id="term_limits_two_terms", is_default=True),
            PolicyOption(id="term_limits_life_tenure", is_extreme=True,
                         minimum_power_required=0, minimum_position_index=0),
        ],
    )


@pytest.fixture
def political_state(economy_slot, institutional_slot):
    """
    A GS, two committee members and a rival bloc of factions.

    Traits are neutral so strategic assessment settles on MAINTAIN.
    """
    gs = Character(
        character_id="gs", name="General Secretary", faction_id="old_guard",
        position_index=8, ambition=50, loyalty=50, disposition=60,
    )
    member_a = Character(
        character_id="member_a", name="Member A", faction_id="old_guard",
        position_index=6, ambition=40, loyalty=80, disposition=60,
    )
    member_b = Character(
        character_id="member_b", name="Member B", faction_id="reformists",
        position_index=6, ambition=40, loyalty=80, disposition=60,
    )
    return GameState(
        name="Politics",
        turn_number=1,
        player_position_index=2,
        characters=[gs, member_a, member_b],
        factions=[
            Faction(faction_id="old_guard", power=50, player_standing=70),
            Faction(faction_id="reformists", power=40, player_standing=70),
        ],
        committee=StandingCommittee(
            chair_id="gs",
            member_ids=["gs", "member_a", "member_b", "x1", "x2", "x3", "x4"],
        ),
        policy_slots=[economy_slot, institutional_slot],
    )


@pytest.fixture
def economy_state():
    """Two regions and a pair of trading partners."""
    return GameState(
        name="Economy",
        regions=[
            Region(region_id="capital", region_type=RegionType.CAPITAL,
                   industrial_capacity=50, agricultural_output=20, popular_loyalty=100),
            Region(region_id="mines", region_type=RegionType.EXTRACTIVE,
                   industrial_capacity=20, agricultural_output=0, popular_loyalty=0),
        ],
        countries=[
            ForeignCountry(country_id="ally", political_bloc=PoliticalBloc.SOCIALIST,
                           relationship_score=70, trade_volume=50),
            ForeignCountry(country_id="foe", political_bloc=PoliticalBloc.CAPITALIST,
                           relationship_score=-70, trade_volume=50, economic_power=60),
        ],
    )
