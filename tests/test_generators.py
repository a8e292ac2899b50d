"""Tests for candidate incident generators."""

import pytest

from nomenklatura.config import DEFAULT_BALANCE
from nomenklatura.state.schema import (
    Character,
    CongressSession,
    CongressStatus,
    Faction,
    ForeignCountry,
    HistoryEntry,
    ShowTrial,
    TrialPhase,
    WorldEvent,
    WorldEventType,
)
from nomenklatura.systems.generators import (
    CONGRESS_PRIORITY,
    GENERATORS,
    ally_events,
    ambient_tension,
    assassination_events,
    assassination_risk,
    congress_progression,
    consequence_callbacks,
    corruption_investigation,
    corruption_trigger_chance,
    default_generators,
    network_intel,
    npc_autonomous_actions,
    npc_motivation,
    patron_events,
    rival_action_chance,
    rival_events,
    tribunal_progression,
    urgent_stat_crisis,
    world_news,
)
from nomenklatura.systems.incidents import CandidateIncident, IncidentPriority, IncidentType


@pytest.fixture
def patron():
    return Character(character_id="patron", name="Sorokina", is_patron=True, position_index=6)


@pytest.fixture
def rival():
    return Character(character_id="rival", name="Drozdov", is_rival=True, position_index=4,
                     ambition=80, paranoia=20, ruthlessness=70, grudge_level=60)


class TestRegistry:
    """Generator registration."""

    def test_all_registered_in_order(self):
        names = [name for name, _ in GENERATORS]
        assert names[0] == "patron"
        assert names[-1] == "world_news"
        assert len(names) == len(set(names)) == 13

    def test_default_generators_bound_to_config(self, state, never):
        for name, generator in default_generators(DEFAULT_BALANCE):
            result = generator(state, never)
            assert isinstance(result, list), name

    def test_generators_never_write_state(self, scenario_state, always):
        scenario_state.turn_number = 12
        scenario_state.stats.stability = 20
        before = scenario_state.model_dump()
        for _, generator in default_generators():
            generator(scenario_state, always)
        assert scenario_state.model_dump() == before


class TestPatron:
    """At most one patron incident, most severe first."""

    def test_no_patron(self, state, always):
        assert patron_events(state, always) == []

    def test_summons_at_low_favor(self, state, patron, always):
        state.characters = [patron]
        state.stats.patron_favor = 10
        result = patron_events(state, always)
        assert len(result) == 1
        assert result[0].incident_type == IncidentType.CHARACTER_SUMMONS
        assert result[0].priority == IncidentPriority.URGENT

    def test_directive_during_unrest(self, state, patron, always):
        state.characters = [patron]
        state.stats.stability = 20
        result = patron_events(state, always)
        assert result[0].incident_type == IncidentType.PATRON_DIRECTIVE
        assert result[0].payload["kind"] == "directive"

    def test_opportunity_when_favored(self, state, patron, always):
        state.characters = [patron]
        state.stats.patron_favor = 90
        result = patron_events(state, always)
        assert result[0].priority == IncidentPriority.NORMAL

    def test_content_patron_is_silent(self, state, patron, always):
        state.characters = [patron]
        assert patron_events(state, always) == []


class TestRival:
    """The primary rival's moves."""

    def test_chance_capped(self, state, rival):
        state.stats.rival_threat = 100
        state.stats.standing = 10
        state.stats.patron_favor = 10
        assert rival_action_chance(rival, state) == DEFAULT_BALANCE["incidents"]["rival_max_chance"]

    def test_priority_follows_threat(self, state, rival, always):
        state.characters = [rival]
        state.stats.rival_threat = 80
        assert rival_events(state, always)[0].priority == IncidentPriority.ELEVATED
        state.stats.rival_threat = 60
        assert rival_events(state, always)[0].priority == IncidentPriority.NORMAL
        state.stats.rival_threat = 20
        assert rival_events(state, always)[0].priority == IncidentPriority.BACKGROUND

    def test_failed_roll(self, state, rival, never):
        state.characters = [rival]
        assert rival_events(state, never) == []


class TestAllies:
    """Well-disposed characters reaching out."""

    def test_close_ally_sends_message(self, state, always):
        state.characters = [Character(character_id="friend", disposition=90)]
        result = ally_events(state, always)
        assert result[0].incident_type == IncidentType.CHARACTER_MESSAGE

    def test_ally_requests_favor(self, state, always):
        state.characters = [Character(character_id="friend", disposition=70)]
        assert ally_events(state, always)[0].incident_type == IncidentType.ALLY_REQUEST

    def test_lukewarm_characters_ignored(self, state, always):
        state.characters = [Character(character_id="acquaintance", disposition=50)]
        assert ally_events(state, always) == []

    def test_only_one_ally(self, state, always):
        state.characters = [
            Character(character_id="a", disposition=90),
            Character(character_id="b", disposition=90),
        ]
        assert [c.target_ids for c in ally_events(state, always)] == [["a"]]


class TestCallbacks:
    """Past decisions resurfacing."""

    def test_callback_in_window(self, state, always):
        entry = HistoryEntry(turn=2, summary="Signed the quota report", follow_up_hook="The auditors return.")
        state.history = [entry]
        state.turn_number = 5
        result = consequence_callbacks(state, always)
        assert result[0].incident_type == IncidentType.CONSEQUENCE_CALLBACK
        assert result[0].flags == [f"callback_{entry.id}"]
        assert not state.has_flag(f"callback_{entry.id}")

    def test_too_soon_and_too_late(self, state, always):
        state.history = [HistoryEntry(turn=4, follow_up_hook="hook")]
        state.turn_number = 5
        assert consequence_callbacks(state, always) == []
        state.turn_number = 15
        assert consequence_callbacks(state, always) == []

    def test_fires_once(self, state, always):
        entry = HistoryEntry(turn=2, follow_up_hook="hook")
        state.history = [entry]
        state.turn_number = 5
        state.add_flag(f"callback_{entry.id}")
        assert consequence_callbacks(state, always) == []

    def test_entries_without_hook_ignored(self, state, always):
        state.history = [HistoryEntry(turn=2)]
        state.turn_number = 5
        assert consequence_callbacks(state, always) == []


class TestCrisisGenerators:
    """Urgent stat crises, ambient tension and intelligence."""

    def test_food_crisis(self, state, always):
        state.stats.food_supply = 10
        result = urgent_stat_crisis(state, always)
        assert result[0].priority == IncidentPriority.URGENT
        assert result[0].payload["stat"] == "food_supply"

    def test_no_crisis_when_stable(self, state, always):
        assert urgent_stat_crisis(state, always) == []

    def test_ambient_tension_waits(self, state, always):
        state.turn_number = 3
        state.stats.stability = 40
        assert ambient_tension(state, always) == []
        state.turn_number = 4
        assert len(ambient_tension(state, always)) == 1

    def test_ambient_tension_stacks(self, state, always):
        state.turn_number = 10
        state.stats.rival_threat = 60
        state.stats.patron_favor = 40
        state.stats.stability = 40
        result = ambient_tension(state, always)
        assert len(result) == 3
        assert all(c.priority == IncidentPriority.BACKGROUND for c in result)

    def test_network_intel_needs_network(self, state, always):
        state.stats.network = 20
        assert network_intel(state, always) == []
        state.stats.network = 80
        assert network_intel(state, always)[0].priority == IncidentPriority.ELEVATED


class TestNPCActions:
    """NPCs scheming against each other."""

    def test_motivation(self):
        actor = Character(ambition=60, ruthlessness=40, competence=40, paranoia=50, position_index=5)
        assert npc_motivation(actor) == 20 + 20 + 10 + 10 + 10 + 15

    def test_highest_priority_action_surfaces(self, state, always):
        state.characters = [
            Character(character_id="schemer", position_index=6, ruthlessness=80),
            Character(character_id="climber", position_index=5, ambition=80),
            Character(character_id="clerk", position_index=1),
        ]
        result = npc_autonomous_actions(state, always)
        assert len(result) == 1
        assert result[0].payload["action"] == "denounce"
        assert result[0].priority == IncidentPriority.ELEVATED
        assert result[0].variables == {"npc_last_action_schemer": str(state.turn_number)}

    def test_recent_actor_sits_out(self, state, always):
        state.turn_number = 5
        state.characters = [
            Character(character_id="schemer", position_index=6, ruthlessness=80),
            Character(character_id="clerk", position_index=1),
        ]
        state.variables["npc_last_action_schemer"] = "4"
        result = npc_autonomous_actions(state, always)
        assert result[0].target_ids[0] == "clerk"

    def test_lone_npc_has_no_target(self, state, always):
        state.characters = [Character(character_id="hermit")]
        assert npc_autonomous_actions(state, always) == []


class TestAssassination:
    """Danger to the player's life."""

    def test_risk_factors(self, state, rival):
        state.characters = [rival]
        state.stats.network = 0
        state.stats.patron_favor = 0
        state.player_position_index = 6
        # grudge 60 // 2 + ruthlessness 70 // 4 + senior post
        assert assassination_risk(state) == 30 + 17 + 20

    def test_protection_reduces_risk(self, state, rival):
        state.characters = [rival]
        state.factions = [Faction(faction_id="old_guard", player_standing=90)]
        assert assassination_risk(state) == 0

    def test_attempt_on_schedule(self, state, rival, always):
        state.characters = [rival]
        state.stats.network = 0
        state.stats.patron_favor = 0
        state.stats.stability = 10
        state.player_position_index = 6
        state.turn_number = 6
        result = assassination_events(state, always)
        assert result[0].priority == IncidentPriority.URGENT
        assert result[0].payload["kind"] == "attempt"

    def test_warning_off_schedule(self, state, rival, always):
        state.characters = [rival]
        state.stats.network = 0
        state.stats.patron_favor = 0
        state.player_position_index = 6
        state.turn_number = 7
        result = assassination_events(state, always)
        assert result[0].incident_type == IncidentType.NETWORK_INTEL


class TestInstitutionGenerators:
    """Congress, tribunals, corruption and world news."""

    def test_congress_priority_complete(self):
        assert set(CONGRESS_PRIORITY) == set(CongressStatus)

    def test_congress_news_on_status_change(self, state, always):
        state.turn_number = 4
        state.congress_sessions = [CongressSession(turn_convened=4, status_changed_turn=4)]
        result = congress_progression(state, always)
        assert result[0].incident_type == IncidentType.WORLD_NEWS
        assert result[0].priority == IncidentPriority.ELEVATED

    def test_congress_quiet_between_stages(self, state, always):
        state.turn_number = 5
        state.congress_sessions = [CongressSession(
            turn_convened=4, status=CongressStatus.DELIBERATING, status_changed_turn=4,
        )]
        assert congress_progression(state, always) == []

    def test_verdict_is_elevated(self, state, always):
        state.turn_number = 9
        state.show_trials = [ShowTrial(defendant_id="x", started_turn=1, phase_changed_turn=9,
                                       phase=TrialPhase.VERDICT)]
        result = tribunal_progression(state, always)
        assert result[0].priority == IncidentPriority.ELEVATED

    def test_purge_initiation(self, state, always):
        state.turn_number = 12
        state.characters = [
            Character(character_id="inquisitor", position_index=6, ambition=80, ruthlessness=70),
            Character(character_id="victim", position_index=5, disposition=-40),
        ]
        result = tribunal_progression(state, always)
        assert result[0].payload["kind"] == "purge_initiation"
        assert result[0].target_ids == ["inquisitor", "victim"]

    def test_corruption_trigger_bands(self, state):
        assert corruption_trigger_chance(state) == 0
        state.stats.wealth_visibility = 50
        assert corruption_trigger_chance(state) == 5
        state.stats.corruption_evidence = 85
        assert corruption_trigger_chance(state) == 30

    def test_corruption_investigation(self, state, always):
        state.stats.corruption_evidence = 70
        result = corruption_investigation(state, always)
        assert result[0].incident_type == IncidentType.URGENT_INTERRUPTION
        assert result[0].priority == IncidentPriority.ELEVATED

    def test_world_news_from_this_turn(self, state, always):
        state.turn_number = 3
        state.world_events = [
            WorldEvent(event_type=WorldEventType.COUP, turn_occurred=3, country_id="c", headline="COUP"),
            WorldEvent(event_type=WorldEventType.HARVEST_FAILURE, turn_occurred=3, country_id="c"),
            WorldEvent(event_type=WorldEventType.COUP, turn_occurred=2, country_id="c"),
        ]
        result = world_news(state, always)
        assert [c.priority for c in result] == [IncidentPriority.ELEVATED, IncidentPriority.NORMAL]
        assert result[0].title == "COUP"

    def test_diplomatic_crisis_news(self, state, always):
        state.turn_number = 6
        state.countries = [ForeignCountry(country_id="hot", name="Hotland")]
        state.variables["diplomatic_crisis_hot"] = "6"
        result = world_news(state, always)
        assert result[0].country_id == "hot"
        assert isinstance(result[0], CandidateIncident)
