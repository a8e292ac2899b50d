"""Tests for the diplomatic engine: drift, treaties, crises and world events."""

import pytest

from nomenklatura.state.schema import (
    ForeignCountry,
    GovernmentType,
    PoliticalBloc,
    Treaty,
    TreatyType,
    WorldEvent,
    WorldEventType,
)
from nomenklatura.state.schemas.reports import DiplomaticReport
from nomenklatura.systems.diplomacy import GOVERNMENT_EVENTS, HEADLINES, DiplomaticEngine
from nomenklatura.tools.dice import Dice


@pytest.fixture
def neighbour():
    return ForeignCountry(
        country_id="neighbour",
        name="Neighbour",
        political_bloc=PoliticalBloc.CAPITALIST,
        government_type=GovernmentType.LIBERAL_DEMOCRACY,
        relationship_score=-30,
        diplomatic_tension=40,
    )


class TestEventChains:
    """Past events shift the odds of follow-ups."""

    def test_border_incident_feeds_arms_build_up(self, dice):
        engine = DiplomaticEngine(dice=dice)
        assert engine.chain_modifier(WorldEventType.BORDER_INCIDENT, WorldEventType.ARMS_BUILD_UP) == 1.5

    def test_unrelated_pair_is_neutral(self, dice):
        engine = DiplomaticEngine(dice=dice)
        assert engine.chain_modifier(WorldEventType.HARVEST_FAILURE, WorldEventType.COUP) == 1.0

    def test_recent_event_multiplies_probability(self, state, neighbour, dice):
        engine = DiplomaticEngine(dice=dice)
        state.turn_number = 5
        state.countries = [neighbour]
        without = engine.event_probability(WorldEventType.ARMS_BUILD_UP, neighbour, state)

        state.world_events.append(WorldEvent(
            event_type=WorldEventType.BORDER_INCIDENT, turn_occurred=4, country_id="neighbour",
        ))
        with_chain = engine.event_probability(WorldEventType.ARMS_BUILD_UP, neighbour, state)
        assert with_chain == pytest.approx(without * 1.5)

    def test_old_events_fall_out_of_lookback(self, state, neighbour, dice):
        engine = DiplomaticEngine(dice=dice)
        state.turn_number = 10
        state.countries = [neighbour]
        without = engine.event_probability(WorldEventType.ARMS_BUILD_UP, neighbour, state)
        state.world_events.append(WorldEvent(
            event_type=WorldEventType.BORDER_INCIDENT, turn_occurred=2, country_id="neighbour",
        ))
        assert engine.event_probability(WorldEventType.ARMS_BUILD_UP, neighbour, state) == without

    def test_other_country_events_do_not_chain(self, state, neighbour, dice):
        engine = DiplomaticEngine(dice=dice)
        state.turn_number = 5
        without = engine.event_probability(WorldEventType.ARMS_BUILD_UP, neighbour, state)
        state.world_events.append(WorldEvent(
            event_type=WorldEventType.BORDER_INCIDENT, turn_occurred=5, country_id="elsewhere",
        ))
        assert engine.event_probability(WorldEventType.ARMS_BUILD_UP, neighbour, state) == without

    def test_border_tension_doubles(self, state, neighbour, dice):
        engine = DiplomaticEngine(dice=dice)
        calm = neighbour.model_copy(update={"diplomatic_tension": 10})
        tense = engine.event_probability(WorldEventType.BORDER_INCIDENT, neighbour, state)
        quiet = engine.event_probability(WorldEventType.BORDER_INCIDENT, calm, state)
        assert tense == pytest.approx(quiet * 2)

    def test_probability_clamped(self, state, neighbour, balance, dice):
        balance["diplomacy"]["base_probabilities"]["border_incident"] = 0.9
        engine = DiplomaticEngine(balance, dice)
        assert engine.event_probability(WorldEventType.BORDER_INCIDENT, neighbour, state) == 1.0


class TestEligibleEvents:
    """Which world events a country can produce."""

    def test_hostile_country_can_arm(self, neighbour, dice):
        types = DiplomaticEngine(dice=dice).eligible_event_types(neighbour)
        assert WorldEventType.ARMS_BUILD_UP in types
        assert WorldEventType.ELECTION_RESULT in types

    def test_friendly_socialist_country(self, dice):
        friend = ForeignCountry(
            country_id="friend", political_bloc=PoliticalBloc.SOCIALIST,
            government_type=GovernmentType.COMMUNIST_STATE, relationship_score=60,
        )
        types = DiplomaticEngine(dice=dice).eligible_event_types(friend)
        assert WorldEventType.DEFECTION in types
        assert WorldEventType.PURGE in types
        assert WorldEventType.PROXY_CONFLICT not in types


class TestWorldEvents:
    """Rolling and recording world events."""

    def test_event_tables_complete(self):
        assert set(GOVERNMENT_EVENTS) == set(GovernmentType)
        assert set(HEADLINES) == set(WorldEventType)

    def test_events_capped_and_recorded(self, state, neighbour, balance):
        for key in balance["diplomacy"]["base_probabilities"]:
            balance["diplomacy"]["base_probabilities"][key] = 1.0
        engine = DiplomaticEngine(balance, Dice(5))
        state.turn_number = 3
        state.countries = [neighbour]
        events = engine.generate_world_events(state)
        assert 1 <= len(events) <= balance["diplomacy"]["max_world_events"]
        assert state.world_events == events
        assert all(e.turn_occurred == 3 and e.country_id == "neighbour" for e in events)
        assert all(e.headline for e in events)

    def test_no_events_at_zero_probability(self, state, neighbour, balance):
        for key in balance["diplomacy"]["base_probabilities"]:
            balance["diplomacy"]["base_probabilities"][key] = 0.0
        engine = DiplomaticEngine(balance, Dice(5))
        state.countries = [neighbour]
        assert engine.generate_world_events(state) == []
        assert state.world_events == []

    def test_border_incident_consequences(self, state, neighbour, dice):
        engine = DiplomaticEngine(dice=dice)
        state.countries = [neighbour]
        event = engine._create_event(WorldEventType.BORDER_INCIDENT, neighbour, state)
        engine._apply_consequences(event, state)
        assert neighbour.relationship_score == -40
        assert neighbour.diplomatic_tension == 55


class TestTreaties:
    """Proposal, upkeep and expiry."""

    def test_acceptance_clamped_high(self, dice):
        friend = ForeignCountry(country_id="f", political_bloc=PoliticalBloc.SOCIALIST, relationship_score=100)
        assert DiplomaticEngine(dice=dice).acceptance_chance(TreatyType.ESPIONAGE_AGREEMENT, friend) == 100

    def test_acceptance_clamped_low(self, dice):
        foe = ForeignCountry(country_id="f", political_bloc=PoliticalBloc.CAPITALIST, relationship_score=-100)
        assert DiplomaticEngine(dice=dice).acceptance_chance(TreatyType.MUTUAL_DEFENSE, foe) == 0

    def test_nuclear_sharing_with_outsider_is_long_shot(self, dice):
        other = ForeignCountry(country_id="o", political_bloc=PoliticalBloc.NON_ALIGNED, relationship_score=80)
        assert DiplomaticEngine(dice=dice).acceptance_chance(TreatyType.NUCLEAR_SHARING, other) == 5

    def test_accepted_trade_agreement(self, state, neighbour, always):
        state.turn_number = 2
        state.countries = [neighbour]
        outcome = DiplomaticEngine(dice=always).propose_treaty(TreatyType.TRADE_AGREEMENT, "neighbour", state)
        assert outcome.accepted
        assert outcome.treaty.expiration_turn == 42
        assert neighbour.has_treaty(TreatyType.TRADE_AGREEMENT)
        assert neighbour.relationship_score == -20
        assert neighbour.trade_volume == 35

    def test_mutual_defense_is_indefinite(self, state, always):
        friend = ForeignCountry(country_id="f", political_bloc=PoliticalBloc.SOCIALIST, relationship_score=50)
        state.countries = [friend]
        outcome = DiplomaticEngine(dice=always).propose_treaty(TreatyType.MUTUAL_DEFENSE, "f", state)
        assert outcome.treaty.expiration_turn is None
        assert state.stats.military_readiness == 55

    def test_rejected_proposal_sours_relations(self, state, neighbour, never):
        state.countries = [neighbour]
        outcome = DiplomaticEngine(dice=never).propose_treaty(TreatyType.CULTURAL_EXCHANGE, "neighbour", state)
        assert not outcome.accepted
        assert outcome.treaty is None
        assert neighbour.relationship_score == -33

    def test_unknown_country(self, state, dice):
        assert DiplomaticEngine(dice=dice).propose_treaty(TreatyType.TRADE_AGREEMENT, "atlantis", state) is None

    def test_terminate(self, state, neighbour, dice):
        treaty = Treaty(treaty_type=TreatyType.TRADE_AGREEMENT, signed_turn=0)
        neighbour.add_treaty(treaty)
        state.countries = [neighbour]
        engine = DiplomaticEngine(dice=dice)
        assert engine.terminate_treaty(treaty.id, "neighbour", state)
        assert not neighbour.treaties
        assert neighbour.relationship_score == -45
        assert not engine.terminate_treaty(treaty.id, "neighbour", state)

    def test_expired_treaty_removed_and_flagged(self, state, neighbour, dice):
        neighbour.add_treaty(Treaty(treaty_type=TreatyType.TRADE_AGREEMENT, signed_turn=0, expiration_turn=5))
        state.countries = [neighbour]
        state.turn_number = 5
        report = DiplomaticEngine(dice=dice).process_turn(state)
        assert "treaty_expired_neighbour_trade_agreement" in report.expired_treaties
        assert state.has_flag("treaty_expired_neighbour_trade_agreement")
        assert not neighbour.has_treaty(TreatyType.TRADE_AGREEMENT)

    def test_active_trade_agreement_pays(self, state, neighbour, dice):
        neighbour.add_treaty(Treaty(treaty_type=TreatyType.TRADE_AGREEMENT, signed_turn=0, expiration_turn=50))
        state.countries = [neighbour]
        state.turn_number = 5
        engine = DiplomaticEngine(dice=dice)
        report = DiplomaticReport()
        engine._treaty_effects(state, report)
        assert state.stats.treasury == 52
        assert report.expired_treaties == []


class TestTurn:
    """Full diplomatic phase."""

    def test_drift_recorded_per_country(self, state, neighbour, dice):
        state.countries = [neighbour]
        report = DiplomaticEngine(dice=dice).process_turn(state)
        assert set(report.drift) == {"neighbour"}

    def test_diplomatic_crisis_marks_variable(self, state, always):
        hot = ForeignCountry(country_id="hot", diplomatic_tension=90)
        state.countries = [hot]
        state.turn_number = 7
        DiplomaticEngine(dice=always).process_turn(state)
        assert state.variables["diplomatic_crisis_hot"] == "7"

    def test_alliance_strain(self, state, dice):
        cool = ForeignCountry(country_id="cool", political_bloc=PoliticalBloc.SOCIALIST, relationship_score=10)
        state.countries = [cool]
        state.turn_number = 3
        DiplomaticEngine(dice=dice).process_turn(state)
        assert state.variables["alliance_strain_cool"] == "3"


class LowRolls(Dice):
    """Every d100 comes up 1 and every randint takes its low end."""

    def d100(self) -> int:
        return 1

    def randint(self, low: int, high: int) -> int:
        return low


class TestEspionage:
    """Foreign spying and our own agents."""

    def test_discovery_and_compromise(self, state):
        spy = ForeignCountry(country_id="spy", espionage_activity=90, our_intelligence_assets=40)
        state.countries = [spy]
        state.turn_number = 4
        report = DiplomaticReport()
        DiplomaticEngine(dice=LowRolls(1))._espionage(state, report)
        assert report.espionage_flags == ["espionage_incident_spy_4", "agents_compromised_spy_4"]
        assert state.stats.military_readiness == 47
        assert spy.our_intelligence_assets == 30
        assert spy.relationship_score == -5

    def test_quiet_country(self, state):
        calm = ForeignCountry(country_id="calm", espionage_activity=10, our_intelligence_assets=10)
        state.countries = [calm]
        report = DiplomaticReport()
        DiplomaticEngine(dice=LowRolls(1))._espionage(state, report)
        assert report.espionage_flags == []
