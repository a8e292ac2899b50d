"""Tests for the political engine: NPC proposals, decrees, votes and institutions."""

import pytest

from nomenklatura.state.schema import (
    Character,
    CongressStatus,
    Goal,
    ShowTrial,
    TrialPhase,
)
from nomenklatura.state.schemas.reports import PoliticalEventKind
from nomenklatura.systems.political_ai import PoliticalEngine
from nomenklatura.systems.strategy import GSAction, GSActionType


class TestFindGeneralSecretary:
    """Who holds the top office."""

    def test_committee_chair(self, political_state, dice):
        engine = PoliticalEngine(dice=dice)
        assert engine.find_general_secretary(political_state).character_id == "gs"

    def test_highest_ranked_without_chair(self, political_state, dice):
        political_state.committee.chair_id = None
        engine = PoliticalEngine(dice=dice)
        assert engine.find_general_secretary(political_state).character_id == "gs"

    def test_nobody_at_rank(self, political_state, dice):
        political_state.committee.chair_id = None
        political_state.character("gs").position_index = 7
        assert PoliticalEngine(dice=dice).find_general_secretary(political_state) is None


class TestProcessTurn:
    """Ordering and office-holder rules for the whole phase."""

    def test_missing_gs_only_skips_gs_step(self, political_state, always):
        political_state.committee.chair_id = None
        political_state.character("gs").position_index = 7
        events = PoliticalEngine(dice=always).process_turn(political_state)
        proposals = [e for e in events if e.kind == PoliticalEventKind.PROPOSAL]
        assert [e.actor_id for e in proposals] == ["member_b"]
        assert not any(e.kind == PoliticalEventKind.DECREE for e in events)

    def test_player_as_gs_skips_gs_step(self, political_state, always):
        political_state.player_position_index = 8
        political_state.character("gs").ambition = 80
        events = PoliticalEngine(dice=always).process_turn(political_state)
        assert all(e.actor_id != "gs" for e in events)

    def test_strategy_before_agenda(self, political_state, always):
        """An ambitious GS pursues the strategic opportunity first."""
        gs = political_state.character("gs")
        gs.ambition = 80
        gs.goals = [Goal(goal_type="consolidate_power", priority=8), Goal(goal_type="minor", priority=2)]
        events = PoliticalEngine(dice=always).process_turn(political_state)
        gs_events = [e for e in events if e.actor_id == "gs"]
        assert gs_events[0].kind == PoliticalEventKind.PROPOSAL
        assert gs_events[0].slot_id == "presidium_term_limits"
        assert gs.goals[0].progress == 5
        assert gs.goals[1].progress == 0

    def test_only_goal_progress_touched(self, political_state, always):
        gs = political_state.character("gs")
        gs.ambition = 80
        before = gs.model_dump(exclude={"goals"})
        PoliticalEngine(dice=always).process_turn(political_state)
        assert gs.model_dump(exclude={"goals"}) == before


class TestAgenda:
    """Personal agenda when strategy holds."""

    def test_decree_during_unrest(self, political_state, always):
        gs = political_state.character("gs")
        gs.faction_id = "reformists"
        political_state.stats.stability = 30
        event = PoliticalEngine(dice=always).pursue_agenda(gs, political_state)
        assert event.kind == PoliticalEventKind.DECREE
        slot = political_state.policy_slot("economy_enterprise_management")
        assert slot.current_option_id == "enterprise_manager_autonomy"
        assert slot.change_history[-1].was_decreed

    def test_failed_roll_does_nothing(self, political_state, never):
        gs = political_state.character("gs")
        gs.faction_id = "reformists"
        assert PoliticalEngine(dice=never).pursue_agenda(gs, political_state) is None

    def test_nothing_actionable(self, political_state, always):
        gs = political_state.character("gs")
        assert PoliticalEngine(dice=always).pursue_agenda(gs, political_state) is None


class TestExecuteAction:
    """Strategic actions."""

    @pytest.fixture
    def engine(self, always):
        return PoliticalEngine(dice=always)

    def test_missing_slot_is_failed_no_op(self, engine, political_state):
        gs = political_state.character("gs")
        action = GSAction(GSActionType.PROPOSE_POLICY, 9, slot_id="military_budget_control",
                          option_id="budget_military_staff")
        event = engine.execute_action(action, gs, political_state)
        assert event.kind == PoliticalEventKind.NO_OP
        assert event.success is False

    def test_missing_option_is_failed_no_op(self, engine, political_state):
        gs = political_state.character("gs")
        action = GSAction(GSActionType.PROPOSE_POLICY, 9, slot_id="economy_enterprise_management",
                          option_id="enterprise_abolished")
        event = engine.execute_action(action, gs, political_state)
        assert event.kind == PoliticalEventKind.NO_OP
        assert not political_state.policy_slot("economy_enterprise_management").has_pending_proposal

    def test_pending_slot_defers_to_agenda(self, engine, political_state):
        gs = political_state.character("gs")
        slot = political_state.policy_slot("presidium_term_limits")
        slot.propose_change("term_limits_life_tenure", "member_a", 0)
        action = GSAction(GSActionType.PROPOSE_POLICY, 9, slot_id="presidium_term_limits",
                          option_id="term_limits_life_tenure")
        assert engine.execute_action(action, gs, political_state) is None
        assert slot.pending_character_id == "member_a"

    def test_institutional_decree_becomes_proposal(self, engine, political_state):
        gs = political_state.character("gs")
        action = GSAction(GSActionType.DECREE, 9, slot_id="presidium_term_limits",
                          option_id="term_limits_life_tenure")
        event = engine.execute_action(action, gs, political_state)
        slot = political_state.policy_slot("presidium_term_limits")
        assert event.kind == PoliticalEventKind.PROPOSAL
        assert slot.current_option_id == "term_limits_two_terms"
        assert slot.pending_option_id == "term_limits_life_tenure"

    def test_decree_disabled_becomes_proposal(self, engine, political_state):
        political_state.decrees_enabled = False
        gs = political_state.character("gs")
        action = GSAction(GSActionType.DECREE, 8, slot_id="economy_enterprise_management",
                          option_id="enterprise_regional_flexibility")
        event = engine.execute_action(action, gs, political_state)
        assert event.kind == PoliticalEventKind.PROPOSAL

    def test_target_rival_opens_trial(self, engine, political_state):
        gs = political_state.character("gs")
        action = GSAction(GSActionType.TARGET_RIVAL, 9, character_id="member_b")
        event = engine.execute_action(action, gs, political_state)
        assert event.kind == PoliticalEventKind.TARGET_RIVAL
        assert event.success
        trial = political_state.show_trials[0]
        assert trial.defendant_id == "member_b"
        assert trial.phase == TrialPhase.ACCUSATION

        again = engine.execute_action(action, gs, political_state)
        assert again.success is False
        assert len(political_state.show_trials) == 1

    def test_target_missing(self, engine, political_state):
        gs = political_state.character("gs")
        event = engine.target_rival(gs, "ghost", political_state)
        assert event.kind == PoliticalEventKind.NO_OP

    def test_appoint_loyalist(self, engine, political_state):
        political_state.characters.append(Character(
            character_id="loyalist", faction_id="old_guard", position_index=5, loyalty=90,
        ))
        political_state.characters.append(Character(
            character_id="lukewarm", faction_id="old_guard", position_index=6, loyalty=40,
        ))
        gs = political_state.character("gs")
        event = engine.execute_action(GSAction(GSActionType.APPOINT_LOYALIST, 7), gs, political_state)
        assert event.target_id == "loyalist"
        assert "loyalist" in political_state.committee.member_ids

    def test_no_loyalist_available(self, engine, political_state):
        gs = political_state.character("gs")
        event = engine.appoint_loyalist(gs, political_state)
        assert event.kind == PoliticalEventKind.APPOINT_LOYALIST
        assert event.success is False

    def test_build_support(self, engine, political_state):
        gs = political_state.character("gs")
        action = GSAction(GSActionType.BUILD_SUPPORT, 5, "Court a member", character_id="member_a")
        event = engine.execute_action(action, gs, political_state)
        assert event.kind == PoliticalEventKind.BUILD_SUPPORT
        assert event.target_id == "member_a"


class TestVotes:
    """Pending proposals resolve once, the turn after submission."""

    def test_resolves_exactly_once(self, political_state, dice):
        engine = PoliticalEngine(dice=dice)
        slot = political_state.policy_slot("economy_enterprise_management")
        member = political_state.character("member_b")
        engine.propose(member, slot, "enterprise_regional_flexibility", political_state)

        assert engine.resolve_pending(political_state) == []
        assert slot.has_pending_proposal

        political_state.turn_number = 2
        events = engine.resolve_pending(political_state)
        assert len(events) == 1
        assert events[0].kind == PoliticalEventKind.VOTE
        assert events[0].success == events[0].vote.passed
        assert not slot.has_pending_proposal
        assert len(slot.change_history) == 1
        assert slot.change_history[0].passed == events[0].vote.passed

        political_state.turn_number = 3
        assert engine.resolve_pending(political_state) == []
        assert len(slot.change_history) == 1

    def test_unknown_option_rejected(self, political_state, dice):
        slot = political_state.policy_slot("economy_enterprise_management")
        slot.propose_change("enterprise_abolished", "member_b", 0)
        events = PoliticalEngine(dice=dice).resolve_pending(political_state)
        assert events[0].kind == PoliticalEventKind.NO_OP
        assert slot.change_history[0].passed is False
        assert slot.current_option_id == "enterprise_central_quotas"
        assert not slot.has_pending_proposal


class TestFactionPressure:
    """Powerful factions lean on the leadership."""

    def test_powerful_faction_presses(self, political_state, always):
        political_state.faction("reformists").power = 70
        events = PoliticalEngine(dice=always).faction_pressure(political_state)
        assert len(events) == 1
        assert events[0].kind == PoliticalEventKind.FACTION_PRESSURE
        assert events[0].option_id == "enterprise_manager_autonomy"

    def test_weak_factions_stay_quiet(self, political_state, always):
        assert PoliticalEngine(dice=always).faction_pressure(political_state) == []


class TestInstitutions:
    """Party Congress and show trials."""

    def test_congress_cycle(self, political_state, dice):
        engine = PoliticalEngine(dice=dice)
        political_state.turn_number = 4
        assert len(engine.progress_congress(political_state)) == 1
        session = political_state.current_congress
        assert session.status == CongressStatus.CONVENING

        # Same turn: no second step
        assert engine.progress_congress(political_state) == []

        for turn, status in ((5, CongressStatus.DELIBERATING), (6, CongressStatus.VOTING),
                             (7, CongressStatus.CONCLUDED)):
            political_state.turn_number = turn
            engine.progress_congress(political_state)
            assert session.status == status

        assert session.legitimacy_granted == 50
        assert political_state.stats.power_consolidation == 32
        assert not session.in_session

    def test_no_congress_off_schedule(self, political_state, dice):
        political_state.turn_number = 3
        assert PoliticalEngine(dice=dice).progress_congress(political_state) == []
        assert political_state.congress_sessions == []

    def test_trial_advances_after_sitting(self, political_state, dice):
        engine = PoliticalEngine(dice=dice)
        trial = ShowTrial(defendant_id="member_b", started_turn=1, phase_changed_turn=1)
        political_state.show_trials.append(trial)

        political_state.turn_number = 2
        assert engine.progress_trials(political_state) == []

        political_state.turn_number = 3
        events = engine.progress_trials(political_state)
        assert trial.phase == TrialPhase.INVESTIGATION
        assert events[0].kind == PoliticalEventKind.TRIAL

    def test_closed_trial_is_inactive(self, political_state, dice):
        trial = ShowTrial(defendant_id="member_b", started_turn=1, phase_changed_turn=1,
                          phase=TrialPhase.VERDICT)
        political_state.show_trials.append(trial)
        political_state.turn_number = 3
        PoliticalEngine(dice=dice).progress_trials(political_state)
        assert trial.phase == TrialPhase.CLOSED
        assert political_state.active_trials == []
