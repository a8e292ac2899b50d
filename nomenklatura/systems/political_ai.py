"""
Political AI engine.

Runs the NPC side of internal politics once per turn:

1. General Secretary: strategic action, else agenda (decree or propose)
2. Standing Committee members: occasional proposals from faction agendas
3. Faction pressure
4. Pending proposals older than this turn go to a committee vote
5. Party Congress and show trial progression

Only office-holders act. The only character field touched is goal progress;
everything else flows through policy slots, the committee roster and the
congress and trial records.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..config import DEFAULT_BALANCE
from ..rules.policy import (
    act_chance,
    actionable,
    apply_policy_change,
    build_agenda,
    decree_threshold,
    faction_preferences,
    gs_power,
    member_power,
    proposal_chance,
    record_rejection,
    should_decree,
    simulate_vote,
)
from ..state.schema import (
    CongressSession,
    CongressStatus,
    LawCategory,
    ShowTrial,
    TrialPhase,
    VoteResult,
)
from ..state.schemas.reports import PoliticalEvent, PoliticalEventKind
from ..tools.dice import Dice
from .strategy import GSAction, GSActionType, assess, select_action

if TYPE_CHECKING:
    from ..state.schema import Character, GameState, PolicySlot

logger = logging.getLogger(__name__)


CONGRESS_SEQUENCE = [
    CongressStatus.CONVENING,
    CongressStatus.DELIBERATING,
    CongressStatus.VOTING,
    CongressStatus.CONCLUDED,
]

TRIAL_SEQUENCE = [
    TrialPhase.ACCUSATION,
    TrialPhase.INVESTIGATION,
    TrialPhase.PROCEEDINGS,
    TrialPhase.VERDICT,
    TrialPhase.CLOSED,
]

GOAL_PROGRESS_STEP = 5
LOYALIST_MIN_POSITION = 5


def _advance_goal(character: "Character") -> None:
    """Move the character's highest-priority active goal forward."""
    goals = [g for g in character.goals if g.active]
    if not goals:
        return
    goal = max(goals, key=lambda g: g.priority)
    goal.progress = min(100, goal.progress + GOAL_PROGRESS_STEP)


class PoliticalEngine:
    """
    NPC political behaviour for one turn.

    Usage:
        engine = PoliticalEngine(dice=Dice(7))
        events = engine.process_turn(state)
    """

    def __init__(self, balance: dict | None = None, dice: Dice | None = None):
        self.config = (balance or DEFAULT_BALANCE)["politics"]
        self.dice = dice or Dice()

    def process_turn(self, state: "GameState") -> list[PoliticalEvent]:
        events: list[PoliticalEvent] = []

        gs = self.find_general_secretary(state)
        if gs is None:
            logger.debug("No General Secretary in office; skipping GS step")
        elif self.player_is_gs(state):
            logger.debug("Player holds the top office; skipping GS step")
        else:
            event = self.general_secretary_turn(gs, state)
            if event:
                events.append(event)

        events.extend(self.committee_proposals(state, gs))
        events.extend(self.faction_pressure(state))
        events.extend(self.resolve_pending(state))
        events.extend(self.progress_congress(state))
        events.extend(self.progress_trials(state))
        return events

    # ─── Office-holders ─────────────────────────────────────

    def player_is_gs(self, state: "GameState") -> bool:
        return state.player_position_index >= self.config["gs_position_index"]

    def find_general_secretary(self, state: "GameState") -> "Character | None":
        """Committee chair if active, else the highest-ranked active character at GS rank."""
        if state.committee and state.committee.chair_id:
            chair = state.character(state.committee.chair_id)
            if chair and chair.is_active:
                return chair
        eligible = [
            c for c in state.characters
            if c.is_active and (c.position_index or 0) >= self.config["gs_position_index"]
        ]
        if not eligible:
            return None
        return max(eligible, key=lambda c: c.position_index or 0)

    def committee_members(self, state: "GameState") -> list["Character"]:
        if state.committee is None:
            return []
        members = []
        for member_id in state.committee.member_ids:
            member = state.character(member_id)
            if member and member.is_active:
                members.append(member)
        return members

    # ─── General Secretary ──────────────────────────────────

    def general_secretary_turn(self, gs: "Character", state: "GameState") -> PoliticalEvent | None:
        """Strategic action first; the personal agenda only when strategy has nothing to do."""
        assessment = assess(gs, state)
        logger.debug(
            f"GS {gs.character_id} strategy={assessment.strategy.value} "
            f"power={assessment.stability.level.value} threats={len(assessment.threats)}"
        )
        action = select_action(assessment, gs, state)
        if action is not None:
            event = self.execute_action(action, gs, state)
            if event is not None:
                return event
        return self.pursue_agenda(gs, state)

    def execute_action(
        self,
        action: GSAction,
        gs: "Character",
        state: "GameState",
    ) -> PoliticalEvent | None:
        """
        Carry out a strategic action.

        Returns None when the action cannot be taken this turn (target slot
        already has a proposal, option already current) so the caller can
        fall back to the agenda. A missing target is a failed NO_OP event.
        """
        if action.action_type in (GSActionType.PROPOSE_POLICY, GSActionType.DECREE):
            slot = state.policy_slot(action.slot_id or "")
            if slot is None:
                return self._missing_slot(gs, action.slot_id, state)
            if slot.has_pending_proposal or slot.current_option_id == action.option_id:
                return None
            if slot.option(action.option_id or "") is None:
                return self._missing_option(gs, slot, action.option_id, state)
            decree = (
                action.action_type == GSActionType.DECREE
                and state.decrees_enabled
                and slot.category != LawCategory.INSTITUTIONAL
            )
            if decree:
                return self.decree(gs, slot, action.option_id, state, action.reason)
            return self.propose(gs, slot, action.option_id, state, action.reason)

        if action.action_type == GSActionType.TARGET_RIVAL:
            return self.target_rival(gs, action.character_id, state, action.reason)
        if action.action_type == GSActionType.APPOINT_LOYALIST:
            return self.appoint_loyalist(gs, state)
        if action.action_type == GSActionType.BUILD_SUPPORT:
            _advance_goal(gs)
            return PoliticalEvent(
                kind=PoliticalEventKind.BUILD_SUPPORT,
                turn=state.turn_number,
                actor_id=gs.character_id,
                target_id=action.character_id,
                summary=action.reason,
            )
        return None

    def pursue_agenda(self, gs: "Character", state: "GameState") -> PoliticalEvent | None:
        if not self.dice.percentile(act_chance(gs)).success:
            return None

        power = gs_power(gs, state, self.config)
        threshold = decree_threshold(gs, state, self.config)
        position = gs.position_index or self.config["gs_position_index"]

        for pref in build_agenda(gs):
            if not actionable(pref, state, power, position):
                continue
            slot = state.policy_slot(pref.slot_id)
            if should_decree(
                slot, pref.priority, power, threshold,
                state.stats.stability, state.decrees_enabled,
            ):
                return self.decree(gs, slot, pref.option_id, state, pref.reason)
            return self.propose(gs, slot, pref.option_id, state, pref.reason)
        return None

    def decree(
        self,
        actor: "Character",
        slot: "PolicySlot",
        option_id: str,
        state: "GameState",
        reason: str = "",
    ) -> PoliticalEvent:
        record = apply_policy_change(state, slot, option_id, actor.character_id, was_decreed=True)
        if record is None:
            return self._missing_option(actor, slot, option_id, state)
        _advance_goal(actor)
        logger.info(f"{actor.character_id} decreed {slot.slot_id} -> {option_id}")
        return PoliticalEvent(
            kind=PoliticalEventKind.DECREE,
            turn=state.turn_number,
            actor_id=actor.character_id,
            slot_id=slot.slot_id,
            option_id=option_id,
            summary=reason or f"Decree on {slot.name or slot.slot_id}",
        )

    def propose(
        self,
        actor: "Character",
        slot: "PolicySlot",
        option_id: str,
        state: "GameState",
        reason: str = "",
    ) -> PoliticalEvent:
        slot.propose_change(option_id, actor.character_id, state.turn_number)
        _advance_goal(actor)
        logger.info(f"{actor.character_id} proposed {slot.slot_id} -> {option_id}")
        return PoliticalEvent(
            kind=PoliticalEventKind.PROPOSAL,
            turn=state.turn_number,
            actor_id=actor.character_id,
            slot_id=slot.slot_id,
            option_id=option_id,
            summary=reason or f"Proposal on {slot.name or slot.slot_id}",
        )

    def target_rival(
        self,
        gs: "Character",
        character_id: str | None,
        state: "GameState",
        reason: str = "",
    ) -> PoliticalEvent:
        """Open a show trial against a rival."""
        target = state.character(character_id) if character_id else None
        if target is None:
            logger.debug(f"Rival {character_id} not found; nothing to target")
            return PoliticalEvent(
                kind=PoliticalEventKind.NO_OP,
                turn=state.turn_number,
                actor_id=gs.character_id,
                target_id=character_id,
                success=False,
                summary=f"Target {character_id} not found",
            )

        if any(t.defendant_id == target.character_id for t in state.active_trials):
            return PoliticalEvent(
                kind=PoliticalEventKind.TARGET_RIVAL,
                turn=state.turn_number,
                actor_id=gs.character_id,
                target_id=target.character_id,
                success=False,
                summary=f"{target.name or target.character_id} is already on trial",
            )

        state.show_trials.append(ShowTrial(
            defendant_id=target.character_id,
            instigator_id=gs.character_id,
            started_turn=state.turn_number,
            phase_changed_turn=state.turn_number,
        ))
        _advance_goal(gs)
        logger.info(f"{gs.character_id} moved against {target.character_id}")
        return PoliticalEvent(
            kind=PoliticalEventKind.TARGET_RIVAL,
            turn=state.turn_number,
            actor_id=gs.character_id,
            target_id=target.character_id,
            summary=reason or f"Accusations raised against {target.name or target.character_id}",
        )

    def appoint_loyalist(self, gs: "Character", state: "GameState") -> PoliticalEvent:
        """Seat the most loyal senior member of the GS's faction on the committee."""
        committee = state.committee
        if committee is None:
            return PoliticalEvent(
                kind=PoliticalEventKind.NO_OP,
                turn=state.turn_number,
                actor_id=gs.character_id,
                success=False,
                summary="No Standing Committee to appoint to",
            )

        candidates = [
            c for c in state.characters
            if c.is_active
            and c.character_id not in committee.member_ids
            and c.character_id != gs.character_id
            and gs.faction_id is not None
            and c.faction_id == gs.faction_id
            and (c.position_index or 0) >= LOYALIST_MIN_POSITION
        ]
        if not candidates:
            return PoliticalEvent(
                kind=PoliticalEventKind.APPOINT_LOYALIST,
                turn=state.turn_number,
                actor_id=gs.character_id,
                success=False,
                summary="No suitable loyalist available",
            )

        appointee = max(candidates, key=lambda c: c.loyalty)
        committee.member_ids.append(appointee.character_id)
        _advance_goal(gs)
        logger.info(f"{gs.character_id} appointed {appointee.character_id} to the committee")
        return PoliticalEvent(
            kind=PoliticalEventKind.APPOINT_LOYALIST,
            turn=state.turn_number,
            actor_id=gs.character_id,
            target_id=appointee.character_id,
            summary=f"{appointee.name or appointee.character_id} joins the Standing Committee",
        )

    def _missing_slot(self, actor: "Character", slot_id: str | None, state: "GameState") -> PoliticalEvent:
        logger.warning(f"Policy slot {slot_id} not found; action by {actor.character_id} dropped")
        return PoliticalEvent(
            kind=PoliticalEventKind.NO_OP,
            turn=state.turn_number,
            actor_id=actor.character_id,
            slot_id=slot_id,
            success=False,
            summary=f"Policy slot {slot_id} does not exist",
        )

    def _missing_option(
        self,
        actor: "Character",
        slot: "PolicySlot",
        option_id: str | None,
        state: "GameState",
    ) -> PoliticalEvent:
        logger.warning(f"Slot {slot.slot_id} has no option {option_id}; action by {actor.character_id} dropped")
        return PoliticalEvent(
            kind=PoliticalEventKind.NO_OP,
            turn=state.turn_number,
            actor_id=actor.character_id,
            slot_id=slot.slot_id,
            option_id=option_id,
            success=False,
            summary=f"Option {option_id} does not exist",
        )

    # ─── Committee ──────────────────────────────────────────

    def committee_proposals(
        self,
        state: "GameState",
        gs: "Character | None" = None,
    ) -> list[PoliticalEvent]:
        """Each non-chair member may put one faction preference to the committee."""
        events: list[PoliticalEvent] = []
        if state.committee is None:
            return events

        for member in self.committee_members(state):
            if member.character_id == state.committee.chair_id:
                continue
            if gs is not None and member.character_id == gs.character_id:
                continue
            if not self.dice.percentile(proposal_chance(member)).success:
                continue

            power = member_power(member, state)
            position = member.position_index or 0
            for pref in faction_preferences(member.faction_id):
                if not actionable(pref, state, power, position, allow_institutional=False):
                    continue
                slot = state.policy_slot(pref.slot_id)
                events.append(self.propose(
                    member, slot, pref.option_id, state,
                    f"{member.name or member.character_id} speaks for {member.faction_id}",
                ))
                break

        logger.debug(f"Committee proposals this turn: {len(events)}")
        return events

    def faction_pressure(self, state: "GameState") -> list[PoliticalEvent]:
        """Powerful factions occasionally lean on the leadership for an unmet preference."""
        events: list[PoliticalEvent] = []
        for faction in state.factions:
            if faction.power < self.config["faction_pressure_power"]:
                continue
            if not self.dice.chance(self.config["faction_pressure_chance"]):
                continue
            for pref in faction_preferences(faction.faction_id):
                slot = state.policy_slot(pref.slot_id)
                if slot is None or slot.current_option_id == pref.option_id:
                    continue
                events.append(PoliticalEvent(
                    kind=PoliticalEventKind.FACTION_PRESSURE,
                    turn=state.turn_number,
                    target_id=faction.faction_id,
                    slot_id=slot.slot_id,
                    option_id=pref.option_id,
                    summary=f"{faction.name or faction.faction_id} presses for {pref.option_id}",
                ))
                break
        return events

    # ─── Votes ──────────────────────────────────────────────

    def resolve_pending(self, state: "GameState") -> list[PoliticalEvent]:
        """
        Put every proposal submitted before this turn to a vote.

        Each resolves exactly once: passed or rejected, the result is
        recorded and the pending marker cleared.
        """
        events: list[PoliticalEvent] = []
        turn = state.turn_number

        for slot in state.policy_slots:
            if not slot.has_pending_proposal or slot.pending_turn is None:
                continue
            if slot.pending_turn >= turn:
                continue

            option_id = slot.pending_option_id
            proposer = slot.pending_character_id
            option = slot.option(option_id)

            if option is None:
                logger.warning(f"Pending option {option_id} missing from {slot.slot_id}; rejecting")
                record_rejection(state, slot, option_id, proposer, VoteResult(in_favor=0, against=0, abstained=0))
                events.append(PoliticalEvent(
                    kind=PoliticalEventKind.NO_OP,
                    turn=turn,
                    actor_id=proposer,
                    slot_id=slot.slot_id,
                    option_id=option_id,
                    success=False,
                    summary=f"Proposal on {slot.slot_id} named an unknown option",
                ))
                continue

            vote = simulate_vote(slot, option, state, self.dice, self.config["gs_position_index"])
            if vote.passed:
                apply_policy_change(state, slot, option_id, proposer, was_decreed=False, vote=vote)
                summary = f"Committee adopts {option.name or option_id} ({vote.in_favor}-{vote.against})"
            else:
                record_rejection(state, slot, option_id, proposer, vote)
                summary = f"Committee rejects {option.name or option_id} ({vote.in_favor}-{vote.against})"
            logger.info(summary)

            events.append(PoliticalEvent(
                kind=PoliticalEventKind.VOTE,
                turn=turn,
                actor_id=proposer,
                slot_id=slot.slot_id,
                option_id=option_id,
                success=vote.passed,
                summary=summary,
                vote=vote,
            ))
        return events

    # ─── Institutions ───────────────────────────────────────

    def progress_congress(self, state: "GameState") -> list[PoliticalEvent]:
        """Advance a sitting Congress one stage per turn, or convene a new one on schedule."""
        turn = state.turn_number
        session = state.current_congress

        if session is not None and session.in_session:
            if session.status_changed_turn >= turn:
                return []
            index = CONGRESS_SEQUENCE.index(session.status)
            session.status = CONGRESS_SEQUENCE[index + 1]
            session.status_changed_turn = turn
            if session.status == CongressStatus.CONCLUDED:
                session.legitimacy_granted = (state.stats.elite_loyalty + state.stats.popular_support) // 2
                state.apply_stat("power_consolidation", session.legitimacy_granted // 20)
            return [PoliticalEvent(
                kind=PoliticalEventKind.CONGRESS,
                turn=turn,
                target_id=session.session_id,
                summary=f"Party Congress {session.status.value}",
            )]

        interval = self.config["congress_interval"]
        if turn > 0 and interval > 0 and turn % interval == 0:
            session = CongressSession(turn_convened=turn, status_changed_turn=turn)
            state.congress_sessions.append(session)
            logger.info(f"Party Congress convened on turn {turn}")
            return [PoliticalEvent(
                kind=PoliticalEventKind.CONGRESS,
                turn=turn,
                target_id=session.session_id,
                summary="Party Congress convening",
            )]
        return []

    def progress_trials(self, state: "GameState") -> list[PoliticalEvent]:
        """Move each active show trial to its next phase once it has sat long enough."""
        events: list[PoliticalEvent] = []
        turn = state.turn_number
        for trial in state.active_trials:
            if turn - trial.phase_changed_turn < self.config["trial_phase_turns"]:
                continue
            index = TRIAL_SEQUENCE.index(trial.phase)
            trial.phase = TRIAL_SEQUENCE[index + 1]
            trial.phase_changed_turn = turn
            events.append(PoliticalEvent(
                kind=PoliticalEventKind.TRIAL,
                turn=turn,
                actor_id=trial.instigator_id,
                target_id=trial.defendant_id,
                summary=f"Trial of {trial.defendant_id}: {trial.phase.value}",
            ))
        return events
