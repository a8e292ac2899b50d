"""
Dynamic event trigger and pacing scheduler.

Decides which incident, if any, interrupts the player this turn:
    IDLE → GATHER → FILTER → PACING → SELECT → COMMITTED → IDLE

PACING may go straight to COMMITTED on a quiet turn. The scheduler never
raises on bad input: a broken generator contributes nothing and an empty
turn is a normal outcome.

Usage:
    scheduler = PacingScheduler(dice=Dice(11))
    outcome = scheduler.run(state)
    for incident in outcome.selected:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..config import DEFAULT_BALANCE
from ..rules.pacing import (
    incident_cap,
    is_on_cooldown,
    is_position_appropriate,
    next_consecutive_count,
    quiet_chance,
    should_force_quiet,
)
from ..state.schema import CooldownEntry, IncidentRecord
from ..tools.dice import Dice
from .errors import InvalidPhaseError
from .generators import Generator, default_generators
from .incidents import CandidateIncident

if TYPE_CHECKING:
    from ..state.schema import GameState

logger = logging.getLogger(__name__)


class SchedulerPhase(str, Enum):
    """Phase state machine for one scheduling pass."""
    IDLE = "idle"
    GATHER = "gather"
    FILTER = "filter"
    PACING = "pacing"
    SELECT = "select"
    COMMITTED = "committed"


VALID_TRANSITIONS: dict[SchedulerPhase, set[SchedulerPhase]] = {
    SchedulerPhase.IDLE: {SchedulerPhase.GATHER},
    SchedulerPhase.GATHER: {SchedulerPhase.FILTER},
    SchedulerPhase.FILTER: {SchedulerPhase.PACING},
    SchedulerPhase.PACING: {SchedulerPhase.SELECT, SchedulerPhase.COMMITTED},  # Quiet skips selection
    SchedulerPhase.SELECT: {SchedulerPhase.COMMITTED},
    SchedulerPhase.COMMITTED: {SchedulerPhase.IDLE},
}


class QuietReason(str, Enum):
    FORCED = "forced"              # Consecutive-event ceiling reached
    PACING = "pacing"              # Quiet-turn roll
    NO_CANDIDATES = "no_candidates"


@dataclass
class SchedulerOutcome:
    """What the scheduler decided this turn."""
    selected: list[CandidateIncident] = field(default_factory=list)
    suppressed: list[CandidateIncident] = field(default_factory=list)  # Urgent-or-above not shown
    quiet: bool = False
    quiet_reason: QuietReason | None = None
    gathered: int = 0
    eligible: int = 0
    failed_generators: list[str] = field(default_factory=list)

    @property
    def fired(self) -> bool:
        return bool(self.selected)


def select_winner(candidates: list[CandidateIncident], dice: Dice) -> CandidateIncident | None:
    """
    Pick one candidate.

    The first urgent-or-above candidate in registration order wins outright.
    Otherwise choose uniformly among the highest priority tier present.
    """
    if not candidates:
        return None
    for candidate in candidates:
        if candidate.priority.is_urgent:
            return candidate
    top = max(c.priority.rank for c in candidates)
    return dice.choice([c for c in candidates if c.priority.rank == top])


class PacingScheduler:
    """
    Gathers, filters, paces and commits incidents.

    Generators are called in registration order; register() appends.
    """

    def __init__(
        self,
        balance: dict | None = None,
        dice: Dice | None = None,
        generators: list[tuple[str, Generator]] | None = None,
    ):
        balance = balance or DEFAULT_BALANCE
        self.pacing_config = balance["pacing"]
        self.cooldowns = balance["cooldowns"]
        self.priority_cooldowns = balance["priority_cooldowns"]
        self.position_gates = balance["position_gates"]
        self.dice = dice or Dice()
        self._generators: list[tuple[str, Generator]] = (
            list(generators) if generators is not None else default_generators(balance)
        )
        self._phase = SchedulerPhase.IDLE

    @property
    def phase(self) -> SchedulerPhase:
        return self._phase

    @property
    def generator_names(self) -> list[str]:
        return [name for name, _ in self._generators]

    def register(self, name: str, generator: Generator) -> None:
        """Add a generator after the existing ones."""
        self._generators.append((name, generator))

    def _transition(self, to: SchedulerPhase) -> None:
        if to not in VALID_TRANSITIONS.get(self._phase, set()):
            raise InvalidPhaseError(self._phase, f"transition to {to.value}")
        self._phase = to

    # ─── Pipeline ───────────────────────────────────────────

    def run(self, state: "GameState") -> SchedulerOutcome:
        """One full scheduling pass. Mutates only cooldowns, history, markers and pacing."""
        if self._phase != SchedulerPhase.IDLE:
            raise InvalidPhaseError(self._phase, "run")

        outcome = SchedulerOutcome()
        try:
            self._transition(SchedulerPhase.GATHER)
            candidates = self.gather(state, outcome)

            self._transition(SchedulerPhase.FILTER)
            eligible = self.filter(candidates, state)
            outcome.gathered = len(candidates)
            outcome.eligible = len(eligible)

            self._transition(SchedulerPhase.PACING)
            pacing = state.pacing
            fired_last_turn = pacing.fired_last_turn
            pacing.events_this_turn = 0

            if should_force_quiet(pacing, self.pacing_config):
                outcome.quiet = True
                outcome.quiet_reason = QuietReason.FORCED
            elif self.dice.chance(quiet_chance(state, self.pacing_config)):
                outcome.quiet = True
                outcome.quiet_reason = QuietReason.PACING

            if outcome.quiet:
                outcome.suppressed = [c for c in eligible if c.priority.is_urgent]
                self._transition(SchedulerPhase.COMMITTED)
            else:
                self._transition(SchedulerPhase.SELECT)
                outcome.selected, outcome.suppressed = self.select(eligible, state)
                if not outcome.selected:
                    outcome.quiet = True
                    outcome.quiet_reason = QuietReason.NO_CANDIDATES
                self._transition(SchedulerPhase.COMMITTED)

            self.commit(outcome, state, fired_last_turn)
        finally:
            self._phase = SchedulerPhase.IDLE

        for candidate in outcome.suppressed:
            logger.warning(
                f"Suppressed {candidate.priority.value} {candidate.incident_type.value} "
                f"from {candidate.source} on turn {state.turn_number}"
            )
        return outcome

    def gather(self, state: "GameState", outcome: SchedulerOutcome | None = None) -> list[CandidateIncident]:
        """Call every generator; one that raises or returns junk contributes nothing."""
        candidates: list[CandidateIncident] = []
        for name, generator in self._generators:
            try:
                produced = generator(state, self.dice)
            except Exception:
                logger.exception(f"Incident generator {name} failed on turn {state.turn_number}")
                if outcome is not None:
                    outcome.failed_generators.append(name)
                continue

            if not isinstance(produced, list) or not all(
                isinstance(c, CandidateIncident) for c in produced
            ):
                logger.warning(f"Incident generator {name} returned malformed output; ignoring it")
                if outcome is not None:
                    outcome.failed_generators.append(name)
                continue

            for candidate in produced:
                if not candidate.source:
                    candidate.source = name
            candidates.extend(produced)
        return candidates

    def filter(self, candidates: list[CandidateIncident], state: "GameState") -> list[CandidateIncident]:
        """Drop candidates wrong for the player's rank or still cooling down."""
        eligible = []
        for candidate in candidates:
            if not is_position_appropriate(
                candidate.incident_type, state.player_position_index, self.position_gates
            ):
                logger.debug(f"{candidate.incident_type.value} gated at position {state.player_position_index}")
                continue
            if is_on_cooldown(
                candidate.incident_type,
                candidate.priority,
                state.turn_number,
                state.incident_cooldowns,
                self.priority_cooldowns,
            ):
                logger.debug(f"{candidate.incident_type.value} on cooldown")
                continue
            eligible.append(candidate)
        return eligible

    def select(
        self,
        eligible: list[CandidateIncident],
        state: "GameState",
    ) -> tuple[list[CandidateIncident], list[CandidateIncident]]:
        """
        Pick up to the turn's cap.

        After each pick, candidates of the same type drop out since that
        type now cools down. Every urgent candidate not picked, same-type
        duplicates included, is returned as suppressed.
        """
        cap = incident_cap(state, self.pacing_config)
        remaining = list(eligible)
        selected: list[CandidateIncident] = []

        while remaining and len(selected) < cap:
            winner = select_winner(remaining, self.dice)
            if winner is None:
                break
            selected.append(winner)
            remaining = [c for c in remaining if c.incident_type != winner.incident_type]

        suppressed = [
            c for c in eligible
            if c.priority.is_urgent and all(c is not s for s in selected)
        ]
        return selected, suppressed

    def commit(
        self,
        outcome: SchedulerOutcome,
        state: "GameState",
        fired_last_turn: bool,
    ) -> None:
        """Write cooldowns, history, commit markers and the pacing counters."""
        turn = state.turn_number

        state.incident_cooldowns = {
            key: entry for key, entry in state.incident_cooldowns.items()
            if turn < entry.expires_turn
        }

        for incident in outcome.selected:
            type_key = incident.incident_type.value
            length = self.cooldowns.get(type_key, 0)
            if length > 0:
                state.incident_cooldowns[type_key] = CooldownEntry(
                    fired_turn=turn, expires_turn=turn + length,
                )
            state.incident_history.append(IncidentRecord(
                incident_type=type_key,
                priority=incident.priority.value,
                turn=turn,
                title=incident.title,
                country_id=incident.country_id,
                target_ids=list(incident.target_ids),
            ))
            for flag in incident.flags:
                state.add_flag(flag)
            state.variables.update(incident.variables)
            logger.info(f"Turn {turn}: {incident.priority.value} {type_key} ({incident.source}) - {incident.title}")

        pacing = state.pacing
        pacing.events_this_turn = len(outcome.selected)
        if outcome.quiet_reason == QuietReason.FORCED:
            pacing.consecutive_event_turns = 0
        else:
            pacing.consecutive_event_turns = next_consecutive_count(
                pacing.consecutive_event_turns, outcome.fired, fired_last_turn,
            )
        pacing.fired_last_turn = outcome.fired
