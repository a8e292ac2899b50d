"""
Turn orchestrator for the Nomenklatura engine.

Owns the phase state machine and sequences one turn:
    IDLE → ECONOMY → DIPLOMACY → POLITICS → EVENTS → COMPLETE → IDLE

- The orchestrator sequences and delegates; engines do the work.
- Engine order is fixed so a seed reproduces the turn.
- A second advance while a turn is in progress is rejected.
- Each phase emits events on the injected EventBus.

Usage:
    orchestrator = TurnOrchestrator(dice=Dice(42))
    report = orchestrator.advance_turn(state)

    # Or, one-off
    report = advance_turn(state, seed=42)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from ..config import DEFAULT_BALANCE
from ..state.event_bus import EventBus, EventType
from ..state.schemas.event import TurnEvent
from ..state.schemas.reports import PoliticalEventKind
from ..state.schemas.turn_report import TurnReport
from ..tools.dice import Dice
from .diplomacy import DiplomaticEngine
from .economy import EconomicEngine
from .errors import InvalidPhaseError, TurnError
from .generators import Generator
from .political_ai import PoliticalEngine
from .scheduler import PacingScheduler

if TYPE_CHECKING:
    from ..state.schema import GameState

logger = logging.getLogger(__name__)

__all__ = [
    "TurnPhase",
    "VALID_TRANSITIONS",
    "TurnError",
    "InvalidPhaseError",
    "TurnOrchestrator",
    "advance_turn",
]


class TurnPhase(str, Enum):
    """Phase state machine for a single turn."""
    IDLE = "idle"              # No turn in progress
    ECONOMY = "economy"        # Ledger and macro indicators
    DIPLOMACY = "diplomacy"    # Foreign relations and world events
    POLITICS = "politics"      # NPC proposals, decrees, votes
    EVENTS = "events"          # Candidate incidents and pacing
    COMPLETE = "complete"      # Report built, ready for next


VALID_TRANSITIONS: dict[TurnPhase, set[TurnPhase]] = {
    TurnPhase.IDLE: {TurnPhase.ECONOMY},
    TurnPhase.ECONOMY: {TurnPhase.DIPLOMACY},
    TurnPhase.DIPLOMACY: {TurnPhase.POLITICS},
    TurnPhase.POLITICS: {TurnPhase.EVENTS},
    TurnPhase.EVENTS: {TurnPhase.COMPLETE},
    TurnPhase.COMPLETE: {TurnPhase.IDLE},
}


POLITICAL_EVENT_TYPES: dict[PoliticalEventKind, EventType] = {
    PoliticalEventKind.DECREE: EventType.POLICY_CHANGED,
    PoliticalEventKind.VOTE: EventType.POLICY_CHANGED,
}


class TurnOrchestrator:
    """
    Sequences the turn pipeline. Delegates, never resolves.

    All engines share one Dice so a seed fixes the whole turn. Engines
    are built once here and reused for every turn.
    """

    def __init__(
        self,
        balance: dict | None = None,
        bus: EventBus | None = None,
        dice: Dice | None = None,
        generators: list[tuple[str, Generator]] | None = None,
    ):
        self.balance = balance or DEFAULT_BALANCE
        self.dice = dice or Dice()
        self.bus = bus or EventBus()

        self.economy = EconomicEngine(self.balance, self.dice)
        self.diplomacy = DiplomaticEngine(self.balance, self.dice)
        self.politics = PoliticalEngine(self.balance, self.dice)
        self.scheduler = PacingScheduler(self.balance, self.dice, generators)

        self._phase = TurnPhase.IDLE

    @property
    def phase(self) -> TurnPhase:
        """Current phase of the turn state machine."""
        return self._phase

    def _transition(self, to: TurnPhase, state: "GameState") -> None:
        """Transition to a new phase, enforcing valid transitions."""
        if to not in VALID_TRANSITIONS.get(self._phase, set()):
            raise InvalidPhaseError(self._phase, f"transition to {to.value}")
        self._phase = to
        self.bus.emit(EventType.TURN_PHASE, game_id=state.id, turn=state.turn_number, phase=to.value)

    # ─── Turn Pipeline ───────────────────────────────────────────

    def advance_turn(self, state: "GameState", seed: int | None = None) -> TurnReport:
        """
        Advance the game by exactly one turn.

        Args:
            state: Game state, mutated in place
            seed: Reseed the shared Dice first, for a reproducible turn

        Returns:
            TurnReport with the ledger, engine reports, selected incidents
            and a post-turn snapshot

        Raises:
            InvalidPhaseError: If a turn is already in progress
        """
        if self._phase != TurnPhase.IDLE:
            raise InvalidPhaseError(self._phase, "advance turn")

        if seed is not None:
            self.dice.reseed(seed)

        try:
            return self._run(state)
        except Exception:
            logger.exception(f"Turn {state.turn_number} aborted; state should be discarded")
            raise
        finally:
            self._phase = TurnPhase.IDLE

    def _run(self, state: "GameState") -> TurnReport:
        events: list[TurnEvent] = []
        state.turn_number += 1
        turn = state.turn_number
        self.bus.emit(EventType.TURN_STARTED, game_id=state.id, turn=turn)

        # Economy
        self._transition(TurnPhase.ECONOMY, state)
        ledger = self.economy.compute_ledger(state)
        treasury_delta = self.economy.apply_ledger(ledger, state)
        macro = self.economy.process_macro(state)
        events.append(TurnEvent(
            event_type="economy.ledger",
            turn=turn,
            payload={"net_change": ledger.net_change, "applied": treasury_delta},
            summary=f"Treasury {treasury_delta:+d} (net {ledger.net_change:+d})",
        ))
        self.bus.emit(
            EventType.LEDGER_APPLIED, game_id=state.id, turn=turn,
            net_change=ledger.net_change, applied=treasury_delta,
        )
        if macro.crisis is not None:
            events.append(TurnEvent(
                event_type="economy.crisis",
                turn=turn,
                payload={"crisis": macro.crisis.value, "effects": macro.crisis_effects},
                summary=f"Economic crisis: {macro.crisis.value.replace('_', ' ')}",
            ))
            self.bus.emit(EventType.ECONOMIC_CRISIS, game_id=state.id, turn=turn, crisis=macro.crisis.value)

        # Diplomacy
        self._transition(TurnPhase.DIPLOMACY, state)
        diplomacy = self.diplomacy.process_turn(state)
        for flag in diplomacy.expired_treaties:
            events.append(TurnEvent(event_type="diplomacy.treaty_expired", turn=turn,
                                    payload={"flag": flag}, summary="A treaty has lapsed"))
            self.bus.emit(EventType.TREATY_EXPIRED, game_id=state.id, turn=turn, flag=flag)
        for world_event in diplomacy.world_events:
            events.append(TurnEvent(
                event_type="diplomacy.world_event",
                turn=turn,
                payload={"event_type": world_event.event_type.value, "country_id": world_event.country_id},
                summary=world_event.headline,
            ))
            self.bus.emit(
                EventType.WORLD_EVENT, game_id=state.id, turn=turn,
                event_type=world_event.event_type.value, country_id=world_event.country_id,
            )

        # Politics
        self._transition(TurnPhase.POLITICS, state)
        political_events = self.politics.process_turn(state)
        for pe in political_events:
            if pe.kind == PoliticalEventKind.VOTE and not pe.success:
                bus_type = EventType.POLICY_REJECTED
            else:
                bus_type = POLITICAL_EVENT_TYPES.get(pe.kind, EventType.POLITICAL_ACTION)
            events.append(TurnEvent(
                event_type=f"politics.{pe.kind.value}",
                turn=turn,
                payload=pe.model_dump(mode="json", exclude_none=True),
                summary=pe.summary,
            ))
            self.bus.emit(bus_type, game_id=state.id, turn=turn, kind=pe.kind.value, slot_id=pe.slot_id)

        # Incidents
        self._transition(TurnPhase.EVENTS, state)
        outcome = self.scheduler.run(state)
        for incident in outcome.selected:
            events.append(TurnEvent(
                event_type="incident.fired",
                turn=turn,
                payload={"incident_type": incident.incident_type.value, "priority": incident.priority.value},
                summary=incident.title,
            ))
            self.bus.emit(
                EventType.INCIDENT_FIRED, game_id=state.id, turn=turn,
                incident_type=incident.incident_type.value, priority=incident.priority.value,
            )
        for incident in outcome.suppressed:
            events.append(TurnEvent(
                event_type="incident.suppressed",
                turn=turn,
                payload={"incident_type": incident.incident_type.value, "priority": incident.priority.value},
                summary=f"Held back: {incident.title}",
            ))
            self.bus.emit(
                EventType.INCIDENT_SUPPRESSED, game_id=state.id, turn=turn,
                incident_type=incident.incident_type.value,
            )
        if outcome.quiet:
            self.bus.emit(
                EventType.QUIET_TURN, game_id=state.id, turn=turn,
                reason=outcome.quiet_reason.value if outcome.quiet_reason else None,
            )

        # Report
        self._transition(TurnPhase.COMPLETE, state)
        report = TurnReport(
            turn_number=turn,
            seed=self.dice.seed,
            ledger=ledger,
            treasury_delta=treasury_delta,
            macro=macro,
            diplomacy=diplomacy,
            political_events=political_events,
            incidents=[c.to_fired() for c in outcome.selected],
            quiet=outcome.quiet,
            quiet_reason=outcome.quiet_reason.value if outcome.quiet_reason else None,
            suppressed=[c.to_fired() for c in outcome.suppressed],
            events=events,
            state_snapshot=self._build_snapshot(state),
        )
        self.bus.emit(
            EventType.TURN_END, game_id=state.id, turn=turn,
            incidents=len(report.incidents), quiet=report.quiet,
        )
        self._transition(TurnPhase.IDLE, state)
        return report

    def _build_snapshot(self, state: "GameState") -> dict:
        """The slice of state a front end renders from after the turn."""
        economy = state.economy
        return {
            "turn_number": state.turn_number,
            "stats": state.stats.model_dump(),
            "economy": {
                "gdp_index": economy.gdp_index,
                "inflation_rate": economy.inflation_rate,
                "unemployment_rate": economy.unemployment_rate,
                "trade_balance": economy.trade_balance,
                "sectors": [economy.agriculture_share, economy.industry_share, economy.services_share],
                "active_crisis": economy.active_crisis.value if economy.active_crisis else None,
            },
            "relations": {c.country_id: c.relationship_score for c in state.countries},
            "policies": {s.slot_id: s.current_option_id for s in state.policy_slots},
            "pending": [s.slot_id for s in state.policy_slots if s.has_pending_proposal],
            "decrees_enabled": state.decrees_enabled,
            "pacing": state.pacing.model_dump(),
            "cooldowns": {k: v.expires_turn for k, v in state.incident_cooldowns.items()},
        }


def advance_turn(
    state: "GameState",
    seed: int | None = None,
    balance: dict | None = None,
) -> TurnReport:
    """Advance one turn with a fresh orchestrator."""
    return TurnOrchestrator(balance=balance, dice=Dice(seed)).advance_turn(state)
