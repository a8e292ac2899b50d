"""
Event bus for Nomenklatura turn processing.

Lets the CLI, stores and tests observe what the turn engine did without the
engines knowing about them. The bus is owned by whoever builds the
orchestrator and injected into it.

Usage:
    from .event_bus import EventBus, EventType

    bus = EventBus()
    bus.on(EventType.INCIDENT_FIRED, my_handler)

    # Emitted by the scheduler when an incident is committed
    bus.emit(EventType.INCIDENT_FIRED, turn=12, incident_type="rival_action")

    def my_handler(event: GameEvent):
        print(f"Incident {event.data['incident_type']} fired")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Turn events that can be published."""

    # Turn lifecycle
    TURN_STARTED = "turn.started"
    TURN_PHASE = "turn.phase"
    TURN_END = "turn.end"

    # Economy
    LEDGER_APPLIED = "economy.ledger_applied"
    ECONOMIC_CRISIS = "economy.crisis"

    # Diplomacy
    WORLD_EVENT = "diplomacy.world_event"
    TREATY_SIGNED = "diplomacy.treaty_signed"
    TREATY_EXPIRED = "diplomacy.treaty_expired"

    # Politics
    POLICY_CHANGED = "politics.policy_changed"
    POLICY_REJECTED = "politics.policy_rejected"
    POLITICAL_ACTION = "politics.action"

    # Incidents
    INCIDENT_FIRED = "incident.fired"
    INCIDENT_SUPPRESSED = "incident.suppressed"
    QUIET_TURN = "incident.quiet_turn"

    # Persistence
    GAME_LOADED = "game.loaded"
    GAME_SAVED = "game.saved"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        game_id: ID of the game this event belongs to
        turn: Turn number when the event occurred
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    game_id: str = ""
    turn: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(), in subscription order.
    A listener that raises is logged and skipped; emission continues.
    """

    def __init__(self, history_limit: int = 200):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type. Duplicate handlers are ignored."""
        handlers = self._listeners.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if handler in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(handler)

    def emit(
        self,
        event_type: EventType,
        /,
        game_id: str = "",
        turn: int = 0,
        **data,
    ) -> GameEvent:
        """
        Emit an event to all subscribers.

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data, game_id=game_id, turn=turn)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in event handler for {event_type.value}")

        return event

    def clear(self) -> None:
        """Clear all listeners and history."""
        self._listeners.clear()
        self._history.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        return len(self._listeners.get(event_type, []))
