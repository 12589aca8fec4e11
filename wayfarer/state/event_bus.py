"""
Event bus for committed world changes.

Decouples the session facade from whatever renders or records the world.
The engine itself never emits: only WorldManager does, after a snapshot
has been committed and saved.

Usage:
    from .event_bus import get_event_bus, EventType

    bus = get_event_bus()
    bus.on(EventType.COMBAT_ENDED, my_handler)

    # In the manager, after a commit
    bus.emit(EventType.COMBAT_ENDED, action_counter=12, victory=True)

    def my_handler(event: GameEvent):
        print(f"Fight over at action {event.action_counter}")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Notifications published by the session facade."""

    # World lifecycle
    WORLD_CREATED = "world.created"
    WORLD_LOADED = "world.loaded"
    WORLD_COMMITTED = "world.committed"  # Any committed action
    CHANGES_DROPPED = "world.changes_dropped"  # Batch had skipped records

    # Combat
    COMBAT_STARTED = "combat.started"
    COMBAT_ROUND = "combat.round"
    COMBAT_ENDED = "combat.ended"

    # Player
    PLAYER_DIED = "player.died"
    LEVEL_UP = "player.level_up"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        action_counter: Version stamp of the snapshot the event describes
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    action_counter: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(), in subscription order.
    A failing listener is logged and skipped; it never breaks the others
    or the commit that triggered it.
    """

    def __init__(self):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = 100  # Keep last N events for debugging

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if event_type in self._listeners and handler in self._listeners[event_type]:
            self._listeners[event_type].remove(handler)

    def emit(self, event_type: EventType, action_counter: int = 0, **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data, action_counter=action_counter)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in handler for {event_type.value}: {e}")

        return event

    def clear(self) -> None:
        """Clear all listeners and history. Useful for testing."""
        self._listeners.clear()
        self._history.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        return len(self._listeners.get(event_type, []))


# Global singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance (same instance across calls)."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus. Useful for testing."""
    global _event_bus
    _event_bus = None
