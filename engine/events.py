"""Publish/subscribe channel between the battle engine and its observers."""

from __future__ import annotations

import logging
from collections.abc import Callable

from models.events import BattleEvent, BattleEventType, EventPayload

logger = logging.getLogger(__name__)

Listener = Callable[[BattleEvent], None]


class EventChannel:
    """Dispatches typed battle events to registered listeners.

    Listeners subscribe to one event type, or to every type with
    ``subscribe_all``. They run synchronously, in registration order,
    on the emitter's call stack.
    """

    def __init__(self) -> None:
        self._listeners: dict[BattleEventType, list[Listener]] = {}
        self._wildcard: list[Listener] = []

    def subscribe(self, event_type: BattleEventType, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def subscribe_all(self, listener: Listener) -> None:
        self._wildcard.append(listener)

    def unsubscribe(self, event_type: BattleEventType, listener: Listener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def unsubscribe_all(self, listener: Listener) -> None:
        if listener in self._wildcard:
            self._wildcard.remove(listener)

    def emit(self, event_type: BattleEventType, payload: EventPayload) -> BattleEvent:
        """Build an event and deliver it to every interested listener.

        Args:
            event_type: The kind of event.
            payload: Its typed payload.

        Returns:
            The delivered event.
        """
        event = BattleEvent(type=event_type, payload=payload)
        logger.debug("Emitting %s", event_type.value)
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event_type, [])):
            listener(event)
        for listener in list(self._wildcard):
            listener(event)
        return event
