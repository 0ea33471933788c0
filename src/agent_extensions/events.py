"""
Event system for extension update notifications.

The update state store publishes every state transition on an EventBus so
the surrounding UI/CLI layer can observe progress without owning the state.

Example:
    from agent_extensions.events import EventBus

    bus = EventBus()
    bus.on_transition(lambda t: print(f"{t.name}: {t.state.value}"))
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agent_extensions.logging import get_logger

if TYPE_CHECKING:
    from agent_extensions.models import ExtensionUpdateInfo
    from agent_extensions.state import ExtensionUpdateState

logger = get_logger("events")


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

UPDATE_STATE_CHANGED = "update_state_changed"
EXTENSION_UPDATED = "extension_updated"
EXTENSION_UPDATE_FAILED = "extension_update_failed"


@dataclass
class StateTransition:
    """Emitted whenever an extension's update state is written."""

    name: str
    state: ExtensionUpdateState
    previous: ExtensionUpdateState | None = None


@dataclass
class ExtensionUpdatedEvent:
    """Emitted after an extension was replaced on disk."""

    info: ExtensionUpdateInfo


@dataclass
class ExtensionUpdateFailedEvent:
    """Emitted when an update was rolled back."""

    name: str
    error: str


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------

EventHandler = Callable[[Any], None]


class EventBus:
    """
    Synchronous fan-out of update lifecycle events.

    Handlers run in registration order. A failing handler is logged and
    never reaches the emitter, so observers cannot break a state write.

    Usage:
        bus = EventBus()
        unsub = bus.on(EXTENSION_UPDATED, handler)
        unsub()
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler and return its unsubscribe function."""
        handlers = self._handlers.setdefault(event, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def on_transition(
        self, handler: Callable[[StateTransition], None]
    ) -> Callable[[], None]:
        """Register a handler for every update state write."""
        return self.on(UPDATE_STATE_CHANGED, handler)

    def emit(self, event: str, data: Any = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(data)
            except Exception as e:
                logger.warning("Event handler error (event=%s): %s", event, e)
