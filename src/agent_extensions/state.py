"""
Update states and the per-extension state store.

An extension has no state until it is first probed. Probes move it through
``CHECKING_FOR_UPDATES`` to one of ``NOT_UPDATABLE``, ``UP_TO_DATE``,
``UPDATE_AVAILABLE`` or ``ERROR``. Updates move it through ``UPDATING`` to
``UPDATED_NEEDS_RESTART`` or ``ERROR``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from enum import Enum

from agent_extensions.events import UPDATE_STATE_CHANGED, EventBus, StateTransition


class ExtensionUpdateState(str, Enum):
    """Lifecycle state of one extension's update process."""

    NOT_UPDATABLE = "not_updatable"
    CHECKING_FOR_UPDATES = "checking_for_updates"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    UPDATING = "updating"
    UPDATED_NEEDS_RESTART = "updated_needs_restart"
    ERROR = "error"

    @property
    def is_in_flight(self) -> bool:
        return self in (
            ExtensionUpdateState.CHECKING_FOR_UPDATES,
            ExtensionUpdateState.UPDATING,
        )

    @property
    def is_terminal(self) -> bool:
        return not self.is_in_flight


StateReporter = Callable[[ExtensionUpdateState], None]


def can_enter_updating(state: ExtensionUpdateState | None) -> bool:
    """An update may start from any state except an update already running."""
    return state is not ExtensionUpdateState.UPDATING


class UpdateStateStore:
    """
    Mapping from extension name to its current update state.

    Owned by the caller and passed into the orchestrator. Each operation
    writes only its own extension's key; concurrent writers to different
    keys never interfere and the last write to a key wins.

    Example:
        store = UpdateStateStore(event_bus=bus)
        await check_for_all_extension_updates(extensions, store)
        store.get("github-tools")  # ExtensionUpdateState.UPDATE_AVAILABLE
    """

    def __init__(
        self,
        initial: dict[str, ExtensionUpdateState] | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._states: dict[str, ExtensionUpdateState] = dict(initial or {})
        self.event_bus = event_bus

    def get(self, name: str) -> ExtensionUpdateState | None:
        return self._states.get(name)

    def set(self, name: str, state: ExtensionUpdateState) -> None:
        previous = self._states.get(name)
        self._states[name] = state
        if self.event_bus is not None:
            self.event_bus.emit(
                UPDATE_STATE_CHANGED,
                StateTransition(name=name, state=state, previous=previous),
            )

    def discard(self, name: str) -> None:
        self._states.pop(name, None)

    def reporter_for(self, name: str) -> StateReporter:
        """Return a callback that writes states for one extension only."""

        def report(state: ExtensionUpdateState) -> None:
            self.set(name, state)

        return report

    def snapshot(self) -> dict[str, ExtensionUpdateState]:
        return dict(self._states)

    def items(self) -> Iterator[tuple[str, ExtensionUpdateState]]:
        return iter(list(self._states.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __len__(self) -> int:
        return len(self._states)


_CLOSED = object()


class TransitionStream:
    """
    Ordered, lazily consumed sequence of states reported by one operation.

    ``report`` is handed to the operation as its reporter; the consumer
    iterates with ``async for`` and the iteration ends once ``close`` is
    called.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    def report(self, state: ExtensionUpdateState) -> None:
        if self._closed:
            raise RuntimeError("Cannot report to a closed transition stream")
        self._queue.put_nowait(state)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> TransitionStream:
        return self

    async def __anext__(self) -> ExtensionUpdateState:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]
