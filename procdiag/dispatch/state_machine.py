"""Dispatch state machine — enforces valid transitions for one dispatch."""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable

from procdiag.exceptions import DispatchStateError


class DispatchState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


TransitionCallback = Callable[[int, DispatchState, DispatchState], Awaitable[None]]

VALID_TRANSITIONS: dict[DispatchState, set[DispatchState]] = {
    DispatchState.IDLE: {DispatchState.VALIDATING},
    DispatchState.VALIDATING: {DispatchState.EXECUTING, DispatchState.FAILED},
    DispatchState.EXECUTING: {DispatchState.COMPLETED, DispatchState.FAILED},
    DispatchState.COMPLETED: set(),  # terminal
    DispatchState.FAILED: set(),  # terminal
}


class DispatchStateMachine:
    """Tracks the lifecycle of a single dispatch against ``pid``.

    Listeners are awaited after every state change.
    """

    def __init__(self, pid: int, listeners: list[TransitionCallback] | None = None):
        self.pid = pid
        self._state = DispatchState.IDLE
        self._listeners: list[TransitionCallback] = list(listeners or [])

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def finished(self) -> bool:
        return not VALID_TRANSITIONS[self._state]

    async def transition(self, target: DispatchState) -> None:
        if target not in VALID_TRANSITIONS.get(self._state, set()):
            raise DispatchStateError(
                f"Cannot transition dispatch for pid {self.pid} "
                f"from {self._state.value} to {target.value}"
            )
        old = self._state
        self._state = target
        for listener in self._listeners:
            await listener(self.pid, old, target)

    def on_transition(self, callback: TransitionCallback) -> None:
        self._listeners.append(callback)
