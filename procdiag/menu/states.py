"""Menu state machine — pure transitions over an immutable session snapshot.

Nothing in here touches the terminal, the process table or a subprocess.
Each ``on_*`` function takes the current snapshot plus whatever the
operator (or the dispatcher) produced and returns the next snapshot.

    LIST_PROCESSES → SELECT_PROCESS → SELECT_ACTION → DISPATCH → DISPLAY
          ↑______________|  (r)           |  (b)                   |
          ↑_______________________________________________________|
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict

from procdiag.exceptions import InvalidSelection
from procdiag.types import ActionSpec, ExecutionResult, ProcessCategory, ProcessInfo

ActionLookup = Callable[[ProcessCategory], list[ActionSpec]]

QUIT_KEYS = {"q", "quit", "exit"}
REFRESH_KEYS = {"r", "refresh"}
BACK_KEYS = {"b", "back"}


class MenuState(str, Enum):
    LIST_PROCESSES = "list_processes"
    SELECT_PROCESS = "select_process"
    SELECT_ACTION = "select_action"
    DISPATCH = "dispatch"
    DISPLAY = "display"
    EXIT = "exit"


class MenuSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: MenuState = MenuState.LIST_PROCESSES
    processes: tuple[ProcessInfo, ...] = ()
    process: ProcessInfo | None = None
    actions: tuple[ActionSpec, ...] = ()
    action: ActionSpec | None = None
    result: ExecutionResult | None = None
    error: str = ""
    hint: str = ""
    notice: str = ""

    def advance(self, **changes) -> MenuSession:
        changes.setdefault("notice", "")
        return self.model_copy(update=changes)


def parse_selection(raw: str, count: int) -> int:
    """1-based operator input → 0-based index. Raises InvalidSelection."""
    text = raw.strip()
    try:
        choice = int(text)
    except ValueError:
        raise InvalidSelection(f"'{text}' is not a number") from None
    if not 1 <= choice <= count:
        if count == 0:
            raise InvalidSelection("Nothing to select")
        raise InvalidSelection(f"{choice} is out of range (1-{count})")
    return choice - 1


def _rejected(session: MenuSession, error: InvalidSelection) -> MenuSession:
    return session.model_copy(update={"notice": str(error)})


def on_processes_loaded(session: MenuSession, processes: list[ProcessInfo]) -> MenuSession:
    return session.advance(
        state=MenuState.SELECT_PROCESS,
        processes=tuple(processes),
        process=None,
        actions=(),
        action=None,
        result=None,
        error="",
        hint="",
    )


def on_scan_failed(session: MenuSession, message: str) -> MenuSession:
    """A refresh failed; keep showing the previous list."""
    return session.model_copy(
        update={"state": MenuState.SELECT_PROCESS, "notice": f"Refresh failed: {message}"}
    )


def on_process_input(session: MenuSession, raw: str, actions_for: ActionLookup) -> MenuSession:
    key = raw.strip().lower()
    if key in QUIT_KEYS:
        return session.advance(state=MenuState.EXIT)
    if key in REFRESH_KEYS:
        return session.advance(state=MenuState.LIST_PROCESSES)
    try:
        index = parse_selection(raw, len(session.processes))
    except InvalidSelection as e:
        return _rejected(session, e)

    process = session.processes[index]
    actions = tuple(actions_for(process.category))
    notice = "" if actions else f"No actions available for {process.category.value} processes"
    return session.advance(
        state=MenuState.SELECT_ACTION,
        process=process,
        actions=actions,
        notice=notice,
    )


def on_action_input(session: MenuSession, raw: str) -> MenuSession:
    key = raw.strip().lower()
    if key in QUIT_KEYS:
        return session.advance(state=MenuState.EXIT)
    if key in BACK_KEYS:
        return session.advance(state=MenuState.SELECT_PROCESS, process=None, actions=())
    try:
        index = parse_selection(raw, len(session.actions))
    except InvalidSelection as e:
        return _rejected(session, e)
    return session.advance(state=MenuState.DISPATCH, action=session.actions[index])


def on_dispatch_done(
    session: MenuSession,
    result: ExecutionResult | None = None,
    error: str = "",
    hint: str = "",
) -> MenuSession:
    return session.advance(state=MenuState.DISPLAY, result=result, error=error, hint=hint)


def on_display_input(session: MenuSession, raw: str) -> MenuSession:
    key = raw.strip().lower()
    if key in QUIT_KEYS or key in {"n", "no"}:
        return session.advance(state=MenuState.EXIT)
    # Anything else goes round again with a fresh scan
    return session.advance(state=MenuState.LIST_PROCESSES, result=None, error="", hint="")
