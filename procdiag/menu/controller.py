"""MenuController — drives the interactive session over the pure menu states."""

from __future__ import annotations

import logging
from typing import Callable

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from procdiag.actions.registry import ActionRegistry
from procdiag.catalog.catalog import ProcessCatalog
from procdiag.dispatch.dispatcher import Dispatcher
from procdiag.exceptions import CatalogUnavailableError, DispatchError, SpawnFailedError
from procdiag.menu import render
from procdiag.menu.states import (
    MenuSession,
    MenuState,
    on_action_input,
    on_dispatch_done,
    on_display_input,
    on_process_input,
    on_processes_loaded,
    on_scan_failed,
)

_logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]


class MenuController:
    """List → select process → select action → dispatch → display, until exit.

    The terminal is only touched through ``console`` and ``prompt`` so the
    whole loop can be driven by a script in tests.
    """

    def __init__(
        self,
        catalog: ProcessCatalog,
        registry: ActionRegistry,
        dispatcher: Dispatcher,
        console: Console | None = None,
        prompt: PromptFn | None = None,
        name_filter: str = "",
    ) -> None:
        self._catalog = catalog
        self._registry = registry
        self._dispatcher = dispatcher
        self._console = console or Console()
        self._prompt = prompt or (lambda text: Prompt.ask(text, console=self._console))
        self._name_filter = name_filter
        self._scanned = False

    async def run(self) -> MenuSession:
        """Loop until the operator exits.

        Raises CatalogUnavailableError only if the very first scan fails.
        """
        session = MenuSession()
        while session.state != MenuState.EXIT:
            session = await self.step(session)
        return session

    async def step(self, session: MenuSession) -> MenuSession:
        state = session.state
        if state == MenuState.LIST_PROCESSES:
            return self._scan(session)
        elif state == MenuState.SELECT_PROCESS:
            self._show_processes(session)
            raw = self._prompt("Select a process (#, r=refresh, q=quit)")
            return on_process_input(session, raw, self._registry.actions_for)
        elif state == MenuState.SELECT_ACTION:
            self._show_actions(session)
            raw = self._prompt("Select an action (#, b=back, q=quit)")
            return on_action_input(session, raw)
        elif state == MenuState.DISPATCH:
            return await self._dispatch(session)
        elif state == MenuState.DISPLAY:
            self._show_result(session)
            raw = self._prompt("Run another? (Y/n)")
            return on_display_input(session, raw)
        elif state == MenuState.EXIT:
            return session
        raise ValueError(f"Unhandled menu state: {state!r}")

    def _scan(self, session: MenuSession) -> MenuSession:
        try:
            processes = self._catalog.list_processes(self._name_filter)
        except CatalogUnavailableError as e:
            if not self._scanned:
                raise
            _logger.warning("Refresh failed: %s", e)
            return on_scan_failed(session, str(e))
        self._scanned = True
        return on_processes_loaded(session, processes)

    async def _dispatch(self, session: MenuSession) -> MenuSession:
        process, action = session.process, session.action
        if process is None or action is None:
            raise ValueError("Dispatch requested without a process and an action")
        try:
            with self._console.status(f"Running {action.name} against pid {process.pid}..."):
                result = await self._dispatcher.run(process, action)
        except DispatchError as e:
            hint = e.hint if isinstance(e, SpawnFailedError) else ""
            return on_dispatch_done(session, error=str(e), hint=hint)
        return on_dispatch_done(session, result=result)

    # ── Display ──────────────────────────────────────────────────

    def _show_notice(self, session: MenuSession) -> None:
        if session.notice:
            self._console.print(f"[yellow]{escape(session.notice)}[/yellow]")

    def _show_processes(self, session: MenuSession) -> None:
        if session.processes:
            self._console.print(render.process_table(session.processes))
        else:
            self._console.print("[dim]No processes found.[/dim]")
        if self._catalog.last_skipped:
            self._console.print(
                f"[dim]{self._catalog.last_skipped} processes skipped "
                f"(exited or not readable)[/dim]"
            )
        self._show_notice(session)

    def _show_actions(self, session: MenuSession) -> None:
        process = session.process
        if process is not None:
            self._console.print(
                f"\n[bold]pid {process.pid}[/bold] "
                f"[dim]({process.category.value})[/dim] {escape(process.command[:80])}"
            )
        if session.actions:
            self._console.print(render.action_table(session.actions))
        self._show_notice(session)

    def _show_result(self, session: MenuSession) -> None:
        if session.result is not None:
            self._console.print(render.result_panel(session.result))
        else:
            self._console.print(render.error_panel(session.error, session.hint))
