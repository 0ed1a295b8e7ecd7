"""procdiag CLI — interactive by default.

`procdiag` with no arguments opens the menu.
`procdiag --pid 4821 --action jstack` runs one diagnostic and exits.
`procdiag list`, `procdiag actions` print the tables the menu would show.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

from procdiag.cli.context import ProcdiagContext, configure_logging, run_async
from procdiag.config import settings
from procdiag.dispatch.dispatcher import filter_environ, format_environ
from procdiag.exceptions import CatalogUnavailableError, DispatchError, SpawnFailedError
from procdiag.menu import render
from procdiag.menu.controller import MenuController
from procdiag.types import ActionKind, ProcessCategory

console = Console()

EXIT_DISPATCH_FAILED = 1
EXIT_BAD_TARGET = 2
EXIT_NO_PROCESS_TABLE = 3

_app = typer.Typer(
    name="procdiag",
    help="procdiag -- pick a process, run a thread dump, heap summary, native stack or env dump.",
    invoke_without_command=True,
    add_completion=False,
)


@_app.callback()
def callback(
    ctx: typer.Context,
    pid: int | None = typer.Option(None, "--pid", "-p", help="Target pid (skips the menu)"),
    action: str | None = typer.Option(None, "--action", "-a", help="Action to run (with --pid)"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Seconds before the tool is killed"),
    name_filter: str = typer.Option(
        "", "--filter", "-f", help="Only list processes whose command line contains this"
    ),
    grep: str = typer.Option("", "--grep", "-g", help="Only show environment keys containing this"),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING..."),
):
    """Interactive process diagnostics."""
    configure_logging(log_level)
    if ctx.invoked_subcommand is not None:
        return

    if pid is None and action is None:
        _interactive(timeout, name_filter or settings.name_filter)
        return
    if pid is None or action is None:
        console.print("[red]--pid and --action must be given together[/red]")
        raise typer.Exit(EXIT_BAD_TARGET)
    _one_shot(pid, action, timeout, grep)


def _interactive(timeout: float | None, name_filter: str) -> None:
    ctx = ProcdiagContext.get()
    controller = MenuController(
        ctx.catalog,
        ctx.registry,
        ctx.dispatcher(timeout),
        console=console,
        name_filter=name_filter,
    )
    try:
        run_async(controller.run())
    except CatalogUnavailableError as e:
        console.print(f"[red]Cannot enumerate processes: {escape(str(e))}[/red]")
        raise typer.Exit(EXIT_NO_PROCESS_TABLE)
    except (KeyboardInterrupt, EOFError):
        console.print()
    console.print("[dim]Bye.[/dim]")


def _one_shot(pid: int, action_name: str, timeout: float | None, grep: str) -> None:
    ctx = ProcdiagContext.get()
    process = ctx.catalog.get(pid)
    if process is None:
        console.print(f"[red]No readable process with pid {pid}[/red]")
        raise typer.Exit(EXIT_BAD_TARGET)

    action = ctx.registry.get(process.category, action_name)
    if action is None:
        offered = ", ".join(a.name for a in ctx.registry.actions_for(process.category)) or "none"
        console.print(
            f"[red]Action '{escape(action_name)}' does not apply to {process.category.value} "
            f"process {pid}[/red] [dim](available: {offered})[/dim]"
        )
        raise typer.Exit(EXIT_BAD_TARGET)

    try:
        result = run_async(ctx.dispatcher(timeout).run(process, action))
    except DispatchError as e:
        hint = e.hint if isinstance(e, SpawnFailedError) else ""
        console.print(render.error_panel(str(e), hint))
        raise typer.Exit(EXIT_DISPATCH_FAILED)

    if grep and result.kind == ActionKind.ENVIRON:
        matched = filter_environ(result.environ, grep)
        result = result.model_copy(update={"environ": matched, "stdout": format_environ(matched)})
    console.print(render.result_panel(result))
    if grep and result.kind == ActionKind.ENVIRON and not result.environ:
        console.print(f"[dim]No environment keys contain '{escape(grep)}'.[/dim]")


@_app.command("list")
def list_processes(
    name_filter: str = typer.Option("", "--filter", "-f", help="Substring of the command line"),
    category: ProcessCategory | None = typer.Option(None, "--category", "-c", help="jvm or generic"),
):
    """List processes and how they are classified."""
    ctx = ProcdiagContext.get()
    try:
        processes = ctx.catalog.list_processes(name_filter or settings.name_filter)
    except CatalogUnavailableError as e:
        console.print(f"[red]Cannot enumerate processes: {escape(str(e))}[/red]")
        raise typer.Exit(EXIT_NO_PROCESS_TABLE)

    if category is not None:
        processes = [p for p in processes if p.category == category]
    if not processes:
        console.print("[dim]No processes found.[/dim]")
        return
    console.print(render.process_table(processes, numbered=False))


@_app.command("actions")
def actions(
    category: ProcessCategory | None = typer.Option(None, "--category", "-c", help="jvm or generic"),
):
    """Show which diagnostics exist and what they apply to."""
    ctx = ProcdiagContext.get()
    specs = ctx.registry.actions_for(category) if category else ctx.registry.list_actions()
    console.print(render.action_table(specs, numbered=False))


@_app.command("version")
def version():
    """Show procdiag version."""
    from procdiag import __version__
    console.print(f"procdiag v{__version__}")


def app():
    """Console-script entry point."""
    _app()
