"""Rich renderables for processes, actions and results."""

from __future__ import annotations

from rich.console import Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from procdiag.types import (
    ActionKind,
    ActionSpec,
    EnvEntry,
    ExecutionResult,
    ProcessCategory,
    ProcessInfo,
    unhandled_category,
)

_MAX_COMMAND = 100


def category_style(category: ProcessCategory) -> str:
    if category == ProcessCategory.JVM:
        return "bold yellow"
    elif category == ProcessCategory.GENERIC:
        return "white"
    unhandled_category(category)


def process_table(processes: list[ProcessInfo] | tuple[ProcessInfo, ...], numbered: bool = True) -> Table:
    table = Table(title="Processes")
    if numbered:
        table.add_column("#", justify="right", style="dim")
    table.add_column("PID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Command", style="white")

    for i, p in enumerate(processes, 1):
        style = category_style(p.category)
        command = p.command[:_MAX_COMMAND] + ("..." if len(p.command) > _MAX_COMMAND else "")
        row = [str(p.pid), f"[{style}]{p.category.value}[/{style}]", Text(command)]
        if numbered:
            row.insert(0, str(i))
        table.add_row(*row)
    return table


def action_table(actions: list[ActionSpec] | tuple[ActionSpec, ...], numbered: bool = True) -> Table:
    table = Table(title="Actions")
    if numbered:
        table.add_column("#", justify="right", style="dim")
    table.add_column("Action", style="cyan", no_wrap=True)
    table.add_column("Applies to", style="blue", no_wrap=True)
    table.add_column("Description", style="white")

    for i, a in enumerate(actions, 1):
        row = [a.name, a.category.value if a.category else "any", a.description]
        if numbered:
            row.insert(0, str(i))
        table.add_row(*row)
    return table


def environ_table(entries: list[EnvEntry]) -> Table:
    table = Table(show_header=True, box=None)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    for entry in entries:
        table.add_row(Text(entry.key), Text(entry.value))
    return table


def result_panel(result: ExecutionResult) -> Panel:
    status = "[green]exit 0[/green]" if result.succeeded else f"[red]exit {result.exit_code}[/red]"
    header = (
        f"[bold]{result.action}[/bold] pid {result.pid}  {status}  "
        f"[dim]{result.duration_ms:.0f} ms[/dim]"
    )
    if result.argv:
        header += f"\n[dim]$ {escape(' '.join(result.argv))}[/dim]"

    parts: list = [Text.from_markup(header)]
    if result.kind == ActionKind.ENVIRON:
        if result.environ:
            parts.append(environ_table(result.environ))
        else:
            parts.append(Text("(no environment variables)", style="dim"))
    elif result.stdout:
        parts.append(Panel(Text(result.stdout.rstrip("\n")), title="stdout", border_style="dim"))
    if result.stderr:
        parts.append(Panel(Text(result.stderr.rstrip("\n")), title="stderr", border_style="red"))
    if result.kind == ActionKind.COMMAND and not (result.stdout or result.stderr):
        parts.append(Text("(no output)", style="dim"))

    return Panel(
        Group(*parts),
        title="Result",
        border_style="green" if result.succeeded else "yellow",
    )


def error_panel(message: str, hint: str = "") -> Panel:
    body = f"[red]{escape(message)}[/red]"
    if hint:
        body += f"\n[dim]Hint: {escape(hint)}[/dim]"
    return Panel(body, title="Dispatch failed", border_style="red")
