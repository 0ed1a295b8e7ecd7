"""The four built-in diagnostics."""

from __future__ import annotations

from pathlib import Path

from procdiag.actions.registry import ActionRegistry
from procdiag.config import settings
from procdiag.types import PID_PLACEHOLDER, ActionKind, ActionSpec, ProcessCategory

_JDK_HINT = "Install a JDK or point PROCDIAG_JDK_PATH at one."


def _jdk_tool(tool: str, jdk_path: Path | None) -> str:
    if jdk_path is None:
        return tool
    return str(jdk_path / "bin" / tool)


def builtin_actions(
    jdk_path: Path | None = None,
    jmap_heap_args: str = "-heap",
) -> list[ActionSpec]:
    return [
        ActionSpec(
            name="jstack",
            description="Thread dump of a JVM",
            category=ProcessCategory.JVM,
            command=(_jdk_tool("jstack", jdk_path), PID_PLACEHOLDER),
            hint=_JDK_HINT,
        ),
        ActionSpec(
            name="jmap",
            description="Heap summary of a JVM",
            category=ProcessCategory.JVM,
            command=(
                _jdk_tool("jmap", jdk_path),
                *jmap_heap_args.split(),
                PID_PLACEHOLDER,
            ),
            hint=_JDK_HINT,
        ),
        ActionSpec(
            name="pstack",
            description="Native stack trace of every thread",
            category=ProcessCategory.GENERIC,
            command=("pstack", PID_PLACEHOLDER),
            fallbacks=(
                ("gdb", "-batch", "-nx", "-ex", "thread apply all bt", "-p", PID_PLACEHOLDER),
                ("eu-stack", "-p", PID_PLACEHOLDER),
            ),
            hint="Install gdb (provides pstack) or elfutils (eu-stack).",
        ),
        ActionSpec(
            name="get_be_vars",
            description="Environment variables of the process",
            category=ProcessCategory.GENERIC,
            kind=ActionKind.ENVIRON,
            hint="Run as the process owner or as root.",
        ),
    ]


def register_builtin_actions(registry: ActionRegistry) -> None:
    for spec in builtin_actions(settings.jdk_path, settings.jmap_heap_args):
        registry.register(spec)
