"""Core types shared across all procdiag subsystems."""

from __future__ import annotations

from enum import Enum
from typing import NoReturn

from pydantic import BaseModel, ConfigDict, Field

PID_PLACEHOLDER = "{pid}"


# ── Process categories ───────────────────────────────────────────────────────


class ProcessCategory(str, Enum):
    JVM = "jvm"
    GENERIC = "generic"


def unhandled_category(category: object) -> NoReturn:
    """Fallthrough for exhaustive matches over ProcessCategory."""
    raise ValueError(f"Unhandled process category: {category!r}")


# ── Processes ────────────────────────────────────────────────────────────────


class ProcessInfo(BaseModel):
    """One row of a catalog scan. Valid only at the moment it was taken."""

    model_config = ConfigDict(frozen=True)

    pid: int
    name: str = ""
    command: str
    category: ProcessCategory


# ── Actions ──────────────────────────────────────────────────────────────────


class ActionKind(str, Enum):
    COMMAND = "command"  # spawn an external diagnostic binary
    ENVIRON = "environ"  # read the target's environment block in-process


class ActionSpec(BaseModel):
    """A diagnostic the operator can run against a process.

    ``category`` of None means the action applies to every category.
    ``command`` is an argv template; the ``{pid}`` token is replaced with
    the live pid at dispatch time. ``fallbacks`` are tried in order when the
    primary binary is not installed.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    category: ProcessCategory | None = None
    kind: ActionKind = ActionKind.COMMAND
    command: tuple[str, ...] = ()
    fallbacks: tuple[tuple[str, ...], ...] = ()
    hint: str = ""

    def applies_to(self, category: ProcessCategory) -> bool:
        return self.category is None or self.category == category

    def templates(self) -> list[tuple[str, ...]]:
        return [t for t in (self.command, *self.fallbacks) if t]

    def render(self, pid: int, template: tuple[str, ...] | None = None) -> list[str]:
        tokens = self.command if template is None else template
        return [str(pid) if tok == PID_PLACEHOLDER else tok for tok in tokens]


# ── Results ──────────────────────────────────────────────────────────────────


class EnvEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str = ""


class ExecutionResult(BaseModel):
    """What one dispatch produced. Owned by the caller, never persisted."""

    action: str
    pid: int
    kind: ActionKind = ActionKind.COMMAND
    argv: list[str] = Field(default_factory=list)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0
    environ: list[EnvEntry] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0
