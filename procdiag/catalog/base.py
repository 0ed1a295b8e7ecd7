"""Abstract base for OS process sources.

Everything that touches the OS process table goes through a ProcessSource
so the catalog, dispatcher and menu stay platform-independent. Concrete
sources report per-process failures with the builtin exceptions
``ProcessLookupError`` (gone) and ``PermissionError`` (unreadable).
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

from procdiag.types import ProcessCategory

JVM_LAUNCHERS = frozenset({"java", "java.exe", "javaw", "javaw.exe", "jsvc"})

# Launch prefixes that hand off to the real program, with the options of
# theirs that consume a separate value
WRAPPERS: dict[str, frozenset[str]] = {
    "nohup": frozenset(),
    "setsid": frozenset(),
    "exec": frozenset(),
    "env": frozenset({"-u", "--unset", "-C", "--chdir"}),
    "sudo": frozenset({"-u", "-g", "-C", "-D", "-h", "-p", "-r", "-t", "-U"}),
    "nice": frozenset({"-n"}),
}


class RawProcess(BaseModel):
    """What a source knows about one pid before classification."""

    model_config = ConfigDict(frozen=True)

    pid: int
    name: str = ""
    exe: str = ""
    cmdline: list[str] = Field(default_factory=list)

    @property
    def command(self) -> str:
        if self.cmdline:
            return " ".join(self.cmdline)
        return f"[{self.name}]" if self.name else f"[{self.pid}]"


def _launcher_name(token: str) -> str:
    return os.path.basename(token.replace("\\", "/")).lower()


def launched_program(cmdline: list[str]) -> str:
    """The program a command line actually runs, looking through WRAPPERS.

    ``nohup java -jar a.jar`` runs ``java``; ``sudo -u app env X=1 java`` too.
    Arguments are never considered, so ``grep java`` runs ``grep``.
    """
    i = 0
    while i < len(cmdline):
        name = _launcher_name(cmdline[i])
        takes_value = WRAPPERS.get(name)
        if takes_value is None:
            return cmdline[i]
        i += 1
        while i < len(cmdline) and (cmdline[i].startswith("-") or "=" in cmdline[i]):
            if cmdline[i] in takes_value:
                i += 1
            i += 1
    return ""


def classify_raw(raw: RawProcess) -> ProcessCategory:
    """JVM when the executable, process name or launched program is a JVM launcher."""
    candidates = [raw.exe, raw.name, launched_program(raw.cmdline)]
    if any(_launcher_name(tok) in JVM_LAUNCHERS for tok in candidates if tok):
        return ProcessCategory.JVM
    return ProcessCategory.GENERIC


class ProcessSource(ABC):
    @abstractmethod
    def pids(self) -> list[int]:
        """All pids currently visible. Raises OSError if the table is unreadable."""

    @abstractmethod
    def inspect(self, pid: int) -> RawProcess: ...

    @abstractmethod
    def exists(self, pid: int) -> bool: ...

    @abstractmethod
    def read_environ(self, pid: int) -> bytes:
        """Raw NUL-separated ``key=value`` environment block of ``pid``."""

    def classify(self, raw: RawProcess) -> ProcessCategory:
        return classify_raw(raw)
