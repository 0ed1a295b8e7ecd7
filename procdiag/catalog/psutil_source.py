"""psutil-backed process source — works wherever psutil does."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import psutil

from procdiag.catalog.base import ProcessSource, RawProcess

_logger = logging.getLogger(__name__)


class PsutilProcessSource(ProcessSource):
    """Cross-platform source.

    ``read_environ`` goes through ``psutil.Process.environ()``, which returns
    a dict, so duplicate keys are already collapsed by the time we see them.
    Platforms with a raw environment block override it (see ProcfsProcessSource).
    """

    def pids(self) -> list[int]:
        try:
            pids = psutil.pids()
        except psutil.Error as e:
            raise OSError(f"Cannot enumerate processes: {e}") from e
        _logger.debug("Enumerated %d pids", len(pids))
        return pids

    def inspect(self, pid: int) -> RawProcess:
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                name = proc.name()
                cmdline = proc.cmdline()
                try:
                    exe = proc.exe()
                except psutil.AccessDenied:
                    exe = ""
        except psutil.NoSuchProcess as e:  # includes ZombieProcess
            raise ProcessLookupError(pid) from e
        except psutil.AccessDenied as e:
            raise PermissionError(f"Access denied to process {pid}") from e
        return RawProcess(pid=pid, name=name, exe=exe, cmdline=cmdline)

    def exists(self, pid: int) -> bool:
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Someone else's process, but it is there
            return True

    def read_environ(self, pid: int) -> bytes:
        try:
            env = psutil.Process(pid).environ()
        except psutil.NoSuchProcess as e:
            raise ProcessLookupError(pid) from e
        except psutil.AccessDenied as e:
            raise PermissionError(f"Access denied to environment of process {pid}") from e
        return b"\0".join(f"{k}={v}".encode("utf-8", errors="replace") for k, v in env.items())


class ProcfsProcessSource(PsutilProcessSource):
    """Linux: read /proc/<pid>/environ verbatim so duplicate keys survive."""

    def __init__(self, proc_root: Path = Path("/proc")) -> None:
        super().__init__()
        self._root = proc_root

    def read_environ(self, pid: int) -> bytes:
        path = self._root / str(pid) / "environ"
        try:
            return path.read_bytes()
        except (FileNotFoundError, ProcessLookupError) as e:
            raise ProcessLookupError(pid) from e
        # PermissionError propagates as-is


def default_source() -> ProcessSource:
    """The best source for the running platform."""
    if sys.platform.startswith("linux"):
        return ProcfsProcessSource()
    return PsutilProcessSource()
