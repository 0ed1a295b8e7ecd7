"""Shared test fixtures — an in-memory process table, no real OS calls."""

from __future__ import annotations

import pytest

from procdiag.actions.builtins import builtin_actions
from procdiag.actions.registry import ActionRegistry
from procdiag.catalog.base import ProcessSource, RawProcess
from procdiag.catalog.catalog import ProcessCatalog


class FakeProcessSource(ProcessSource):
    """Process source backed by dicts. Lets tests simulate churn."""

    def __init__(
        self,
        processes: list[RawProcess] | None = None,
        environ: dict[int, bytes] | None = None,
        vanishing: set[int] | None = None,
        denied: set[int] | None = None,
        broken: bool = False,
    ):
        self.processes = {p.pid: p for p in processes or []}
        self.environ = environ or {}
        self.vanishing = vanishing or set()  # listed, gone by inspect time
        self.denied = denied or set()  # listed, not readable
        self.env_denied: set[int] = set()
        self.broken = broken

    def pids(self) -> list[int]:
        if self.broken:
            raise OSError("process table unreadable")
        # Unsorted, the way the OS hands them out
        return list(reversed([*self.processes, *self.vanishing, *self.denied]))

    def inspect(self, pid: int) -> RawProcess:
        if pid in self.denied:
            raise PermissionError(pid)
        if pid not in self.processes:
            raise ProcessLookupError(pid)
        return self.processes[pid]

    def exists(self, pid: int) -> bool:
        return pid in self.processes

    def read_environ(self, pid: int) -> bytes:
        if pid not in self.processes:
            raise ProcessLookupError(pid)
        if pid in self.env_denied:
            raise PermissionError(pid)
        return self.environ.get(pid, b"")

    def exit(self, pid: int) -> None:
        self.processes.pop(pid, None)


def java_app(pid: int = 4821) -> RawProcess:
    return RawProcess(
        pid=pid, name="java", exe="/usr/lib/jvm/bin/java", cmdline=["java", "-jar", "app.jar"]
    )


def native(pid: int, name: str = "doris_be") -> RawProcess:
    return RawProcess(pid=pid, name=name, exe=f"/opt/{name}", cmdline=[f"/opt/{name}", "--daemon"])


@pytest.fixture
def fake_source():
    return FakeProcessSource(
        processes=[
            native(1, "init"),
            java_app(4821),
            native(977),
            RawProcess(pid=2, name="kthreadd"),
            native(5000, "nginx"),
        ],
        environ={977: b"A=1\0B=2\0A=3\0"},
    )


@pytest.fixture
def catalog(fake_source):
    return ProcessCatalog(fake_source)


@pytest.fixture
def registry():
    reg = ActionRegistry()
    for spec in builtin_actions():
        reg.register(spec)
    return reg
