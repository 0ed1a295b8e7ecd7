"""Dispatcher — turns (process, action) into a finished diagnostic run.

Command actions are spawned in their own session (process group) with a
hard timeout; on timeout or cancellation the whole group is killed and
reaped before control returns. Environment reads never spawn anything.

Usage:
    dispatcher = Dispatcher(default_source(), DispatchConfig(timeout_seconds=10))
    result = await dispatcher.run(process, registry.get(process.category, "jstack"))
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import time
from pathlib import Path
from typing import Callable

from pydantic import BaseModel

from procdiag.catalog.base import ProcessSource
from procdiag.dispatch.state_machine import (
    DispatchState,
    DispatchStateMachine,
    TransitionCallback,
)
from procdiag.exceptions import (
    DispatchError,
    DispatchTimeoutError,
    ProcessGoneError,
    SpawnFailedError,
)
from procdiag.types import (
    ActionKind,
    ActionSpec,
    EnvEntry,
    ExecutionResult,
    ProcessCategory,
    ProcessInfo,
)

_logger = logging.getLogger(__name__)

Which = Callable[[str], str | None]


class DispatchConfig(BaseModel):
    timeout_seconds: float = 10.0
    kill_grace_seconds: float = 2.0
    # JDK tried after the target's own JAVA_HOME, before PATH
    fallback_jdk: Path | None = None


def parse_environ(block: bytes) -> list[EnvEntry]:
    """Split a NUL-separated environment block into ordered pairs.

    Duplicate keys are kept as separate entries, in block order.
    """
    entries: list[EnvEntry] = []
    for raw in block.split(b"\0"):
        if not raw:
            continue
        text = raw.decode("utf-8", errors="replace")
        key, sep, value = text.partition("=")
        if not sep:
            entries.append(EnvEntry(key=text))
        else:
            entries.append(EnvEntry(key=key, value=value))
    return entries


def format_environ(entries: list[EnvEntry]) -> str:
    return "\n".join(f"{e.key}={e.value}" for e in entries)


def filter_environ(entries: list[EnvEntry], pattern: str) -> list[EnvEntry]:
    """Entries whose key contains ``pattern`` (case-insensitive)."""
    needle = pattern.lower()
    return [e for e in entries if needle in e.key.lower()]


class Dispatcher:
    """Runs diagnostics. Stateless between calls."""

    def __init__(
        self,
        source: ProcessSource,
        config: DispatchConfig | None = None,
        which: Which = shutil.which,
    ) -> None:
        self._source = source
        self._config = config or DispatchConfig()
        self._which = which

    @property
    def config(self) -> DispatchConfig:
        return self._config

    async def run(
        self,
        process: ProcessInfo,
        action: ActionSpec,
        listeners: list[TransitionCallback] | None = None,
    ) -> ExecutionResult:
        """Execute ``action`` against ``process``.

        Returns an ExecutionResult whatever the tool's own exit code was.
        Raises ProcessGoneError, SpawnFailedError or DispatchTimeoutError.
        """
        sm = DispatchStateMachine(process.pid, listeners)

        await sm.transition(DispatchState.VALIDATING)
        try:
            if not self._source.exists(process.pid):
                raise ProcessGoneError(process.pid)
            argv = self._resolve(process.pid, action)
        except DispatchError:
            await sm.transition(DispatchState.FAILED)
            raise

        await sm.transition(DispatchState.EXECUTING)
        _logger.info("Dispatching %s against pid %d", action.name, process.pid)
        try:
            if action.kind == ActionKind.COMMAND:
                result = await self._run_command(process.pid, action, argv)
            elif action.kind == ActionKind.ENVIRON:
                result = self._read_environ(process.pid, action)
            else:
                raise ValueError(f"Unhandled action kind: {action.kind!r}")
        except DispatchError as e:
            _logger.info("%s against pid %d failed: %s", action.name, process.pid, e)
            await sm.transition(DispatchState.FAILED)
            raise
        except asyncio.CancelledError:
            _logger.info("%s against pid %d cancelled", action.name, process.pid)
            await sm.transition(DispatchState.FAILED)
            raise

        await sm.transition(DispatchState.COMPLETED)
        return result

    def _resolve(self, pid: int, action: ActionSpec) -> list[str]:
        """First installed command template for ``action``, rendered for ``pid``.

        Bare JVM tool names are looked up in the target's JDKs before PATH.
        """
        if action.kind != ActionKind.COMMAND:
            return []
        templates = action.templates()
        jdks = self._target_jdks(pid) if action.category == ProcessCategory.JVM else []
        for template in templates:
            binary = template[0]
            if not os.path.dirname(binary):
                # Bare JDK tool: prefer the one shipped with the target's own JVM
                for jdk in jdks:
                    candidate = self._which(str(jdk / "bin" / binary))
                    if candidate:
                        return action.render(pid, (candidate, *template[1:]))
            if self._which(binary):
                return action.render(pid, template)
        tried = ", ".join(t[0] for t in templates) or "(no command)"
        raise SpawnFailedError(f"{action.name}: {tried} not found on PATH", hint=action.hint)

    def _target_jdks(self, pid: int) -> list[Path]:
        """JDK homes to try for a JVM: its own JAVA_HOME, then the fallback."""
        jdks: list[Path] = []
        try:
            entries = parse_environ(self._source.read_environ(pid))
        except (ProcessLookupError, PermissionError) as e:
            _logger.debug("Cannot read JAVA_HOME of pid %d: %s", pid, e)
            entries = []
        java_home = next((e.value for e in entries if e.key == "JAVA_HOME" and e.value), None)
        if java_home:
            jdks.append(Path(java_home))
        if self._config.fallback_jdk is not None:
            jdks.append(self._config.fallback_jdk)
        return jdks

    async def _run_command(
        self, pid: int, action: ActionSpec, argv: list[str]
    ) -> ExecutionResult:
        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise SpawnFailedError(f"{argv[0]} not found: {e}", hint=action.hint) from e
        except PermissionError as e:
            raise SpawnFailedError(
                f"Permission denied executing {argv[0]}: {e}", hint=action.hint
            ) from e
        except OSError as e:
            raise SpawnFailedError(f"Failed to start {argv[0]}: {e}", hint=action.hint) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._config.timeout_seconds
            )
        except asyncio.TimeoutError:
            self._kill_group(proc)
            await self._reap(proc)
            raise DispatchTimeoutError(action.name, self._config.timeout_seconds)
        except BaseException:
            # Interrupted: never leave the child behind
            self._kill_group(proc)
            await asyncio.shield(self._reap(proc))
            raise

        elapsed = (time.monotonic() - start) * 1000
        return ExecutionResult(
            action=action.name,
            pid=pid,
            argv=argv,
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
            duration_ms=elapsed,
        )

    def _read_environ(self, pid: int, action: ActionSpec) -> ExecutionResult:
        start = time.monotonic()
        try:
            block = self._source.read_environ(pid)
        except ProcessLookupError as e:
            raise ProcessGoneError(pid) from e
        except PermissionError as e:
            raise SpawnFailedError(
                f"Cannot read environment of process {pid}: {e}", hint=action.hint
            ) from e

        entries = parse_environ(block)
        return ExecutionResult(
            action=action.name,
            pid=pid,
            kind=ActionKind.ENVIRON,
            stdout=format_environ(entries),
            duration_ms=(time.monotonic() - start) * 1000,
            environ=entries,
        )

    @staticmethod
    def _kill_group(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            if hasattr(os, "killpg"):
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass
        except PermissionError:
            proc.kill()

    async def _reap(self, proc: asyncio.subprocess.Process) -> None:
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._config.kill_grace_seconds)
        except asyncio.TimeoutError:
            _logger.warning("pid %d did not exit after SIGKILL", proc.pid)
