"""CLI runtime context — bridges sync CLI to the async dispatcher."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

from rich.console import Console
from rich.logging import RichHandler

from procdiag.actions.builtins import register_builtin_actions
from procdiag.actions.registry import ActionRegistry
from procdiag.catalog.base import ProcessSource
from procdiag.catalog.catalog import ProcessCatalog
from procdiag.catalog.psutil_source import default_source
from procdiag.config import settings
from procdiag.dispatch.dispatcher import DispatchConfig, Dispatcher


class ProcdiagContext:
    """Singleton holding the source, catalog and action table for one run."""

    _instance: ProcdiagContext | None = None

    def __init__(self, source: ProcessSource | None = None) -> None:
        self.source = source or default_source()
        self.catalog = ProcessCatalog(self.source)
        self.registry = ActionRegistry()
        register_builtin_actions(self.registry)

    def dispatcher(self, timeout: float | None = None) -> Dispatcher:
        return Dispatcher(
            self.source,
            DispatchConfig(
                timeout_seconds=timeout if timeout is not None else settings.timeout_seconds,
                kill_grace_seconds=settings.kill_grace_seconds,
                fallback_jdk=settings.jdk_fallback_path,
            ),
        )

    @classmethod
    def get(cls) -> ProcdiagContext:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance


def configure_logging(level: str | None = None) -> None:
    """Route library logging through rich, on stderr."""
    root = logging.getLogger("procdiag")
    root.setLevel((level or settings.log_level).upper())
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Already inside an event loop, so run on a fresh one in a worker thread
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)
