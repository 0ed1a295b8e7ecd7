"""ProcessCatalog — one scan of the process table, classified."""

from __future__ import annotations

import logging

from procdiag.catalog.base import ProcessSource
from procdiag.exceptions import CatalogUnavailableError
from procdiag.types import ProcessInfo

_logger = logging.getLogger(__name__)


class ProcessCatalog:
    """Enumerates processes through a ProcessSource and classifies them.

    Processes that vanish or cannot be read mid-scan are skipped; the count
    of the last scan's skips is kept in ``last_skipped``. Only a failure to
    list pids at all is fatal.
    """

    def __init__(self, source: ProcessSource) -> None:
        self._source = source
        self.last_skipped = 0

    @property
    def source(self) -> ProcessSource:
        return self._source

    def list_processes(self, name_filter: str = "") -> list[ProcessInfo]:
        """Return the visible processes sorted by pid, one entry per pid."""
        try:
            pids = self._source.pids()
        except OSError as e:
            raise CatalogUnavailableError(str(e)) from e

        needle = name_filter.strip().lower()
        found: dict[int, ProcessInfo] = {}
        skipped = 0
        for pid in pids:
            if pid in found:
                continue
            info = self._scan_one(pid)
            if info is None:
                skipped += 1
                continue
            if needle and needle not in info.command.lower():
                continue
            found[pid] = info

        self.last_skipped = skipped
        if skipped:
            _logger.warning(
                "ScanPartialFailure: skipped %d of %d processes (exited or unreadable)",
                skipped, len(pids),
            )
        return [found[pid] for pid in sorted(found)]

    def get(self, pid: int) -> ProcessInfo | None:
        """Inspect a single pid; None if it does not exist or cannot be read."""
        return self._scan_one(pid)

    def _scan_one(self, pid: int) -> ProcessInfo | None:
        try:
            raw = self._source.inspect(pid)
        except ProcessLookupError:
            _logger.debug("pid %d exited during scan", pid)
            return None
        except PermissionError:
            _logger.debug("pid %d not readable", pid)
            return None
        return ProcessInfo(
            pid=raw.pid,
            name=raw.name,
            command=raw.command,
            category=self._source.classify(raw),
        )
