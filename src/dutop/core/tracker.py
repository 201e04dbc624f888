"""Thread-safe counters shared by scan workers."""

from __future__ import annotations

import logging
import threading

from dutop.models.summary import AggregationResult, ScanSummary

log = logging.getLogger(__name__)


class ScanTracker:
    """Tracks files scanned and entries skipped across all workers.

    Workers report whole chunks at once via :meth:`record`, so the lock
    is taken once per chunk rather than once per file.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._files_scanned = 0
        self._dirs_scanned = 0
        self._errors = 0

    @property
    def files_scanned(self) -> int:
        with self._lock:
            return self._files_scanned

    @property
    def dirs_scanned(self) -> int:
        with self._lock:
            return self._dirs_scanned

    @property
    def errors(self) -> int:
        with self._lock:
            return self._errors

    def add_files(self, count: int = 1) -> None:
        with self._lock:
            self._files_scanned += count

    def add_errors(self, count: int = 1) -> None:
        with self._lock:
            self._errors += count

    def record(self, partial: AggregationResult) -> None:
        """Add the counters of a worker's partial result."""
        with self._lock:
            self._files_scanned += partial.files_scanned
            self._dirs_scanned += partial.dirs_scanned
            self._errors += partial.errors_encountered

    def summary(self, elapsed: float) -> ScanSummary:
        """Freeze the current counters into a :class:`ScanSummary`."""
        with self._lock:
            summary = ScanSummary(
                total_errors=self._errors,
                total_files_scanned=self._files_scanned,
                total_dirs_scanned=self._dirs_scanned,
                elapsed=elapsed,
            )
        log.info(
            "Scanned %d files in %d directories, %d skipped",
            summary.total_files_scanned,
            summary.total_dirs_scanned,
            summary.total_errors,
        )
        return summary
