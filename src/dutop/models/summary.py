"""Aggregation and summary counters."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class AggregationResult:
    """Running totals for one subtree.

    Worker chunks each produce a partial result; the owner folds them
    together with :meth:`fold`, which is order-independent.
    """

    total_bytes: int = 0
    errors_encountered: int = 0
    files_scanned: int = 0
    dirs_scanned: int = 0

    def fold(self, other: AggregationResult) -> None:
        """Add *other* into this result."""
        self.total_bytes += other.total_bytes
        self.errors_encountered += other.errors_encountered
        self.files_scanned += other.files_scanned
        self.dirs_scanned += other.dirs_scanned


@dataclass(frozen=True, slots=True)
class ScanSummary:
    """Process-wide counters for a finished scan."""

    total_errors: int = 0
    total_files_scanned: int = 0
    total_dirs_scanned: int = 0
    elapsed: float = 0.0


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Snapshot handed to progress callbacks while a scan runs."""

    files_scanned: int
    errors: int
    entries_done: int
    entries_total: int
