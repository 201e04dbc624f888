"""Scan result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from dutop.models.summary import ScanSummary


class EntryKind(str, Enum):
    """What a top-level entry was when it was scanned."""

    FILE = "file"
    DIR = "dir"

    @property
    def label(self) -> str:
        """Short upper-case label for table output."""
        return self.name


@dataclass(frozen=True, slots=True)
class ScanEntry:
    """One immediate child of the scan root with its cumulative size.

    For directories ``size`` is the sum of all regular files beneath it;
    the directory itself contributes nothing.

    ``path`` is the root joined with the child's name as a
    :class:`~pathlib.Path`, so it is normalised: scanning ``./a`` yields
    ``a/x``, not ``./a/x``.
    """

    path: Path
    kind: EntryKind
    size: int

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIR


@dataclass(slots=True)
class ScanResult:
    """Entries and counters produced by one scan of a root directory."""

    root: Path
    entries: list[ScanEntry] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)

    @property
    def total_bytes(self) -> int:
        return sum(e.size for e in self.entries)
