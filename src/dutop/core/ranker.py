"""Ordering and truncation of scan entries."""

from __future__ import annotations

import os
from enum import Enum
from typing import Iterable

from dutop.models.scan_result import ScanEntry


class SortKey(str, Enum):
    SIZE = "size"
    NAME = "name"


def _path_key(entry: ScanEntry) -> bytes:
    # Byte-wise, so the order is case-sensitive and ignores the locale.
    return os.fsencode(entry.path)


def rank(
    entries: Iterable[ScanEntry],
    key: SortKey | str = SortKey.SIZE,
    limit: int | None = None,
) -> list[ScanEntry]:
    """Sort entries by *key* and keep the first *limit* of them.

    ``size`` sorts largest first with ties broken by path; ``name`` sorts
    by path with ties broken by larger size.  A *limit* of ``None`` or 0
    keeps everything.  The input is not modified.
    """
    if limit is not None and limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")

    match SortKey(key):
        case SortKey.SIZE:
            ordered = sorted(entries, key=lambda e: (-e.size, _path_key(e)))
        case SortKey.NAME:
            ordered = sorted(entries, key=lambda e: (_path_key(e), -e.size))

    if limit:
        del ordered[limit:]
    return ordered
