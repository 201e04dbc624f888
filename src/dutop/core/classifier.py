"""Classify filesystem entries without following symlinks into cycles."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum

log = logging.getLogger(__name__)

# (st_dev, st_ino) of a directory.
Identity = tuple[int, int]


class Kind(Enum):
    FILE = "file"
    DIR = "dir"
    OTHER = "other"
    INACCESSIBLE = "inaccessible"


class InaccessibleReason(str, Enum):
    """Why an entry could not be measured."""

    PERMISSION_DENIED = "permission denied"
    NOT_FOUND = "not found"
    BROKEN_SYMLINK = "broken symlink"
    SYMLINK_CYCLE = "symlink cycle"
    IO_ERROR = "I/O error"


@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of classifying one path.

    ``size`` is only meaningful for files, ``identity`` only for
    directories and ``reason`` only for inaccessible entries.
    """

    kind: Kind
    size: int = 0
    identity: Identity | None = None
    reason: InaccessibleReason | None = None


_OTHER = Classification(Kind.OTHER)


def reason_for(exc: OSError) -> InaccessibleReason:
    """Map an OS error to the reason recorded for the entry."""
    if isinstance(exc, PermissionError):
        return InaccessibleReason.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return InaccessibleReason.NOT_FOUND
    return InaccessibleReason.IO_ERROR


def identity_of(st: os.stat_result) -> Identity:
    return (st.st_dev, st.st_ino)


def classify(
    path: str | os.PathLike[str],
    ancestors: frozenset[Identity] = frozenset(),
    *,
    follow_symlinks: bool = False,
) -> Classification:
    """Classify *path* as a file, directory, other, or inaccessible entry.

    Never raises for filesystem errors.

    Args:
        path: Entry to inspect.
        ancestors: Identities of the directories on the path from the scan
            root down to *path*'s parent. A followed symlink that resolves
            to one of them is reported as a cycle.
        follow_symlinks: Resolve a symlink in the final path component.
            When False, symlinks are classified as ``OTHER``.
    """
    try:
        st = os.lstat(path)
    except OSError as exc:
        log.debug("Cannot stat %s: %s", path, exc)
        return Classification(Kind.INACCESSIBLE, reason=reason_for(exc))

    if stat.S_ISLNK(st.st_mode):
        if not follow_symlinks:
            return _OTHER
        try:
            st = os.stat(path)
        except FileNotFoundError:
            log.debug("Broken symlink: %s", path)
            return Classification(Kind.INACCESSIBLE, reason=InaccessibleReason.BROKEN_SYMLINK)
        except OSError as exc:
            log.debug("Cannot resolve symlink %s: %s", path, exc)
            return Classification(Kind.INACCESSIBLE, reason=reason_for(exc))

    if stat.S_ISREG(st.st_mode):
        return Classification(Kind.FILE, size=st.st_size)
    if stat.S_ISDIR(st.st_mode):
        identity = identity_of(st)
        # Bind mounts can loop without any symlink involved.
        if identity in ancestors:
            log.debug("Directory cycle: %s", path)
            return Classification(Kind.INACCESSIBLE, reason=InaccessibleReason.SYMLINK_CYCLE)
        return Classification(Kind.DIR, identity=identity)
    return _OTHER
