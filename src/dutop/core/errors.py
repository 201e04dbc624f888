"""Exceptions raised by the scan engine."""

from __future__ import annotations

import os


class ScanError(Exception):
    """Base class for errors that abort a scan."""


class RootUnreadableError(ScanError):
    """Raised when the scan root cannot be listed.

    This is the only filesystem failure that aborts a scan; everything
    below the root is recorded in the error counter instead.
    """

    def __init__(self, path: str | os.PathLike[str], cause: OSError) -> None:
        self.path = os.fspath(path)
        self.cause = cause
        super().__init__(f"{self.path}: {cause.strerror or cause}")


class ScanCancelled(ScanError):
    """Raised by workers when the scan's cancel event is set."""
