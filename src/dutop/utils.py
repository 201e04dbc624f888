"""Shared utility functions."""

from __future__ import annotations

import os
from pathlib import Path


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ("KB", "MB", "GB", "TB")
    value = size_bytes / 1024
    for unit in units[:-1]:
        if value < 1024:
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} {units[-1]}"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"


def format_os_error(exc: OSError) -> str:
    """Describe an OS error with its errno, e.g. 'No such file (os error 2)'."""
    message = exc.strerror or str(exc)
    if exc.errno is not None:
        return f"{message} (os error {exc.errno})"
    return message
