"""JSON-backed settings store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from dutop.core.ranker import SortKey
from dutop.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "dutop"
_SETTINGS_FILE = "settings.json"

# Built-in defaults, overridden by the settings file and then by CLI flags.
DEFAULTS: dict[str, Any] = {
    "scan": {
        "sort": "size",
        "limit": None,
        "workers": None,
        "split_threshold": 2048,
        "follow_symlinks": False,
    },
    "display": {
        "progress": True,
    },
}


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


KNOWN_KEYS = frozenset(_flatten(DEFAULTS))


def _check_int(value: Any, minimum: int, nullable: bool) -> None:
    if value is None and nullable:
        return
    # bool is an int subclass but never a valid count.
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        allowed = f"an integer >= {minimum}"
        raise ValueError(f"must be {allowed} or null" if nullable else f"must be {allowed}")


def validate(key: str, value: Any) -> None:
    """Raise ValueError if *value* is not acceptable for *key*."""
    match key:
        case "scan.sort":
            choices = [k.value for k in SortKey]
            if value not in choices:
                raise ValueError(f"must be one of: {', '.join(choices)}")
        case "scan.limit":
            _check_int(value, minimum=0, nullable=True)
        case "scan.workers":
            _check_int(value, minimum=1, nullable=True)
        case "scan.split_threshold":
            _check_int(value, minimum=1, nullable=False)
        case "scan.follow_symlinks" | "display.progress":
            if not isinstance(value, bool):
                raise ValueError("must be true or false")
        case _:
            raise ValueError(f"unknown setting {key!r}")


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("scan.sort")  # reads data["scan"]["sort"]
        settings.set("scan.limit", 20)  # writes + saves

    Keys missing from the file fall back to :data:`DEFAULTS`.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        found, value = _lookup(self._data, key)
        if found:
            return value
        found, value = _lookup(DEFAULTS, key)
        return value if found else default

    def get_valid(self, key: str) -> Any:
        """Get a known key, raising ValueError if the stored value is unusable."""
        value = self.get(key)
        try:
            validate(key, value)
        except ValueError as e:
            raise ValueError(f"Invalid {key} in {self._path}: {e}") from e
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    def effective(self) -> dict[str, Any]:
        """Every known key with the value currently in effect."""
        return {key: self.get(key) for key in sorted(KNOWN_KEYS)}

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring settings in %s: expected a JSON object", self._path)
            return
        self._data = data

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)


def _lookup(data: dict[str, Any], key: str) -> tuple[bool, Any]:
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return False, None
        node = node[part]
    return True, node
