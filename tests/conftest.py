"""Shared test fixtures."""

from __future__ import annotations

import os
import random
from pathlib import Path
from typing import Any

import pytest

# Sizes in bytes; nested dicts are directories.
SAMPLE_TREE: dict[str, Any] = {
    "big.bin": 5000,
    "small.txt": 10,
    "docs": {
        "a.txt": 100,
        "b.txt": 200,
        "sub": {"c.txt": 300},
    },
    "media": {
        "x.bin": 4000,
        "deep": {"d1": {"d2": {"d3": {"y.bin": 1000}}}},
    },
    "empty": {},
}


def build_tree(base: Path, layout: dict[str, Any]) -> Path:
    """Create files and directories under *base* following *layout*."""
    base.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        target = base / name
        if isinstance(value, dict):
            build_tree(target, value)
        else:
            target.write_bytes(b"x" * value)
    return base


@pytest.fixture
def sample_tree(tmp_path) -> Path:
    """The SAMPLE_TREE layout under a fresh temp directory.

    Totals: big.bin 5000, small.txt 10, docs 600, media 5000, empty 0.
    """
    return build_tree(tmp_path / "root", SAMPLE_TREE)


@pytest.fixture
def make_tree(tmp_path):
    """Return a function building an arbitrary tree under tmp_path."""

    def _make(layout: dict[str, Any], name: str = "tree") -> Path:
        return build_tree(tmp_path / name, layout)

    return _make


@pytest.fixture
def isolate_settings(tmp_path_factory, monkeypatch) -> Path:
    """Point the settings file at a temp config directory."""
    config_home = tmp_path_factory.mktemp("config")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home / "dutop" / "settings.json"


@pytest.fixture
def deny_paths(monkeypatch):
    """Make ``os.lstat`` and ``os.scandir`` fail for chosen paths.

    Chmod cannot be relied on when tests run as root, so permission
    failures are injected instead.  Returns a function taking the paths
    to deny for lstat and for scandir.
    """
    real_lstat = os.lstat
    real_scandir = os.scandir
    denied_stat: set[str] = set()
    denied_list: set[str] = set()

    def fake_lstat(path, *args, **kwargs):
        if os.fspath(path) in denied_stat:
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_lstat(path, *args, **kwargs)

    def fake_scandir(path="."):
        if os.fspath(path) in denied_list:
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "lstat", fake_lstat)
    monkeypatch.setattr(os, "scandir", fake_scandir)

    def deny(*, stat: tuple[Path, ...] = (), listing: tuple[Path, ...] = ()) -> None:
        denied_stat.update(os.fspath(p) for p in stat)
        denied_list.update(os.fspath(p) for p in listing)

    return deny


class _ShuffledScandir:
    """Stand-in for ``os.scandir`` that yields entries in a shuffled order."""

    def __init__(self, entries: list[os.DirEntry], rng: random.Random) -> None:
        self._entries = list(entries)
        rng.shuffle(self._entries)

    def __enter__(self):
        return iter(self._entries)

    def __exit__(self, *exc_info) -> bool:
        return False

    def __iter__(self):
        return iter(self._entries)


@pytest.fixture
def shuffle_scandir(monkeypatch):
    """Return a function that makes ``os.scandir`` shuffle with a given seed."""
    real_scandir = os.scandir

    def install(seed: int) -> None:
        rng = random.Random(seed)

        def fake_scandir(path="."):
            with real_scandir(path) as it:
                return _ShuffledScandir(list(it), rng)

        monkeypatch.setattr(os, "scandir", fake_scandir)

    return install
