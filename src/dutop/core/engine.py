"""Top-level scan orchestration."""

from __future__ import annotations

import errno
import logging
import os
import stat
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from dutop.core.aggregator import DEFAULT_SPLIT_THRESHOLD, PendingDir, SubtreeAggregator
from dutop.core.classifier import Classification, Identity, Kind, classify, identity_of
from dutop.core.errors import RootUnreadableError
from dutop.core.tracker import ScanTracker
from dutop.models.scan_result import EntryKind, ScanEntry, ScanResult
from dutop.models.summary import AggregationResult, ScanProgress

log = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]


def default_workers() -> int:
    """Worker count matching the available CPU parallelism."""
    return os.cpu_count() or 1


class ScanEngine:
    """Scans the immediate children of a root and sizes each one.

    Files are measured directly; directories are handed to a
    :class:`SubtreeAggregator`.  Everything runs on one bounded thread
    pool, or inline on the calling thread when ``workers`` is 1.
    """

    def __init__(
        self,
        *,
        workers: int | None = None,
        split_threshold: int = DEFAULT_SPLIT_THRESHOLD,
        follow_symlinks: bool = False,
    ) -> None:
        self.workers = workers if workers and workers > 0 else default_workers()
        self.split_threshold = split_threshold
        self.follow_symlinks = follow_symlinks

    def scan(
        self,
        root: str | os.PathLike[str],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ScanResult:
        """Scan *root* and return one entry per immediate child.

        Entries come back in completion order; use
        :func:`dutop.core.ranker.rank` to order them.

        Args:
            root: Directory to scan.
            on_progress: Optional callback fired on the calling thread after
                each unit of work with cumulative counts.  Exceptions it
                raises are logged and ignored.
            cancel_event: Optional event; once set, workers stop before
                their next directory listing and ``ScanCancelled`` is raised.

        Raises:
            RootUnreadableError: If *root* does not exist, is not a
                directory, or cannot be listed.
            ScanCancelled: If *cancel_event* was set during the scan.
        """
        started = time.monotonic()
        root_path = os.fspath(root)
        root_identity, children = _list_root(root_path)
        log.info("Scanning %d entries under %s with %d worker(s)", len(children), root_path, self.workers)

        if cancel_event is None:
            cancel_event = threading.Event()
        tracker = ScanTracker()
        entries: list[ScanEntry] = []
        dirs: list[PendingDir] = []
        ancestors = frozenset({root_identity})

        def _report() -> None:
            if on_progress is None:
                return
            snapshot = ScanProgress(
                files_scanned=tracker.files_scanned,
                errors=tracker.errors,
                entries_done=len(entries),
                entries_total=len(children),
            )
            try:
                on_progress(snapshot)
            except Exception:
                log.exception("Progress callback failed")

        def _on_complete(index: int, total: AggregationResult) -> None:
            entries.append(ScanEntry(path=Path(dirs[index].path), kind=EntryKind.DIR, size=total.total_bytes))

        def _run(executor: Executor | None) -> None:
            if executor is None:
                classified = [_classify_child(p, ancestors) for p in children]
            else:
                classified = list(executor.map(lambda p: _classify_child(p, ancestors), children))
            dirs.extend(_collect(children, classified, ancestors, entries, tracker))
            _report()
            aggregator = SubtreeAggregator(
                tracker,
                executor=executor,
                workers=self.workers,
                split_threshold=self.split_threshold,
                follow_symlinks=self.follow_symlinks,
                cancel_event=cancel_event,
            )
            aggregator.aggregate_many(dirs, on_complete=_on_complete, on_chunk=_report)

        if self.workers > 1 and children:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                try:
                    _run(executor)
                except BaseException:
                    # Let running workers unwind before the pool joins them.
                    cancel_event.set()
                    raise
        else:
            _run(None)

        summary = tracker.summary(time.monotonic() - started)
        return ScanResult(root=Path(root_path), entries=entries, summary=summary)


def _list_root(root_path: str) -> tuple[Identity, list[str]]:
    """Stat and list the root; the only place a failure is fatal."""
    try:
        st = os.stat(root_path)
        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), root_path)
        with os.scandir(root_path) as it:
            children = [entry.path for entry in it]
    except OSError as exc:
        raise RootUnreadableError(root_path, exc) from exc
    return identity_of(st), children


def _classify_child(path: str, ancestors: frozenset[Identity]) -> Classification:
    # Top-level symlinks are reported as what they point to.
    return classify(path, ancestors, follow_symlinks=True)


def _collect(
    children: list[str],
    classified: list[Classification],
    ancestors: frozenset[Identity],
    entries: list[ScanEntry],
    tracker: ScanTracker,
) -> list[PendingDir]:
    """Turn files into entries directly and return the directories."""
    dirs: list[PendingDir] = []
    for path, result in zip(children, classified):
        match result.kind:
            case Kind.FILE:
                entries.append(ScanEntry(path=Path(path), kind=EntryKind.FILE, size=result.size))
                tracker.add_files()
            case Kind.DIR:
                dirs.append(PendingDir(path, ancestors | {result.identity}))
            case Kind.INACCESSIBLE:
                log.debug("Skipping %s: %s", path, result.reason.value)
                tracker.add_errors()
            case _:
                log.debug("Skipping %s: not a regular file or directory", path)
    return dirs
