"""Subtree size aggregation.

Directories are walked with an explicit stack rather than recursion.
A worker walks until it has examined ``split_threshold`` entries, then
hands its remaining stack back to the coordinating thread, which folds
the partial total and resubmits the rest as new tasks.  Workers never
wait on each other, so a bounded pool cannot deadlock however deep or
wide the tree is.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from dataclasses import dataclass
from typing import Callable, Sequence

from dutop.core.classifier import Identity, Kind, classify, identity_of
from dutop.core.errors import ScanCancelled
from dutop.core.tracker import ScanTracker
from dutop.models.summary import AggregationResult

log = logging.getLogger(__name__)

# Entries a worker examines before handing leftover directories back.
DEFAULT_SPLIT_THRESHOLD = 2048

CompleteCallback = Callable[[int, AggregationResult], None]  # (root index, total)
ChunkCallback = Callable[[], None]


@dataclass(frozen=True, slots=True)
class PendingDir:
    """A directory waiting to be listed.

    ``ancestors`` holds the identities of every directory from the scan
    root down to and including this one.
    """

    path: str
    ancestors: frozenset[Identity]


def walk_chunk(
    stack: list[PendingDir],
    *,
    budget: int,
    follow_symlinks: bool = False,
    cancel_event: threading.Event | None = None,
) -> tuple[AggregationResult, list[PendingDir]]:
    """Walk directories from *stack* until about *budget* entries are examined.

    Returns the partial result and whatever is left on the stack.
    """
    partial = AggregationResult()
    examined = 0

    while stack and examined < budget:
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelled("scan cancelled")

        pending = stack.pop()
        try:
            with os.scandir(pending.path) as it:
                children = [entry.path for entry in it]
        except OSError as exc:
            log.debug("Cannot list %s: %s", pending.path, exc)
            partial.errors_encountered += 1
            continue

        partial.dirs_scanned += 1
        for child in children:
            result = classify(child, pending.ancestors, follow_symlinks=follow_symlinks)
            match result.kind:
                case Kind.FILE:
                    partial.total_bytes += result.size
                    partial.files_scanned += 1
                case Kind.DIR:
                    stack.append(PendingDir(child, pending.ancestors | {result.identity}))
                case Kind.INACCESSIBLE:
                    log.debug("Skipping %s: %s", child, result.reason.value)
                    partial.errors_encountered += 1
        examined += len(children) + 1

    return partial, stack


class SubtreeAggregator:
    """Computes the total size of regular files beneath directories.

    With an executor, work is spread over the pool; without one, the
    same chunked walk runs inline on the calling thread.
    """

    def __init__(
        self,
        tracker: ScanTracker | None = None,
        *,
        executor: Executor | None = None,
        workers: int = 1,
        split_threshold: int = DEFAULT_SPLIT_THRESHOLD,
        follow_symlinks: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if split_threshold < 1:
            raise ValueError("split_threshold must be at least 1")
        self.tracker = tracker or ScanTracker()
        self._executor = executor
        self._workers = max(1, workers)
        self._split_threshold = split_threshold
        self._follow_symlinks = follow_symlinks
        self._cancel_event = cancel_event

    def aggregate(
        self,
        dir_path: str | os.PathLike[str],
        ancestors: frozenset[Identity] = frozenset(),
    ) -> AggregationResult:
        """Aggregate a single directory.

        A directory that cannot be read yields a zero total with one
        error; nothing is raised.
        """
        path = os.fspath(dir_path)
        try:
            st = os.stat(path)
        except OSError as exc:
            log.debug("Cannot stat %s: %s", path, exc)
            self.tracker.add_errors()
            return AggregationResult(errors_encountered=1)
        root = PendingDir(path, ancestors | {identity_of(st)})
        return self.aggregate_many([root])[0]

    def aggregate_many(
        self,
        roots: Sequence[PendingDir],
        on_complete: CompleteCallback | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> list[AggregationResult]:
        """Aggregate several subtrees, sharing the pool between them.

        Args:
            roots: Subtree roots, each with its ancestor set already
                including its own identity.
            on_complete: Called on the calling thread with the root's index
                and final total as soon as that subtree is finished.
            on_chunk: Called on the calling thread after every chunk.

        Returns:
            One result per root, in the order of *roots*.
        """
        results = [AggregationResult() for _ in roots]
        if self._executor is None:
            self._aggregate_inline(roots, results, on_complete, on_chunk)
        else:
            self._aggregate_parallel(roots, results, on_complete, on_chunk)
        return results

    def _aggregate_inline(
        self,
        roots: Sequence[PendingDir],
        results: list[AggregationResult],
        on_complete: CompleteCallback | None,
        on_chunk: ChunkCallback | None,
    ) -> None:
        for index, root in enumerate(roots):
            stack = [root]
            while stack:
                partial, stack = self._run_chunk(stack)
                results[index].fold(partial)
                if not stack and on_complete:
                    on_complete(index, results[index])
                if on_chunk:
                    on_chunk()

    def _aggregate_parallel(
        self,
        roots: Sequence[PendingDir],
        results: list[AggregationResult],
        on_complete: CompleteCallback | None,
        on_chunk: ChunkCallback | None,
    ) -> None:
        futures: dict[Future, int] = {}
        outstanding = [0] * len(roots)

        def _submit(index: int, stack: list[PendingDir]) -> None:
            futures[self._executor.submit(self._run_chunk, stack)] = index
            outstanding[index] += 1

        for index, root in enumerate(roots):
            _submit(index, [root])

        try:
            while futures:
                done, _ = wait(futures, return_when=FIRST_COMPLETED)
                for future in done:
                    index = futures.pop(future)
                    outstanding[index] -= 1
                    partial, leftover = future.result()
                    results[index].fold(partial)
                    for chunk in self._split(leftover):
                        _submit(index, chunk)
                    if outstanding[index] == 0 and on_complete:
                        on_complete(index, results[index])
                    if on_chunk:
                        on_chunk()
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    def _run_chunk(self, stack: list[PendingDir]) -> tuple[AggregationResult, list[PendingDir]]:
        partial, leftover = walk_chunk(
            stack,
            budget=self._split_threshold,
            follow_symlinks=self._follow_symlinks,
            cancel_event=self._cancel_event,
        )
        self.tracker.record(partial)
        return partial, leftover

    def _split(self, stack: list[PendingDir]) -> list[list[PendingDir]]:
        """Deal leftover directories into at most one chunk per worker."""
        if not stack:
            return []
        count = min(len(stack), self._workers)
        return [stack[i::count] for i in range(count)]
