"""Tests for the shared scan counters."""

from __future__ import annotations

import threading

from dutop.core.tracker import ScanTracker
from dutop.models.summary import AggregationResult


class TestScanTracker:
    def test_starts_at_zero(self):
        tracker = ScanTracker()
        assert (tracker.files_scanned, tracker.dirs_scanned, tracker.errors) == (0, 0, 0)

    def test_record_partial(self):
        tracker = ScanTracker()
        tracker.record(AggregationResult(total_bytes=999, errors_encountered=2, files_scanned=5, dirs_scanned=3))
        tracker.record(AggregationResult(files_scanned=1))
        assert tracker.files_scanned == 6
        assert tracker.dirs_scanned == 3
        assert tracker.errors == 2

    def test_summary_snapshot(self):
        tracker = ScanTracker()
        tracker.add_files(4)
        tracker.add_errors()
        summary = tracker.summary(elapsed=1.5)
        assert summary.total_files_scanned == 4
        assert summary.total_errors == 1
        assert summary.elapsed == 1.5

        tracker.add_files()
        assert summary.total_files_scanned == 4

    def test_concurrent_increments_are_exact(self):
        tracker = ScanTracker()
        threads = 8
        per_thread = 2000
        barrier = threading.Barrier(threads)

        def work():
            barrier.wait()
            for _ in range(per_thread):
                tracker.add_files()
                tracker.record(AggregationResult(errors_encountered=1))

        pool = [threading.Thread(target=work) for _ in range(threads)]
        for t in pool:
            t.start()
        for t in pool:
            t.join()

        assert tracker.files_scanned == threads * per_thread
        assert tracker.errors == threads * per_thread


class TestAggregationResult:
    def test_fold_is_order_independent(self):
        parts = [
            AggregationResult(total_bytes=10, files_scanned=1),
            AggregationResult(total_bytes=20, errors_encountered=1, dirs_scanned=2),
            AggregationResult(total_bytes=5, files_scanned=3),
        ]
        forward = AggregationResult()
        for part in parts:
            forward.fold(part)
        backward = AggregationResult()
        for part in reversed(parts):
            backward.fold(part)
        assert forward == backward == AggregationResult(
            total_bytes=35, errors_encountered=1, files_scanned=4, dirs_scanned=2
        )
