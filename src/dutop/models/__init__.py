"""dutop data models."""

from dutop.models.scan_result import EntryKind, ScanEntry, ScanResult
from dutop.models.summary import AggregationResult, ScanProgress, ScanSummary

__all__ = [
    "AggregationResult",
    "EntryKind",
    "ScanEntry",
    "ScanProgress",
    "ScanResult",
    "ScanSummary",
]
