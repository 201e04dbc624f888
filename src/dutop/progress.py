"""Live spinner shown on stderr while a scan runs."""

from __future__ import annotations

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from dutop.models.summary import ScanProgress


class ScanSpinner:
    """Best-effort progress display fed by the engine's progress callback.

    Does nothing unless enabled and stderr is a terminal, so piped and
    JSON output stay clean.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._enabled = enabled and self._console.is_terminal
        self._progress: Progress | None = None
        self._task = None

    def __enter__(self) -> ScanSpinner:
        if self._enabled:
            self._progress = Progress(
                SpinnerColumn(style="green"),
                TimeElapsedColumn(),
                TextColumn("files scanned: {task.completed:,.0f}"),
                TextColumn("[dim]{task.fields[entries]}"),
                transient=True,
                console=self._console,
            )
            self._progress.start()
            self._task = self._progress.add_task("Scanning...", total=None, entries="")
        return self

    def __exit__(self, *exc_info) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def update(self, progress: ScanProgress) -> None:
        if self._progress is None:
            return
        self._progress.update(
            self._task,
            completed=progress.files_scanned,
            entries=f"{progress.entries_done}/{progress.entries_total} entries",
        )
