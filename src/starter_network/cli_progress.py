"""Rich progress bars for CLI uploads and downloads."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import override

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .protocols import ProgressReporter
from .types import ProgressCallback


def transfer_progress() -> Progress:
    """Return a transient progress display with byte and speed columns."""
    return Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeElapsedColumn(),
        transient=True,
    )


@dataclass
class CliProgressReporter(ProgressReporter):
    """Shows one transfer at a time; the display is live between start and finish."""

    factory: Callable[[], Progress] = transfer_progress
    _live: Progress | None = field(default=None, init=False, repr=False)
    _task: TaskID | None = field(default=None, init=False, repr=False)

    @override
    def start(self, label: str, total: int | None) -> None:
        if self._live is None:
            self._live = self.factory()
            self._live.start()
        elif self._task is not None:
            self._live.remove_task(self._task)
        self._task = self._live.add_task(label, total=total)

    @override
    def advance(self, count: int) -> None:
        if self._live is not None and self._task is not None:
            self._live.advance(self._task, count)

    @override
    def finish(self) -> None:
        live, self._live, self._task = self._live, None, None
        if live is not None:
            live.stop()


def progress_callback(reporter: ProgressReporter, label: str) -> ProgressCallback:
    """Adapt a reporter to the (done, total) callback the transport calls.

    The reporter is started on the first call, once the total is known.
    """
    seen = 0
    started = False

    def _callback(done: int, total: int | None) -> None:
        nonlocal seen, started
        if not started:
            reporter.start(label, total)
            started = True
        if done > seen:
            reporter.advance(done - seen)
            seen = done

    return _callback
