"""Transfer progress reporting."""

from rich.console import Console
from rich.progress import (
    Progress,
    BarColumn,
    DownloadColumn,
    TransferSpeedColumn,
    TimeRemainingColumn,
)


class ProgressSink:
    """Receives byte counts while a file is transferred."""

    def start(self, label: str, total: int | None) -> None:
        pass

    def advance(self, count: int) -> None:
        pass

    def finish(self) -> None:
        pass


class NullProgressSink(ProgressSink):
    """Discards progress updates."""

    pass


class RichProgressSink(ProgressSink):
    """Renders a rich progress bar per transfer."""

    def __init__(self, console: Console | None = None):
        self.console = console
        self._progress: Progress | None = None
        self._task = None

    def start(self, label: str, total: int | None) -> None:
        self.finish()
        self._progress = Progress(
            "[progress.description]{task.description}",
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self.console,
            transient=True,
        )
        self._progress.start()
        # total=None renders an indeterminate bar
        self._task = self._progress.add_task(label, total=total or None)

    def advance(self, count: int) -> None:
        if self._progress is not None:
            self._progress.update(self._task, advance=count)

    def finish(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None
