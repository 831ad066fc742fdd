"""
Manages a Rich Live display for downloads in flight, keyed by file name.
"""

import asyncio
import logging

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

log = logging.getLogger("helalist_client")


class ProgressManager:
    """
    Tracks the list of active downloads and their percentages.

    Downloads with a known size are shown as a percentage bar; the rest show
    a spinner and the number of bytes received so far.
    """

    def __init__(self, console: Console):
        self.console = console

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self.bytes_progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            DownloadColumn(),
            console=console,
        )

        self._live: Live | None = None
        self._downloads: dict[str, tuple[Progress, TaskID]] = {}
        self._stats = {
            "completed": 0,
            "failed": 0,
            "cancelled": 0,
            "bytes": 0,
        }

    def add_download(self, name: str, total_size: int = 0) -> TaskID:
        """Registers a download; ``total_size`` of 0 means unknown."""
        if name in self._downloads:
            self.remove_download(name, success=False)
        description = name if len(name) <= 50 else "…" + name[-49:]
        if total_size:
            progress = self.progress
            task_id = progress.add_task(description, total=100)
        else:
            progress = self.bytes_progress
            task_id = progress.add_task(description, total=None)
        self._downloads[name] = (progress, task_id)
        self._update_display()
        return task_id

    def update_download(self, name: str, percent: int) -> None:
        """Sets the percentage of a sized download."""
        entry = self._downloads.get(name)
        if entry is None:
            return
        progress, task_id = entry
        progress.update(task_id, completed=percent)

    def advance_bytes(self, name: str, nbytes: int) -> None:
        """Counts received bytes; only drawn for downloads of unknown size."""
        self._stats["bytes"] += nbytes
        entry = self._downloads.get(name)
        if entry is None:
            return
        progress, task_id = entry
        if progress is self.bytes_progress:
            progress.advance(task_id, nbytes)

    def remove_download(
        self, name: str, success: bool = True, cancelled: bool = False
    ) -> None:
        entry = self._downloads.pop(name, None)
        if entry is None:
            return
        progress, task_id = entry
        progress.remove_task(task_id)
        if cancelled:
            self._stats["cancelled"] += 1
        elif success:
            self._stats["completed"] += 1
        else:
            self._stats["failed"] += 1
        self._update_display()

    def get_statistics(self) -> dict[str, int]:
        """Counts of finished downloads and bytes received so far."""
        return self._stats.copy()

    def _render(self) -> Panel:
        if not self._downloads:
            body = Text(
                "Waiting for downloads to start...",
                style="dim italic",
                justify="center",
            )
        else:
            body = Table.grid()
            if self.progress.tasks:
                body.add_row(self.progress)
            if self.bytes_progress.tasks:
                body.add_row(self.bytes_progress)
        return Panel(
            body,
            title=f"[bold]📥 Downloads ({len(self._downloads)})[/bold]",
            border_style="green",
        )

    def _update_display(self) -> None:
        if self._live is not None:
            self._live.update(self._render())

    async def __aenter__(self):
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=12,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.1)
            self._live.update(self._render())
            self._live.stop()
            self._live = None
