"""
Manages a Rich Live display for a download run: overall progress and
real-time statistics of the copied media files.
"""

import asyncio
import logging
from datetime import datetime

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from igshelf.models.stats import DownloadStats
from igshelf.utils.formatting import format_size

log = logging.getLogger("igshelf")


class ProgressManager:
    """Shows how many media files were copied, skipped or failed so far."""

    def __init__(self, console: Console):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
        )
        self._live: Live | None = None
        self._task_id: TaskID | None = None
        self._stats = DownloadStats()
        self._start_time: datetime | None = None

    def initialize_session(self, total_media: int) -> None:
        self._start_time = datetime.now()
        self._task_id = self.progress.add_task(
            "Copying media", total=total_media, start=True
        )
        self._update_display()

    def update(self, stats: DownloadStats) -> None:
        """Refreshes the display from the run's current statistics."""
        self._stats = stats
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=stats.media_processed)
        self._update_display()

    def _generate_stats_panel(self) -> Panel:
        stats_table = Table.grid(padding=(0, 2))
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_row(
            "Copied:",
            f"[green]{self._stats.media_downloaded}[/green]",
            "Failed:",
            f"[red]{self._stats.media_failed}[/red]",
        )
        stats_table.add_row(
            "Skipped:",
            f"[yellow]{self._stats.media_skipped_exists}[/yellow]",
            "Written:",
            f"[blue]{format_size(self._stats.bytes_written)}[/blue]",
        )
        return Panel(
            Group(stats_table, "", self.progress),
            title="[bold]📷 igshelf[/bold]",
            border_style="blue",
        )

    def _update_display(self) -> None:
        if self._live:
            self._live.update(self._generate_stats_panel())

    async def __aenter__(self):
        self._live = Live(
            self._generate_stats_panel(),
            console=self.console,
            refresh_per_second=8,
            transient=False,
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
