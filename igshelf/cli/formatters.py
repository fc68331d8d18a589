"""
Functions for formatting and displaying data in the console using Rich.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from igshelf.models.config import ShelfConfig
from igshelf.models.media import Media
from igshelf.models.stats import DownloadStats
from igshelf.utils.formatting import (
    describe_media,
    format_duration,
    format_size,
    shorten_caption,
)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check --src, --dst and --token, or the IGSHELF_* environment variables.",
            "• Use --src api or a path to the zip archive from Instagram.",
        ],
        "ListingError": [
            "• Your access token may have expired. Generate a new one.",
            "• A zip archive must contain media.json at its root.",
            "• Nothing was stored; simply run the command again.",
        ],
        "SourceError": [
            "• Check that the archive is the zip file downloaded from Instagram.",
            "• Request a new archive if the download was interrupted.",
        ],
        "PersistenceError": [
            "• Check that the destination directory is writable.",
            "• Make sure there is enough free disk space.",
        ],
        "WriteError": [
            "• Check that the content directory is writable.",
            "• Make sure there is enough free disk space.",
            "• Files copied so far are kept; rerun to copy the rest.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config: ShelfConfig):
    """Displays the effective settings, hiding the access token."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    source = "Instagram API" if config.source == "api" else config.source
    table.add_row("Source:", source or "[dim](none, render only)[/dim]")
    table.add_row("Destination:", str(config.destination_path))
    table.add_row("Max Workers:", str(config.max_workers))
    if config.source == "api":
        table.add_row("User:", config.user)
        table.add_row("Token:", "[hidden]" if config.token else "[red]missing[/red]")

    console.print(Panel(table, title="[bold]Settings[/bold]", border_style="cyan"))


def print_timeline_table(timeline: list[Media], limit: int | None = None):
    """Displays the stored timeline, newest first."""
    console = Console()
    table = Table(title=f"Timeline ({len(timeline)} posts)")
    table.add_column("Date", style="dim", no_wrap=True)
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Caption")

    for post in timeline[:limit]:
        date = post.taken_at.strftime("%Y-%m-%d %H:%M") if post.taken_at else "?"
        table.add_row(date, post.id, describe_media(post), shorten_caption(post.caption))
    console.print(table)


def print_summary_panel(stats: DownloadStats, duration_s: float):
    """Displays the final summary of a download run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Copied:", f"[bold green]{stats.media_downloaded}[/bold green]"
    )
    if stats.thumbnails_downloaded > 0:
        stats_table.add_row("  Thumbnails:", str(stats.thumbnails_downloaded))
    if stats.media_skipped_exists > 0:
        stats_table.add_row(
            "○ Skipped:", f"[yellow]{stats.media_skipped_exists} (exists)[/yellow]"
        )
    if stats.media_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.media_failed}[/bold red]")

    stats_table.add_row("", "")
    stats_table.add_row("Written:", format_size(stats.bytes_written))
    stats_table.add_row("Duration:", format_duration(duration_s))

    border = "green" if stats.media_failed == 0 else "yellow"
    console.print(
        Panel(
            stats_table,
            title="[bold]📊 Download Summary[/bold]",
            border_style=border,
            expand=False,
        )
    )
