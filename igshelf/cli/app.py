"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import signal
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from igshelf import __version__
from igshelf.api.client import InstagramAPIClient
from igshelf.core.download_manager import DownloadManager
from igshelf.core.iterator import SourceClient
from igshelf.exceptions import IgshelfError, WriteError
from igshelf.models.config import ShelfConfig
from igshelf.render import render_timeline
from igshelf.sources.archive import ArchiveSource
from igshelf.sources.instagram import InstagramSource
from igshelf.storage.config_manager import ConfigManager
from igshelf.storage.timeline import JSONTimelineStore
from igshelf.utils.path import create_dir
from igshelf.utils.structured_logger import create_structured_logger

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_timeline_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("igshelf")

app = typer.Typer(
    name="igshelf",
    help=(
        "Keep a local gallery of your Instagram content, copied from the"
        " Instagram API or from a zip archive."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
):
    """igshelf: a local shelf for your Instagram timeline."""
    if version:
        console.print(f"[bold]igshelf[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    elif verbose == 0:
        log_level = "WARNING"
    logging.getLogger("igshelf").setLevel(log_level)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _load_config(config_file: Path | None, cli_options: dict) -> ShelfConfig:
    try:
        return ConfigManager(config_file).load_config(cli_options)
    except IgshelfError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


@asynccontextmanager
async def open_source(config: ShelfConfig) -> AsyncIterator[SourceClient]:
    """Opens the media source chosen in the configuration."""
    if config.is_archive:
        with ArchiveSource(Path(config.source).expanduser()) as archive:
            yield archive
        return

    async with InstagramAPIClient(
        config.token, base_url=config.base_url, max_workers=config.max_workers
    ) as client:
        yield InstagramSource(client, config.user)


def _cancel_on_sigterm(task: asyncio.Task) -> None:
    """SIGINT already cancels the main task; SIGTERM should do the same."""
    loop = asyncio.get_running_loop()
    with suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGTERM, task.cancel)


@app.command(name="download")
def download_command(
    src: str | None = typer.Option(
        None,
        "--src",
        help='Source of the timeline: "api" or a path to a zip archive.',
    ),
    dst: str | None = typer.Option(
        None, "--dst", help="Directory where the timeline is stored."
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Number of workers that copy media files (default 10).",
    ),
    token: str | None = typer.Option(
        None, "--token", help="Instagram API access token."
    ),
    user: str | None = typer.Option(
        None, "--user", help='User whose timeline is copied (default "me").'
    ),
    config_file: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="INI config file with the same settings."
    ),
    log_dir: str | None = typer.Option(
        None, "--log-dir", help="Write JSON event logs into this directory."
    ),
):
    """Copy the timeline and its media files, then render timeline.html."""
    cli_options = {
        "source": src,
        "destination": dst,
        "max_workers": workers,
        "token": token,
        "user": user,
        "log_dir": log_dir,
    }
    config = _load_config(config_file, cli_options)
    if not config.source:
        console.print(
            "[red]✗ No source given.[/red] Use [cyan]--src api[/cyan] or"
            " [cyan]--src archive.zip[/cyan]."
        )
        raise typer.Exit(code=1)

    if log.isEnabledFor(logging.INFO):
        print_config(config)

    async def _download_async():
        _cancel_on_sigterm(asyncio.current_task())
        base_logger, download_events, session_events = create_structured_logger(
            Path(config.log_dir) if config.log_dir else None
        )
        store = JSONTimelineStore(config.timeline_json_path)
        start_time = time.monotonic()
        session_events.session_started(
            config.source, str(config.destination_path), config.max_workers
        )
        try:
            try:
                create_dir(config.destination_path)
            except OSError as e:
                raise WriteError(
                    f"failed to create destination {config.destination_path}: {e}"
                ) from e
            async with open_source(config) as source:
                async with ProgressManager(console) as progress_manager:
                    manager = DownloadManager(
                        source,
                        store,
                        max_workers=config.max_workers,
                        progress_manager=progress_manager,
                        events=download_events,
                    )
                    stats = await manager.download(config.content_dir)
            duration = time.monotonic() - start_time
            session_events.session_completed(
                duration,
                stats.media_downloaded,
                stats.media_failed,
                stats.media_skipped_exists,
            )
        except BaseException as e:
            reason = str(e) or type(e).__name__
            session_events.session_failed(time.monotonic() - start_time, reason)
            raise
        finally:
            base_logger.close()

        print_summary_panel(stats, duration)
        render_timeline(store.list(), config.timeline_html_path)
        console.print(
            f"[bold green]✓ Timeline saved to '{config.timeline_html_path}'[/bold green]"
        )

    asyncio.run(_download_async())


@app.command()
def render(
    dst: str | None = typer.Option(
        None, "--dst", help="Directory where the timeline is stored."
    ),
    config_file: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="INI config file."
    ),
):
    """Render timeline.html from a previously stored timeline.json."""
    config = _load_config(config_file, {"destination": dst})
    timeline = JSONTimelineStore(config.timeline_json_path).list()
    render_timeline(timeline, config.timeline_html_path)
    console.print(
        f"[green]✓ Rendered {len(timeline)} posts into"
        f" '{config.timeline_html_path}'.[/green]"
    )


@app.command()
def show(
    dst: str | None = typer.Option(
        None, "--dst", help="Directory where the timeline is stored."
    ),
    limit: int | None = typer.Option(
        None, "-n", "--limit", help="Show only the newest N posts."
    ),
    config_file: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="INI config file."
    ),
):
    """Show the stored timeline."""
    config = _load_config(config_file, {"destination": dst})
    timeline = JSONTimelineStore(config.timeline_json_path).list()
    print_timeline_table(timeline, limit)
