"""
The main orchestrator: fetches a timeline from a media source, stores it,
and copies the media files with a fixed pool of concurrent workers.
"""

import asyncio
import logging
import os
from contextlib import suppress
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import aiofiles
from rich.markup import escape

from igshelf.exceptions import ListingError, PersistenceError, WriteError
from igshelf.models.config import DEFAULT_MAX_WORKERS
from igshelf.models.media import Media
from igshelf.models.stats import DownloadStats
from igshelf.utils.path import create_dir

from .iterator import SourceClient, TimelineStore, collect

if TYPE_CHECKING:
    from igshelf.cli.progress_manager import ProgressManager
    from igshelf.utils.structured_logger import DownloadLogger

log = logging.getLogger(__name__)


class RunState(Enum):
    """Stages of a download run."""

    IDLE = "idle"
    LISTING = "listing"
    PERSISTED = "persisted"
    DOWNLOADING = "downloading"
    DONE = "done"
    FAILED = "failed"


class DownloadManager:
    """
    Copies a timeline using a media source (zip archive or Instagram API)
    and persists it with a timeline store.

    A run doesn't stop if one of the files was not copied due to an error.
    For example, media.json might list a file which actually wasn't
    included into the archive. Failing to write a file on disk, on the
    other hand, stops the whole run.
    """

    def __init__(
        self,
        source: SourceClient,
        store: TimelineStore,
        max_workers: int = DEFAULT_MAX_WORKERS,
        progress_manager: Optional["ProgressManager"] = None,
        events: Optional["DownloadLogger"] = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.source = source
        self.store = store
        self.max_workers = max_workers
        self.progress_manager = progress_manager
        self.events = events
        self.stats = DownloadStats()
        self.state = RunState.IDLE

    async def download(self, content_dir: Path) -> DownloadStats:
        """
        Fetches the timeline, stores it, then copies media files into
        content_dir. Files that already exist there are not copied again.

        Raises:
            ListingError: The timeline could not be fetched; nothing was stored.
            PersistenceError: The timeline could not be stored.
            WriteError: The content directory or a media file could not be written.
            asyncio.CancelledError: The run was cancelled.
        """
        self.state = RunState.LISTING
        try:
            timeline = await collect(self.source.list())
            log.info(f"Fetched a timeline of {len(timeline)} posts.")

            try:
                await asyncio.to_thread(self.store.store, timeline)
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(f"failed to store the timeline: {e}") from e
            self.state = RunState.PERSISTED

            try:
                create_dir(Path(content_dir))
            except OSError as e:
                raise WriteError(
                    f"failed to create content directory {content_dir}: {e}"
                ) from e
            self.state = RunState.DOWNLOADING
            await self._copy_timeline(timeline, Path(content_dir))
        except BaseException:
            self.state = RunState.FAILED
            raise

        self.state = RunState.DONE
        return self.stats

    async def _copy_timeline(self, timeline: list[Media], content_dir: Path) -> None:
        """
        Lines up all the media (including album children) for the workers.
        The bounded queue blocks the producer while every worker is busy.
        """
        self.stats.media_total = sum(
            1 for post in timeline for m in post.iter_files() if m.filename
        )
        if self.progress_manager:
            self.progress_manager.initialize_session(self.stats.media_total)

        queue: asyncio.Queue[Optional[Media]] = asyncio.Queue(maxsize=self.max_workers)
        tasks = [asyncio.create_task(self._enqueue(timeline, queue), name="enqueue")]
        tasks.extend(
            asyncio.create_task(self._worker(queue, content_dir), name=f"worker-{i}")
            for i in range(self.max_workers)
        )

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            # The first fatal error (or a cancellation) stops everyone else.
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in tasks:
            if task in done and not task.cancelled() and task.exception():
                raise task.exception()

    async def _enqueue(
        self, timeline: list[Media], queue: "asyncio.Queue[Optional[Media]]"
    ) -> None:
        for post in timeline:
            for media in post.iter_files():
                await queue.put(media)
        # One stop marker per worker.
        for _ in range(self.max_workers):
            await queue.put(None)

    async def _worker(
        self, queue: "asyncio.Queue[Optional[Media]]", content_dir: Path
    ) -> None:
        while (media := await queue.get()) is not None:
            await self._copy_media(media, content_dir)

    async def _copy_media(self, media: Media, content_dir: Path) -> None:
        # Albums from the archive have no file of their own.
        if not media.filename:
            return

        content_path = content_dir / media.filename
        if await asyncio.to_thread(content_path.exists):
            self.stats.media_skipped_exists += 1
            log.debug(f"Skipping {escape(media.filename)} (already exists)")
            if self.events:
                self.events.media_skipped(media.id, media.filename, reason="exists")
            self._advance_progress()
            return

        try:
            content, thumbnail = await self.source.download(media)
        except Exception as e:
            self.stats.media_failed += 1
            log.error(f"[red]✗ Failed to download {escape(media.id)}: {escape(str(e))}[/red]")
            if self.events:
                self.events.media_download_failed(media.id, media.location, str(e))
            self._advance_progress()
            return

        # The content file goes last: once it exists, reruns skip the media,
        # thumbnail included.
        if thumbnail is not None and media.thumbnail_filename:
            thumbnail_path = content_dir / media.thumbnail_filename
            written = await self._write_file(thumbnail_path, thumbnail, media)
            self.stats.bytes_written += written
            self.stats.thumbnails_downloaded += 1

        written = await self._write_file(content_path, content, media)
        self.stats.bytes_written += written
        self.stats.media_downloaded += 1

        if self.events:
            self.events.media_stored(media.id, media.filename, len(content))
        self._advance_progress()

    async def _write_file(self, path: Path, data: bytes, media: Media) -> int:
        """
        Writes data next to path first and renames it into place, so an
        interrupted write never leaves a partial file behind.
        """
        temp_path = path.with_name(f".{path.name}.part")
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            await asyncio.to_thread(os.replace, temp_path, path)
        except OSError as e:
            raise WriteError(f"failed to store {path.name} of media {media.id}: {e}") from e
        finally:
            with suppress(OSError):
                temp_path.unlink(missing_ok=True)
        return len(data)

    def _advance_progress(self) -> None:
        if self.progress_manager:
            self.progress_manager.update(self.stats)
