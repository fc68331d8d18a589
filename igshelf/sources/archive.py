"""
Provides access to Instagram account data downloaded from
https://www.instagram.com/download/request/.

The archive contains JSON and media files organized in directories by
year/month. media.json describes the archived photos and videos (table of
contents), but it has no notion of albums, so they are reconstructed from
the publish dates and captions.
"""

import asyncio
import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

from igshelf.core.iterator import StickyState
from igshelf.exceptions import (
    ItemFetchError,
    IteratorStateError,
    ManifestDecodeError,
    ManifestMissingError,
    SourceError,
)
from igshelf.models.media import Media, MediaType
from igshelf.utils.path import archive_filename, split_archive_path

log = logging.getLogger(__name__)

MANIFEST_FILENAME = "media.json"
ALBUM_ID_SUFFIX = "album"
MEDIA_EXTENSIONS = (".jpg", ".mp4")


class ArchivedMedia(BaseModel):
    """An image or video listed in media.json."""

    # e.g. "Still jumping"
    caption: str = ""
    # e.g. 2020-10-07T15:55:33+00:00
    taken_at: datetime
    # e.g. videos/202010/8c996aa535f0f7a322d4dbaef9cfd266.mp4
    path: str


class Manifest(BaseModel):
    """Top-level schema for ``media.json``."""

    photos: list[ArchivedMedia] = []
    videos: list[ArchivedMedia] = []

    @field_validator("photos", "videos", mode="before")
    @classmethod
    def null_as_empty(cls, v):
        return [] if v is None else v


def normalize_archived_media(raw: ArchivedMedia, media_type: MediaType) -> Media:
    """Converts a media.json entry into a leaf Media named after its file."""
    media_id, basename = split_archive_path(raw.path)
    return Media(
        id=media_id,
        type=media_type,
        caption=raw.caption,
        location=raw.path,
        filename=archive_filename(basename, raw.taken_at),
        taken_at=raw.taken_at,
    )


def _newest_first(media: Media) -> tuple[bool, float]:
    if media.taken_at is None:
        return False, 0.0
    return True, media.taken_at.timestamp()


class ArchiveAlbumIterator:
    """
    Iterates over a flat archive timeline, grouping media into albums.

    The timeline is sorted newest first, then consecutive media with exactly
    the same publish date and caption are yielded as one album. A single
    media is yielded as is.
    """

    def __init__(self, timeline: list[Media]):
        # Grouping only works on a timeline ordered by date. The sort is
        # stable, so media published together keep their archive order.
        self._timeline = sorted(timeline, key=_newest_first, reverse=True)
        self._sticky = StickyState()
        self._cursor = 0
        self._run_length = 0
        self._current: Optional[Media] = None

    @classmethod
    def faulted(cls, err: Exception) -> "ArchiveAlbumIterator":
        """Creates an iterator that reports err and yields nothing."""
        it = cls([])
        it._sticky.fail(err)
        return it

    @property
    def state(self):
        return self._sticky.state

    async def advance(self) -> bool:
        if not self._sticky.active:
            return False

        # Skip the media yielded last time, including all the album members.
        self._cursor += self._run_length
        if self._cursor >= len(self._timeline):
            self._run_length = 0
            self._sticky.finish()
            return False

        head = self._timeline[self._cursor]
        end = self._cursor + 1
        while end < len(self._timeline):
            m = self._timeline[end]
            if m.taken_at != head.taken_at or m.caption != head.caption:
                break
            end += 1
        self._run_length = end - self._cursor

        if self._run_length == 1:
            self._current = head
        else:
            # The suffix keeps album IDs distinct from their first member's.
            self._current = Media(
                id=head.id + ALBUM_ID_SUFFIX,
                type=MediaType.ALBUM,
                caption=head.caption,
                taken_at=head.taken_at,
                children=tuple(self._timeline[self._cursor : end]),
            )
        return True

    def current(self) -> Media:
        if self._current is None:
            raise IteratorStateError("advance() must be called before current()")
        return self._current

    def last_error(self) -> Optional[Exception]:
        return self._sticky.error


class ArchiveSource:
    """A media source backed by an Instagram zip archive."""

    def __init__(self, archive_path: Path):
        self.archive_path = Path(archive_path)
        try:
            self._zip = zipfile.ZipFile(self.archive_path)
        except (OSError, zipfile.BadZipFile) as e:
            raise SourceError(f"failed to open archive {self.archive_path}: {e}") from e
        # Maps member paths to the archived media files and media.json.
        self._toc: dict[str, zipfile.ZipInfo] = {
            info.filename: info
            for info in self._zip.infolist()
            if info.filename == MANIFEST_FILENAME
            or info.filename.endswith(MEDIA_EXTENSIONS)
        }
        log.debug(f"Indexed {len(self._toc)} entries in '{self.archive_path.name}'.")

    def close(self) -> None:
        """Closes the underlying zip file."""
        self._zip.close()

    def __enter__(self) -> "ArchiveSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _read_manifest(self) -> Manifest:
        info = self._toc.get(MANIFEST_FILENAME)
        if info is None:
            raise ManifestMissingError(f"{MANIFEST_FILENAME} not found in archive")

        try:
            raw = self._zip.read(info)
        except (OSError, zipfile.BadZipFile) as e:
            raise ManifestDecodeError(
                f"failed to open archived {MANIFEST_FILENAME}: {e}"
            ) from e
        if not raw.strip():
            raise ManifestMissingError(f"archived {MANIFEST_FILENAME} is empty")

        try:
            return Manifest.model_validate_json(raw)
        except ValidationError as e:
            raise ManifestDecodeError(
                f"failed to unmarshal archived {MANIFEST_FILENAME}: {e}"
            ) from e

    def list(self) -> ArchiveAlbumIterator:
        """
        Returns an iterator over the archived timeline, newest first.
        Problems with media.json are reported by the iterator's last_error().
        """
        try:
            manifest = self._read_manifest()
        except (ManifestMissingError, ManifestDecodeError) as e:
            log.debug(f"Cannot list archive '{self.archive_path.name}': {e}")
            return ArchiveAlbumIterator.faulted(e)

        timeline = [
            normalize_archived_media(raw, MediaType.IMAGE) for raw in manifest.photos
        ]
        timeline.extend(
            normalize_archived_media(raw, MediaType.VIDEO) for raw in manifest.videos
        )
        return ArchiveAlbumIterator(timeline)

    def _read_member(self, location: str) -> bytes:
        info = self._toc.get(location)
        if info is None:
            raise ItemFetchError(f"file not found in archive {location}")
        try:
            return self._zip.read(info)
        except (OSError, zipfile.BadZipFile) as e:
            raise ItemFetchError(f"failed to read file in archive {location}: {e}") from e

    async def download(self, media: Media) -> tuple[bytes, Optional[bytes]]:
        """Copies the media file from the archive. Thumbnails are not available."""
        content = await asyncio.to_thread(self._read_member, media.location)
        return content, None
