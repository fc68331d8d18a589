"""
In-memory test doubles for media sources and timeline stores.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from igshelf.core.iterator import StickyState
from igshelf.exceptions import IteratorStateError, ItemFetchError, PersistenceError
from igshelf.models.media import Media, MediaType

T0 = datetime(2020, 10, 7, 15, 55, 33, tzinfo=timezone.utc)


def image(media_id: str, taken_at: datetime = T0, caption: str = "", **kwargs) -> Media:
    kwargs.setdefault("filename", f"{taken_at:%Y%m}_{media_id}.jpg")
    kwargs.setdefault("location", f"photos/{taken_at:%Y%m}/{media_id}.jpg")
    return Media(
        id=media_id, type=MediaType.IMAGE, caption=caption, taken_at=taken_at, **kwargs
    )


def video(media_id: str, taken_at: datetime = T0, caption: str = "", **kwargs) -> Media:
    kwargs.setdefault("filename", f"{taken_at:%Y%m}_{media_id}.mp4")
    kwargs.setdefault("location", f"videos/{taken_at:%Y%m}/{media_id}.mp4")
    return Media(
        id=media_id, type=MediaType.VIDEO, caption=caption, taken_at=taken_at, **kwargs
    )


def days_ago(n: int) -> datetime:
    return T0 - timedelta(days=n)


class ListIterator:
    """Yields a fixed timeline, then reports error (if any)."""

    def __init__(self, timeline: list[Media], error: Optional[Exception] = None):
        self._timeline = timeline
        self._error = error
        self._sticky = StickyState()
        self._cursor = -1

    async def advance(self) -> bool:
        if not self._sticky.active:
            return False
        if self._cursor + 1 < len(self._timeline):
            self._cursor += 1
            return True
        if self._error is not None:
            self._sticky.fail(self._error)
        else:
            self._sticky.finish()
        return False

    def current(self) -> Media:
        if not 0 <= self._cursor < len(self._timeline):
            raise IteratorStateError("advance() must be called before current()")
        return self._timeline[self._cursor]

    def last_error(self) -> Optional[Exception]:
        return self._sticky.error


class FakeSource:
    """
    A source whose files are b"content of <id>". Media listed in failing
    cannot be downloaded, and every download takes delay seconds.
    """

    def __init__(
        self,
        timeline: list[Media],
        failing: set[str] = frozenset(),
        list_error: Optional[Exception] = None,
        thumbnails: bool = False,
        delay: float = 0.0,
    ):
        self.timeline = timeline
        self.failing = set(failing)
        self.list_error = list_error
        self.thumbnails = thumbnails
        self.delay = delay
        self.downloaded: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def list(self) -> ListIterator:
        return ListIterator(self.timeline, self.list_error)

    async def download(self, media: Media) -> tuple[bytes, Optional[bytes]]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if media.id in self.failing:
                raise ItemFetchError(f"failed to download {media.id}")
            self.downloaded.append(media.id)
            thumbnail = f"cover of {media.id}".encode() if self.thumbnails else None
            return f"content of {media.id}".encode(), thumbnail
        finally:
            self.in_flight -= 1


class MemoryStore:
    """A timeline store that keeps the timeline in memory."""

    def __init__(self, fail: bool = False):
        self.timeline: Optional[list[Media]] = None
        self.store_calls = 0
        self.fail = fail

    def store(self, timeline: list[Media]) -> None:
        self.store_calls += 1
        if self.fail:
            raise PersistenceError("failed to store the timeline: disk full")
        self.timeline = list(timeline)

    def list(self) -> list[Media]:
        return list(self.timeline or [])
