"""
Contracts shared by every media source: the pull-based media iterator,
the source client that hands one out, and the timeline store.
"""

import logging
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from igshelf.exceptions import ListingError
from igshelf.models.media import Media

log = logging.getLogger(__name__)


@runtime_checkable
class MediaIterator(Protocol):
    """
    Yields media in reverse chronological order (newest first).

    Every call to current(), even the first one, must be preceded by a
    call to advance().
    """

    async def advance(self) -> bool:
        """
        Prepares the next media for reading with current().

        Returns True on success, or False if there is no next media or an
        error happened while preparing it. last_error() tells the two apart.
        """
        ...

    def current(self) -> Media:
        """Returns the media which the iterator is currently pointing to."""
        ...

    def last_error(self) -> Optional[Exception]:
        """Returns the error, if any, that was encountered during iteration."""
        ...


class SourceClient(Protocol):
    """Provides access to a timeline so one can get a copy of own content."""

    def list(self) -> MediaIterator:
        """Returns an iterator over the timeline, newest first."""
        ...

    async def download(self, media: Media) -> tuple[bytes, Optional[bytes]]:
        """
        Copies the media file and its thumbnail from their locations.
        Safe to call concurrently for different media.
        """
        ...


class TimelineStore(Protocol):
    """Stores a whole timeline at once, assuming it fits in memory."""

    # Declared ahead of list(), which shadows the builtin in the class body.
    def store(self, timeline: list[Media]) -> None:
        """Persists the timeline, overwriting whatever was stored before."""
        ...

    def list(self) -> list[Media]:
        ...


class IteratorState(Enum):
    """States of a media iterator."""

    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    FAULTED = "faulted"


class StickyState:
    """
    Tracks an iterator's state. Once exhausted or faulted, it stays that way.
    """

    def __init__(self) -> None:
        self.state = IteratorState.ACTIVE
        self.error: Optional[Exception] = None

    @property
    def active(self) -> bool:
        return self.state == IteratorState.ACTIVE

    def finish(self) -> None:
        if self.state == IteratorState.ACTIVE:
            self.state = IteratorState.EXHAUSTED

    def fail(self, err: Exception) -> None:
        if self.state != IteratorState.FAULTED:
            self.state = IteratorState.FAULTED
            self.error = err


async def collect(iterator: MediaIterator) -> list[Media]:
    """
    Drains the iterator into a timeline.

    Raises:
        ListingError: If the iterator reported an error.
    """
    timeline: list[Media] = []
    while await iterator.advance():
        timeline.append(iterator.current())

    if (err := iterator.last_error()) is not None:
        raise ListingError(f"failed to fetch the timeline: {err}") from err

    log.debug(f"Collected {len(timeline)} media from the timeline.")
    return timeline
