"""
A media iterator over a paginated API, which fetches one page at a time.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Optional

from igshelf.exceptions import IteratorStateError
from igshelf.models.media import Media

from .iterator import StickyState

log = logging.getLogger(__name__)


@dataclass
class MediaPage:
    """A batch of media and the cursor of the page that follows it."""

    items: list[Media] = field(default_factory=list)
    # Empty when this is the last page.
    next_cursor: str = ""


PageFetcher = Callable[[Optional[str]], Awaitable[MediaPage]]


class PaginatedMediaIterator:
    """
    Iterates over media fetched page by page with fetch_page(cursor).

    The first page is requested with cursor None, each following page with
    the cursor returned alongside the previous one. Iteration stops after a
    page without a next cursor or at an empty page. An error during
    pagination is final: one would have to start over.
    """

    def __init__(self, fetch_page: PageFetcher):
        self._fetch_page = fetch_page
        self._sticky = StickyState()
        self._page: list[Media] = []
        self._cursor = -1
        self._next_cursor: Optional[str] = None
        self._has_more = True

    @property
    def state(self):
        return self._sticky.state

    async def advance(self) -> bool:
        if not self._sticky.active:
            return False

        if self._cursor + 1 < len(self._page):
            self._cursor += 1
            return True

        if not self._has_more:
            self._sticky.finish()
            return False

        try:
            page = await self._fetch_page(self._next_cursor)
        except Exception as e:
            log.debug(f"Failed to fetch a page after cursor {self._next_cursor!r}: {e}")
            self._page = []
            self._sticky.fail(e)
            return False

        self._next_cursor = page.next_cursor
        self._has_more = bool(page.next_cursor)
        self._page = page.items
        self._cursor = 0
        if not self._page:
            self._sticky.finish()
            return False
        return True

    def current(self) -> Media:
        if not 0 <= self._cursor < len(self._page):
            raise IteratorStateError("advance() must be called before current()")
        return self._page[self._cursor]

    def last_error(self) -> Optional[Exception]:
        return self._sticky.error
