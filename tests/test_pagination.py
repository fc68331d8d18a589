import asyncio

import pytest

from igshelf.core.iterator import IteratorState, MediaIterator, collect
from igshelf.core.pagination import MediaPage, PaginatedMediaIterator
from igshelf.exceptions import IteratorStateError, ListingError

from tests.fakes import image


class ScriptedPages:
    """Serves pages in order and records the cursors it was asked for."""

    def __init__(self, pages, error_at=None):
        self.pages = pages
        self.error_at = error_at
        self.cursors = []

    async def __call__(self, cursor):
        self.cursors.append(cursor)
        index = len(self.cursors) - 1
        if index == self.error_at:
            raise ConnectionError("connection reset")
        return self.pages[index]


def make_pages(sizes):
    pages = []
    n = 0
    for i, size in enumerate(sizes):
        items = [image(f"m{n + k}") for k in range(size)]
        n += size
        next_cursor = f"c{i + 1}" if i + 1 < len(sizes) else ""
        pages.append(MediaPage(items=items, next_cursor=next_cursor))
    return pages


@pytest.mark.parametrize("sizes", [[1], [3], [2, 2], [3, 1, 4], [5, 5, 5, 1]])
async def test_yields_every_item_of_every_page(sizes):
    fetch = ScriptedPages(make_pages(sizes))
    it = PaginatedMediaIterator(fetch)

    results = []
    ids = []
    for _ in range(sum(sizes)):
        results.append(await it.advance())
        ids.append(it.current().id)

    assert all(results)
    assert not await it.advance()
    assert it.last_error() is None
    assert it.state == IteratorState.EXHAUSTED
    assert ids == [f"m{i}" for i in range(sum(sizes))]
    assert fetch.cursors == [None] + [f"c{i}" for i in range(1, len(sizes))]


async def test_empty_page_ends_iteration():
    fetch = ScriptedPages([MediaPage(items=[], next_cursor="c1")])
    it = PaginatedMediaIterator(fetch)

    assert not await it.advance()
    assert it.last_error() is None
    assert not await it.advance()
    assert fetch.cursors == [None]


async def test_no_fetch_after_last_page():
    fetch = ScriptedPages(make_pages([2]))
    it = PaginatedMediaIterator(fetch)
    assert await collect(it) == fetch.pages[0].items
    assert not await it.advance()
    assert fetch.cursors == [None]


async def test_fetch_error_is_sticky():
    fetch = ScriptedPages(make_pages([2, 2]), error_at=1)
    it = PaginatedMediaIterator(fetch)

    assert await it.advance()
    assert await it.advance()
    assert not await it.advance()
    err = it.last_error()
    assert isinstance(err, ConnectionError)
    assert it.state == IteratorState.FAULTED
    with pytest.raises(IteratorStateError):
        it.current()

    assert not await it.advance()
    assert it.last_error() is err
    assert len(fetch.cursors) == 2


async def test_collect_wraps_fetch_error():
    fetch = ScriptedPages(make_pages([1]), error_at=0)
    with pytest.raises(ListingError, match="failed to fetch the timeline") as exc_info:
        await collect(PaginatedMediaIterator(fetch))
    assert isinstance(exc_info.value.__cause__, ConnectionError)


async def test_current_before_advance():
    it = PaginatedMediaIterator(ScriptedPages(make_pages([1])))
    with pytest.raises(IteratorStateError):
        it.current()


async def test_cancellation_is_not_captured():
    started = asyncio.Event()

    async def hang(cursor):
        started.set()
        await asyncio.Event().wait()

    it = PaginatedMediaIterator(hang)
    task = asyncio.create_task(it.advance())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert it.last_error() is None


def test_iterators_satisfy_protocol():
    assert isinstance(PaginatedMediaIterator(ScriptedPages([])), MediaIterator)
