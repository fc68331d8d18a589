"""
Core application engine for copying a timeline.

This package contains the primary logic. Media sources hand out a
`MediaIterator`, and the `DownloadManager` drains it, stores the timeline
and copies every media file with a bounded pool of workers.
"""

from .download_manager import DownloadManager, RunState
from .iterator import (
    IteratorState,
    MediaIterator,
    SourceClient,
    StickyState,
    TimelineStore,
    collect,
)
from .pagination import MediaPage, PaginatedMediaIterator

__all__ = [
    "DownloadManager",
    "IteratorState",
    "MediaIterator",
    "MediaPage",
    "PaginatedMediaIterator",
    "RunState",
    "SourceClient",
    "StickyState",
    "TimelineStore",
    "collect",
]
