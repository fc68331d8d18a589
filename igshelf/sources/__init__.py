"""
Media Sources Layer.

Each source hands out a media iterator over a timeline and copies the files
it lists: the Instagram API or an Instagram zip archive.
"""

from .archive import ArchiveAlbumIterator, ArchiveSource
from .instagram import InstagramSource

__all__ = ["ArchiveAlbumIterator", "ArchiveSource", "InstagramSource"]
