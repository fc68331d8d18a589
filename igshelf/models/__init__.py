"""
Data Models Layer.

This package contains the models that define the core data structures
used throughout the application: media, configuration and statistics.
"""

from .config import ShelfConfig
from .media import Media, MediaType
from .stats import DownloadStats

__all__ = ["DownloadStats", "Media", "MediaType", "ShelfConfig"]
