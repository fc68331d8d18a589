"""
Dataclass for tracking download session statistics.
"""

from dataclasses import dataclass


@dataclass
class DownloadStats:
    """Tracks what happened to every media file during one download run."""

    media_total: int = 0
    media_downloaded: int = 0
    media_skipped_exists: int = 0
    media_failed: int = 0
    thumbnails_downloaded: int = 0
    bytes_written: int = 0

    @property
    def media_processed(self) -> int:
        return self.media_downloaded + self.media_skipped_exists + self.media_failed
