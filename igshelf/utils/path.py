"""
Utilities for naming the files a timeline is copied into.
"""

import posixpath
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from pathvalidate import sanitize_filename

from igshelf.models.media import MediaType

IMAGE_EXT = ".jpg"
VIDEO_EXT = ".mp4"
THUMBNAIL_SUFFIX = "_cover.jpg"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def month_prefix(taken_at: Optional[datetime]) -> str:
    """
    Returns the year/month prefix, e.g. "202010_", which keeps copied files
    easy to explore. Media without a date gets no prefix.
    """
    if taken_at is None:
        return ""
    return taken_at.strftime("%Y%m_")


def split_archive_path(path: str) -> Tuple[str, str]:
    """
    Splits an archive member path such as
    videos/202010/8c996aa535f0f7a322d4dbaef9cfd266.mp4 into its ID
    (base name without extension) and its base name.
    """
    basename = posixpath.basename(path)
    media_id, _ = posixpath.splitext(basename)
    return media_id, basename


def archive_filename(basename: str, taken_at: Optional[datetime]) -> str:
    """Local name of a file extracted from an archive."""
    return sanitize_filename(month_prefix(taken_at) + basename)


def api_filenames(
    media_id: str,
    media_type: str,
    taken_at: Optional[datetime],
    with_thumbnail: bool = True,
) -> Tuple[str, str]:
    """
    Local names of a media file and its thumbnail fetched from the API.
    The extension follows the media type; only videos have a thumbnail.
    Unknown types are not downloaded, so both names are empty.
    """
    stem = sanitize_filename(month_prefix(taken_at) + media_id)
    if media_type in (MediaType.IMAGE.value, MediaType.ALBUM.value):
        return stem + IMAGE_EXT, ""
    if media_type == MediaType.VIDEO.value:
        thumbnail = stem + THUMBNAIL_SUFFIX if with_thumbnail else ""
        return stem + VIDEO_EXT, thumbnail
    return "", ""
