"""
Provides access to a user's timeline via the Instagram Basic Display API.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from igshelf.api.client import InstagramAPIClient
from igshelf.api.schemas import APIMedia
from igshelf.core.pagination import MediaPage, PaginatedMediaIterator
from igshelf.exceptions import ItemFetchError
from igshelf.models.media import Media, MediaType
from igshelf.utils.path import api_filenames

log = logging.getLogger(__name__)


def _media_type(raw_type: str) -> MediaType:
    try:
        return MediaType(raw_type)
    except ValueError:
        log.warning(f"[yellow]Unknown media type '{raw_type}', treating it as an image.[/yellow]")
        return MediaType.IMAGE


def normalize_api_media(raw: APIMedia) -> Media:
    """
    Converts an API media into a Media with local file names assigned.

    Album children are named after their parent's publish date and inherit
    its caption. They never get a thumbnail.
    """
    filename, thumbnail_filename = api_filenames(raw.id, raw.media_type, raw.timestamp)

    children = []
    for c in raw.children:
        child_filename, _ = api_filenames(
            c.id, c.media_type, raw.timestamp, with_thumbnail=False
        )
        children.append(
            Media(
                id=c.id,
                type=_media_type(c.media_type),
                caption=raw.caption,
                location=c.media_url,
                filename=child_filename,
                taken_at=raw.timestamp,
            )
        )

    return Media(
        id=raw.id,
        type=_media_type(raw.media_type),
        caption=raw.caption,
        location=raw.media_url,
        thumbnail_location=raw.thumbnail_url if thumbnail_filename else "",
        filename=filename,
        thumbnail_filename=thumbnail_filename,
        permalink=raw.permalink,
        taken_at=raw.timestamp,
        children=tuple(children),
    )


class InstagramSource:
    """A media source backed by the Instagram Basic Display API."""

    def __init__(self, client: InstagramAPIClient, user_id: str = "me"):
        """
        Args:
            client: The API client.
            user_id: Whose timeline to copy. In most cases it is "me", but an
                explicit ID such as 17843400535183040 works too.
        """
        self.client = client
        self.user_id = user_id

    async def _fetch_page(self, cursor: Optional[str]) -> MediaPage:
        raw_items, next_cursor = await self.client.fetch_media_page(self.user_id, cursor)
        return MediaPage(
            items=[normalize_api_media(raw) for raw in raw_items],
            next_cursor=next_cursor,
        )

    def list(self) -> PaginatedMediaIterator:
        """
        Returns an iterator over the user's timeline, newest first.
        It relies on API pagination to fetch batches of media.
        """
        return PaginatedMediaIterator(self._fetch_page)

    async def download(self, media: Media) -> tuple[bytes, Optional[bytes]]:
        """Copies the media file and its thumbnail (video cover) if it's available."""
        try:
            content = await self.client.fetch_bytes(media.location)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ItemFetchError(f"failed to download content of {media.id}: {e}") from e

        if not media.thumbnail_location:
            return content, None

        try:
            thumbnail = await self.client.fetch_bytes(media.thumbnail_location)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ItemFetchError(f"failed to download thumbnail of {media.id}: {e}") from e
        return content, thumbnail
