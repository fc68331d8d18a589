"""
Pydantic model of a timeline entry: an image, a video, or an album of both.
"""

from collections.abc import Iterator
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class MediaType(str, Enum):
    """Media type tags as reported by Instagram."""

    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    ALBUM = "CAROUSEL_ALBUM"


class Media(BaseModel):
    """
    An image, video, or album (images and videos published together).

    Attributes:
        id: Opaque identifier, e.g. 17850307850323541 from the API or
            8c996aa535f0f7a322d4dbaef9cfd266 from an archive. Archives have
            no albums, so album IDs are generated locally.
        type: IMAGE, VIDEO, or CAROUSEL_ALBUM.
        caption: Caption text, e.g. "Still jumping".
        location: Where the file is copied from, either a URL or a path
            inside the zip archive.
        thumbnail_location: Where the video cover is copied from. Archives
            have no thumbnails.
        filename: Local name of the copied file, e.g. 202010_1784175265.mp4.
            Empty for albums that have no file of their own.
        thumbnail_filename: Local name of the video cover.
        permalink: Public URL of the post. Archives have no permalinks.
        taken_at: Publish date.
        children: Media published together in an album, one level deep.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str
    type: MediaType
    caption: str = ""
    location: str = ""
    thumbnail_location: str = ""
    filename: str = ""
    thumbnail_filename: str = ""
    permalink: str = ""
    taken_at: Optional[datetime] = None
    children: tuple["Media", ...] = ()

    @model_validator(mode="after")
    def validate_children(self) -> "Media":
        """Only albums have children, and albums never nest."""
        if self.children and self.type != MediaType.ALBUM:
            raise ValueError(f"{self.type.value} media {self.id} cannot have children")
        for child in self.children:
            if child.children:
                raise ValueError(f"album {self.id} contains nested album {child.id}")
        return self

    @property
    def is_album(self) -> bool:
        return self.type == MediaType.ALBUM

    def iter_files(self) -> Iterator["Media"]:
        """Yields this media followed by its children, in publish order."""
        yield self
        yield from self.children


Media.model_rebuild()
