"""
Pydantic schemas for Instagram Basic Display API responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# Instagram timestamps are ISO 8601 with a numeric offset, e.g. 2019-11-10T12:20:51+0000.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class APIMedia(BaseModel):
    """An image, video, or album as returned by the media endpoint."""

    # e.g. 17850307850323541
    id: str
    # IMAGE, VIDEO, or CAROUSEL_ALBUM
    media_type: str = ""
    # Not returned for media in albums.
    caption: str = ""
    media_url: str = ""
    # Omitted if the media contains copyrighted material.
    permalink: str = ""
    # Only available on VIDEO media.
    thumbnail_url: str = ""
    timestamp: Optional[datetime] = None
    children: list["APIMedia"] = Field(default_factory=list)

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v):
        if isinstance(v, str):
            return datetime.strptime(v, TIMESTAMP_FORMAT)
        return v

    @field_validator("children", mode="before")
    @classmethod
    def unwrap_children(cls, v):
        """Children come wrapped in their own page: {"data": [...]}."""
        if isinstance(v, dict):
            return v.get("data") or []
        return v or []


class Cursors(BaseModel):
    before: str = ""
    after: str = ""


class Paging(BaseModel):
    cursors: Cursors = Field(default_factory=Cursors)
    next: str = ""


class MediaListResponse(BaseModel):
    """A page of media as retrieved from the {user}/media endpoint."""

    data: list[APIMedia] = Field(default_factory=list)
    paging: Paging = Field(default_factory=Paging)


class ErrorEnvelope(BaseModel):
    """The body of an unsuccessful call: {"error": {...}}."""

    class Detail(BaseModel):
        message: str = ""
        type: str = ""
        code: int = 0
        fbtrace_id: str = ""

    error: Detail


APIMedia.model_rebuild()
