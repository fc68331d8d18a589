"""
Instagram API Layer.

This package handles all communication with the Instagram Basic Display API.
"""

from .client import InstagramAPIClient
from .schemas import APIMedia, MediaListResponse

__all__ = ["APIMedia", "InstagramAPIClient", "MediaListResponse"]
