"""
Async client for the Instagram Basic Display API.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from pydantic import ValidationError

from igshelf.exceptions import InstagramAPIError
from igshelf.models.config import DEFAULT_BASE_URL, DEFAULT_MAX_WORKERS

from .schemas import APIMedia, ErrorEnvelope, MediaListResponse

log = logging.getLogger(__name__)

MEDIA_FIELDS = (
    "id,caption,media_type,media_url,permalink,thumbnail_url,timestamp,"
    "children{id,media_type,media_url,thumbnail_url}"
)


class InstagramAPIClient:
    """
    Manages communication with the Instagram API.

    Features:
    - Connection pooling sized for the download workers
    - Decoding of the Graph API error envelope into InstagramAPIError
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """
        Initializes the API client.

        Args:
            access_token: Instagram user access token, e.g. IGQVJ...
            base_url: API domain, overridden when testing.
            max_workers: The number of concurrent workers, used to tune the connection pool.
        """
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.max_workers = max_workers
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_workers * 2,
                limit_per_host=self.max_workers,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "InstagramAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    @staticmethod
    def _decode_error(status: int, body: str) -> InstagramAPIError:
        """Builds an error from an unsuccessful response's envelope."""
        try:
            envelope = ErrorEnvelope.model_validate_json(body)
        except ValidationError as e:
            return InstagramAPIError(status=status, body=body, inner=_json_error(body, e))
        detail = envelope.error
        return InstagramAPIError(
            message=detail.message,
            type=detail.type,
            code=detail.code,
            fbtrace_id=detail.fbtrace_id,
            status=status,
            body=body,
        )

    async def api_call(self, path: str, **params: Any) -> Dict[str, Any]:
        """
        Makes an authenticated GET call to an API path (no leading or trailing
        slash) and returns the decoded JSON body.

        Raises:
            InstagramAPIError: If the server returned an error or the body
                could not be decoded.
        """
        session = await self._initialize_session()
        url = f"{self.base_url}/{path}"
        start_time = time.monotonic()

        async with session.get(url, params=params, headers=self._auth_headers()) as r:
            body = await r.text()
            duration_ms = (time.monotonic() - start_time) * 1000
            log.debug(f"GET {path} -> {r.status} in {duration_ms:.0f} ms")

            if r.status != 200:
                raise self._decode_error(r.status, body)
            try:
                return json.loads(body)
            except json.JSONDecodeError as e:
                raise InstagramAPIError(status=r.status, body=body, inner=e) from e

    async def fetch_media_page(
        self, user_id: str, after: Optional[str] = None
    ) -> Tuple[List[APIMedia], str]:
        """
        Fetches one page of the user's media.

        Returns:
            The media on the page and the cursor of the next page, which is
            empty on the last page.
        """
        params = {"fields": MEDIA_FIELDS}
        if after:
            params["after"] = after

        payload = await self.api_call(f"{user_id}/media", **params)
        try:
            page = MediaListResponse.model_validate(payload)
        except ValidationError as e:
            raise InstagramAPIError(body=json.dumps(payload), inner=e) from e

        # Without a link to the next page this is the last one.
        next_cursor = page.paging.cursors.after if page.paging.next else ""
        log.debug(f"Fetched {len(page.data)} media of user '{user_id}'.")
        return page.data, next_cursor

    async def fetch_bytes(self, url: str) -> bytes:
        """Downloads a file, e.g. a photo from Instagram's CDN."""
        session = await self._initialize_session()
        async with session.get(url, allow_redirects=True) as r:
            r.raise_for_status()
            return await r.read()


def _json_error(body: str, fallback: Exception) -> Exception:
    """Prefers the plain JSON syntax error over the schema error, if any."""
    try:
        json.loads(body)
    except json.JSONDecodeError as e:
        return e
    return fallback
