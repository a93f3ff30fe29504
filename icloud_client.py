import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from errors import UpstreamError, UpstreamTimeoutError


logger = logging.getLogger(__name__)


class SharedStreamsClient:
    """Client for the iCloud shared streams (shared album) web API"""

    def __init__(
        self,
        host: str = "p107-sharedstreams.icloud.com",
        timeout: float = 10,
        scheme: str = "https",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host
        self.scheme = scheme
        self.timeout = timeout
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    def base_url(self, album_id: str) -> str:
        # The album id comes straight from user input
        return f"{self.scheme}://{self.host}/{quote(album_id, safe='')}/sharedstreams"

    async def get_stream(self, album_id: str) -> Dict[str, Any]:
        """Fetch the photo list (guids and derivative checksums) of an album"""
        url = f"{self.base_url(album_id)}/webstream"
        return await self._post_json(url, {"streamGuid": album_id})

    async def get_asset_urls(self, album_id: str, photo_guids: List[str]) -> Dict[str, Any]:
        """Fetch download locations for a batch of photo guids, keyed by checksum"""
        url = f"{self.base_url(album_id)}/webasseturls"
        return await self._post_json(url, {"photoGuids": photo_guids})

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        # No retries: failures surface to the caller right away.
        # httpx timeouts apply per phase; wait_for bounds the whole call.
        try:
            response = await asyncio.wait_for(
                self.client.post(url, json=payload), self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error("Upstream request timed out: %s (%s)", url, e)
            raise UpstreamTimeoutError() from e
        except httpx.RequestError as e:
            logger.error("Upstream request failed: %s (%s)", url, e)
            raise UpstreamError() from e

        if not response.is_success:
            logger.error(
                "Upstream fetch failed: %s %s %s",
                url,
                response.status_code,
                response.reason_phrase,
            )
            raise UpstreamError()

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Upstream returned invalid JSON: %s", url)
            raise UpstreamError() from e

        if not isinstance(data, dict):
            logger.error("Upstream returned unexpected payload type: %s", type(data).__name__)
            raise UpstreamError()

        return data
