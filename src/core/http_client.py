"""
Shared JSON-over-HTTP client
Owns the aiohttp session and maps HTTP outcomes onto the tracker's error types
"""

from typing import Any, Dict, Optional

import asyncio
import json
import aiohttp

from config.constants import API_TIMEOUT_SEC, HTTP_USER_AGENT
from utils.logger import get_logger
from utils.exceptions import (
    RateLimitError,
    TransientFetchError,
    InvalidResponseError,
)


logger = get_logger(__name__)


class JsonApiClient:
    """
    Base for read-only JSON APIs.

    Status mapping:
        200        -> parsed JSON body
        429        -> RateLimitError
        other      -> TransientFetchError
        bad body   -> InvalidResponseError
        network    -> TransientFetchError
    """

    service_name = 'api'

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_sec: float = API_TIMEOUT_SEC
    ):
        """
        Args:
            base_url: API root, without trailing slash
            session: Pre-built session (shared or fake); not closed by this client
            timeout_sec: Total request timeout
        """
        self._base_url = base_url.rstrip('/')
        self._session = session
        self._owns_session = session is None
        self._timeout_sec = timeout_sec

    async def initialize(self) -> None:
        """Create the HTTP session if one was not injected"""
        if self._session is not None:
            return

        connector = aiohttp.TCPConnector(
            limit=20,
            limit_per_host=10,
            ttl_dns_cache=300,
            enable_cleanup_closed=True
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self._timeout_sec),
            headers={
                "User-Agent": HTTP_USER_AGENT,
                "Accept": "application/json"
            }
        )
        self._owns_session = True
        logger.info(f"{self.service_name} client initialized - base: {self._base_url}")

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info(f"Closed {self.service_name} aiohttp session")
        self._session = None

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET `path` and return the decoded JSON body.

        Raises:
            RateLimitError: HTTP 429
            TransientFetchError: any other non-200 status, network error or timeout
            InvalidResponseError: body is not JSON
        """
        if self._session is None:
            await self.initialize()

        url = f"{self._base_url}{path}"
        try:
            async with self._session.get(url, params=params) as response:
                if response.status == 429:
                    retry_after = response.headers.get('Retry-After')
                    logger.warning(
                        f"{self.service_name} rate limit exceeded - url: {url}, "
                        f"retry after: {retry_after}"
                    )
                    raise RateLimitError(
                        f"{self.service_name} rate limited: {path}",
                        retry_after=retry_after
                    )

                if response.status != 200:
                    error_text = await response.text()
                    raise TransientFetchError(
                        f"{self.service_name} returned HTTP {response.status} for {path}",
                        status_code=response.status,
                        response_data=error_text[:200],
                        error_code=f"HTTP_{response.status}"
                    )

                try:
                    return await response.json(content_type=None)
                except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError) as e:
                    raise InvalidResponseError(
                        f"{self.service_name} returned a non-JSON body for {path}",
                        status_code=response.status,
                        original_error=e
                    )

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchError(
                f"{self.service_name} request failed for {path}: {type(e).__name__}",
                original_error=e
            )
