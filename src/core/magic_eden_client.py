"""
Magic Eden Client
Activities, collection stats and token metadata from the Magic Eden v2 API
"""

from typing import Any, Dict, List, Optional

import aiohttp

from config.constants import MAGIC_EDEN_API_URL, DEFAULT_ACTIVITY_LIMIT
from core.http_client import JsonApiClient
from utils.logger import get_logger
from utils.exceptions import APIError, InvalidResponseError


logger = get_logger(__name__)


class MagicEdenClient(JsonApiClient):
    """Thin wrapper over the public Magic Eden endpoints the tracker uses"""

    service_name = 'Magic Eden'

    def __init__(
        self,
        base_url: str = MAGIC_EDEN_API_URL,
        session: Optional[aiohttp.ClientSession] = None,
        **kwargs
    ):
        super().__init__(base_url, session=session, **kwargs)

    async def get_activities(
        self,
        symbol: str,
        limit: int = DEFAULT_ACTIVITY_LIMIT
    ) -> List[Dict[str, Any]]:
        """
        Most recent activity records for a collection, newest first.

        Raises:
            RateLimitError: HTTP 429
            TransientFetchError: any other failure
            InvalidResponseError: body is not an array
        """
        data = await self._get_json(
            f"/collections/{symbol}/activities",
            params={'offset': 0, 'limit': limit}
        )
        if not isinstance(data, list):
            raise InvalidResponseError(
                f"Activities for {symbol} is not an array",
                response_data=str(data)[:200]
            )
        return [record for record in data if isinstance(record, dict)]

    async def get_collection_stats(self, symbol: str) -> Dict[str, Any]:
        """Collection document (`stats.supply` / `supply` carry the item count)"""
        data = await self._get_json(f"/collections/{symbol}")
        if not isinstance(data, dict):
            raise InvalidResponseError(f"Collection stats for {symbol} is not an object")
        return data

    async def get_token_metadata(self, mint: str) -> Optional[Dict[str, Any]]:
        """
        Token document (`name`, `image`, `img`).

        Returns:
            Parsed document, or None on any failure
        """
        if not mint:
            return None
        try:
            data = await self._get_json(f"/tokens/{mint}")
        except APIError as e:
            logger.warning(f"Token metadata unavailable for {mint}: {e}")
            return None
        return data if isinstance(data, dict) else None
