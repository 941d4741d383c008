"""
HowRare Client
Collection documents from the HowRare v0.1 API: supply and per-item ranks
"""

from typing import Any, Dict, Optional

import aiohttp

from config.constants import HOWRARE_API_URL
from core.field_extractors import dig
from core.http_client import JsonApiClient
from utils.exceptions import InvalidResponseError


class HowRareClient(JsonApiClient):
    """
    Collection documents carrying an item list are kept per slug, so the
    supply fallback and the rank index share one download.
    """

    service_name = 'HowRare'

    def __init__(
        self,
        base_url: str = HOWRARE_API_URL,
        session: Optional[aiohttp.ClientSession] = None,
        **kwargs
    ):
        super().__init__(base_url, session=session, **kwargs)
        self._collections: Dict[str, Dict[str, Any]] = {}

    async def get_collection(self, slug: str) -> Dict[str, Any]:
        """
        Raw collection document. Interesting paths:
            result.collection.supply
            result.data.items[] -> {mint, rank, ...}
        """
        cached = self._collections.get(slug)
        if cached is not None:
            return cached

        data = await self._get_json(f"/collections/{slug}")
        if not isinstance(data, dict):
            raise InvalidResponseError(f"HowRare collection {slug} is not an object")
        if isinstance(dig(data, 'result', 'data', 'items'), list):
            self._collections[slug] = data
        return data
