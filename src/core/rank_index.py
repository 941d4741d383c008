"""
Rank Index
Bulk HowRare ranks per collection: token mint -> rarity rank
"""

from typing import Callable, Dict, Optional

from core.howrare_client import HowRareClient
from core.field_extractors import coerce_rank, dig
from core.models import SupplySource
from core.supply_resolver import SupplyResolver
from utils.logger import get_logger
from utils.exceptions import APIError, RateLimitError


logger = get_logger(__name__)


class RankIndex:
    """
    Loaded once per collection. The count of ranked items is offered to the
    supply resolver, which keeps any supply it already has.
    """

    def __init__(
        self,
        client: HowRareClient,
        supply_resolver: SupplyResolver,
        slug_for: Callable[[str], str]
    ):
        self._client = client
        self._supply = supply_resolver
        self._slug_for = slug_for
        self._ranks: Dict[str, Dict[str, int]] = {}

    def is_loaded(self, symbol: str) -> bool:
        return symbol in self._ranks

    async def load_collection(self, symbol: str) -> Optional[int]:
        """
        Fetch and index every ranked item of a collection.

        Failures are not remembered; the next call tries again.

        Returns:
            Number of ranked items, or None when the service is unavailable
            or the document has no item list

        Raises:
            RateLimitError: HowRare rate limited the request
        """
        if symbol in self._ranks:
            return len(self._ranks[symbol])

        slug = self._slug_for(symbol)
        try:
            data = await self._client.get_collection(slug)
        except RateLimitError:
            raise
        except APIError as e:
            logger.warning(f"Rank index unavailable for {symbol} ({slug}): {e}")
            return None

        items = dig(data, 'result', 'data', 'items')
        if not isinstance(items, list):
            logger.warning(
                f"Rank index unavailable for {symbol} ({slug}): no item list in response",
                extra={'slug': slug, 'items_type': type(items).__name__}
            )
            return None

        ranks: Dict[str, int] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            mint = item.get('mint')
            rank = coerce_rank(item.get('rank'))
            if mint and rank is not None:
                ranks[str(mint)] = rank

        self._ranks[symbol] = ranks
        logger.info(f"Rank index loaded for {symbol}: {len(ranks)} items", extra={'slug': slug})

        if ranks:
            self._supply.offer_supply(symbol, len(ranks), SupplySource.ALT_RARITY_SERVICE)
        return len(ranks)

    def get_rank(self, symbol: str, mint: Optional[str]) -> Optional[int]:
        if not mint:
            return None
        return self._ranks.get(symbol, {}).get(mint)
