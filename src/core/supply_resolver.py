"""
Supply Resolver

Total item count per collection, the denominator of every rarity percentile.

Resolution chain, each step only when the previous one produced no valid
number (positive, finite, not a boolean):
    1. Magic Eden collection stats: stats.supply, then top-level supply
    2. HowRare collection: result.collection.supply
    3. Operator override table (settings.supply_overrides)

The first answer, including "unresolved", is cached for the process lifetime.
A rate-limited lookup is not an answer: RateLimitError propagates and
nothing is cached, so the chain runs again once the pause is over.
"""

import math
from typing import Any, Callable, Dict, Mapping, Optional

from core.magic_eden_client import MagicEdenClient
from core.howrare_client import HowRareClient
from core.field_extractors import dig
from core.models import SupplyRecord, SupplySource
from utils.logger import get_logger
from utils.exceptions import APIError, RateLimitError


logger = get_logger(__name__)


def valid_supply(value: Any) -> Optional[int]:
    """Positive finite number as int; None for bools, strings and junk."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(value)


class SupplyResolver:

    def __init__(
        self,
        marketplace: MagicEdenClient,
        rarity_service: HowRareClient,
        overrides: Callable[[], Mapping[str, int]],
        slug_for: Callable[[str], str]
    ):
        """
        Args:
            marketplace: Magic Eden client
            rarity_service: HowRare client
            overrides: Returns the current override table (re-read per call,
                so a settings reload applies to collections not yet cached)
            slug_for: Magic Eden symbol -> HowRare slug
        """
        self._marketplace = marketplace
        self._rarity_service = rarity_service
        self._overrides = overrides
        self._slug_for = slug_for
        self._cache: Dict[str, SupplyRecord] = {}

    def get_cached(self, symbol: str) -> Optional[SupplyRecord]:
        return self._cache.get(symbol)

    def supply_for(self, symbol: str) -> Optional[int]:
        record = self._cache.get(symbol)
        return record.supply if record else None

    def offer_supply(self, symbol: str, supply: Any, source: SupplySource) -> bool:
        """
        Cache a supply learned elsewhere (e.g. the rank index item count).

        A cached number is never overwritten; only a missing or unresolved
        entry is filled.

        Returns:
            True if the offer was stored
        """
        value = valid_supply(supply)
        if value is None:
            return False
        cached = self._cache.get(symbol)
        if cached is not None and cached.supply is not None:
            return False
        self._cache[symbol] = SupplyRecord(symbol, value, source)
        logger.info(f"Supply for {symbol}: {value} (from {source.value})")
        return True

    async def resolve(self, symbol: str) -> SupplyRecord:
        """
        Cached supply for `symbol`, walking the chain on first request.

        Raises:
            RateLimitError: a lookup was rate limited before the chain finished
        """
        cached = self._cache.get(symbol)
        if cached is not None:
            return cached

        record = await self._resolve_uncached(symbol)
        self._cache[symbol] = record
        return record

    async def _resolve_uncached(self, symbol: str) -> SupplyRecord:
        supply = await self._from_marketplace(symbol)
        if supply is not None:
            logger.info(f"Supply for {symbol}: {supply} (from marketplace)")
            return SupplyRecord(symbol, supply, SupplySource.MARKETPLACE)

        supply = await self._from_rarity_service(symbol)
        if supply is not None:
            logger.info(f"Supply for {symbol}: {supply} (from alt rarity service)")
            return SupplyRecord(symbol, supply, SupplySource.ALT_RARITY_SERVICE)

        logger.warning(
            f"Both marketplace and alt rarity service failed to provide supply for {symbol}, "
            f"falling back to local override",
            extra={'symbol': symbol}
        )

        supply = valid_supply(self._overrides().get(symbol))
        if supply is not None:
            logger.warning(f"Using supply override for {symbol}: {supply}")
            return SupplyRecord(symbol, supply, SupplySource.LOCAL_OVERRIDE)

        logger.warning(f"No supply override for {symbol}; rarity tiers will be unavailable")
        return SupplyRecord(symbol, None, SupplySource.UNRESOLVED)

    async def _from_marketplace(self, symbol: str) -> Optional[int]:
        try:
            data = await self._marketplace.get_collection_stats(symbol)
        except RateLimitError:
            raise
        except APIError as e:
            logger.debug(f"Marketplace supply lookup failed for {symbol}: {e}")
            return None
        supply = valid_supply(dig(data, 'stats', 'supply'))
        if supply is None:
            supply = valid_supply(dig(data, 'supply'))
        return supply

    async def _from_rarity_service(self, symbol: str) -> Optional[int]:
        slug = self._slug_for(symbol)
        try:
            data = await self._rarity_service.get_collection(slug)
        except RateLimitError:
            raise
        except APIError as e:
            logger.debug(f"Alt rarity service supply lookup failed for {symbol} ({slug}): {e}")
            return None
        return valid_supply(dig(data, 'result', 'collection', 'supply'))
