"""
Activity Fetcher
Recent marketplace activity for one collection, filtered to one event kind
"""

from typing import Any, Dict, List

from config.constants import ACTIVITY_TYPE_LISTING, ACTIVITY_TYPE_SALE, DEFAULT_ACTIVITY_LIMIT
from core.magic_eden_client import MagicEdenClient
from core.models import EventKind
from utils.logger import get_logger
from utils.exceptions import TransientFetchError


logger = get_logger(__name__)


ACTIVITY_TYPES: Dict[EventKind, str] = {
    EventKind.LISTING: ACTIVITY_TYPE_LISTING,
    EventKind.SALE: ACTIVITY_TYPE_SALE,
}


class ActivityFetcher:
    """
    Rate limiting is the only failure that escapes: RateLimitError propagates
    so the scheduler can back off. Everything else is logged and becomes an
    empty batch.
    """

    def __init__(self, client: MagicEdenClient, limit: int = DEFAULT_ACTIVITY_LIMIT):
        self._client = client
        self.limit = limit

    async def fetch(self, symbol: str, kind: EventKind) -> List[Dict[str, Any]]:
        try:
            records = await self._client.get_activities(symbol, self.limit)
        except TransientFetchError as e:
            logger.warning(
                f"Activity fetch failed for {symbol} ({kind.label}), skipping this tick: {e}",
                extra={'symbol': symbol, 'kind': kind.value, 'status_code': e.status_code}
            )
            return []

        wanted = ACTIVITY_TYPES[kind]
        matched = [record for record in records if record.get('type') == wanted]
        logger.debug(
            f"Fetched {len(records)} activities for {symbol}, {len(matched)} {kind.label}"
        )
        return matched
