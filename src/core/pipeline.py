"""
Ingestion Pipeline

One run per scheduled task:

    fetch -> dedup check -> price -> price ceiling -> rank & tier
          -> rarity floor -> mark seen -> token metadata -> alert

Records filtered out by price or rarity are NOT marked seen, so a later
price drop or a newly loaded rank can still alert on them.

Every run (poll, index or preview) holds the engine lock, so dedup
check-then-insert and supply caching never interleave across runs.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

from config.constants import UNKNOWN_NFT_NAME, STARTUP_PREVIEW_COUNT
from core.activity_fetcher import ActivityFetcher
from core.dedup_cache import DedupCache
from core.magic_eden_client import MagicEdenClient
from core.models import MarketplaceEvent, TrackedCollection
from core.notifier import Notifier, build_alert
from core.rank_index import RankIndex
from core.rarity import RarityTier, classify
from core.supply_resolver import SupplyResolver
from core.field_extractors import (
    METADATA_IMAGE_EXTRACTORS,
    block_time,
    build_link,
    compute_event_id,
    extract_image,
    extract_name,
    extract_rank,
    extract_token_id,
    first_value,
    parse_price,
)
from utils.logger import get_logger


logger = get_logger(__name__)


@dataclass
class Candidate:
    """A record that passed every filter, before metadata enrichment"""
    event_id: str
    record: Dict[str, Any]
    price_sol: float
    rank: Optional[int]
    tier: RarityTier


@dataclass
class RunStats:
    fetched: int = 0
    duplicates: int = 0
    filtered: int = 0
    alerted: int = 0
    failed: int = 0


class IngestionPipeline:

    def __init__(
        self,
        fetcher: ActivityFetcher,
        dedup: DedupCache,
        supply: SupplyResolver,
        rank_index: RankIndex,
        marketplace: MagicEdenClient,
        notifier: Notifier,
        lock: Optional[asyncio.Lock] = None,
        fetch_token_metadata: bool = True
    ):
        self._fetcher = fetcher
        self._dedup = dedup
        self._supply = supply
        self._rank_index = rank_index
        self._marketplace = marketplace
        self._notifier = notifier
        self._lock = lock or asyncio.Lock()
        self.fetch_token_metadata = fetch_token_metadata

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    async def process(self, task: TrackedCollection) -> RunStats:
        """
        Poll one collection and alert on new, filter-passing events.

        Raises:
            RateLimitError: the activity fetch was rate limited
        """
        async with self._lock:
            stats = RunStats()
            records = await self._fetcher.fetch(task.symbol, task.kind)
            stats.fetched = len(records)
            if not records:
                return stats

            supply = (await self._supply.resolve(task.symbol)).supply

            for record in records:
                event_id = compute_event_id(record)
                if self._dedup.contains(task.kind, event_id):
                    stats.duplicates += 1
                    continue

                candidate = self._evaluate(record, event_id, task, supply)
                if candidate is None:
                    stats.filtered += 1
                    continue

                self._dedup.add(task.kind, event_id)
                if await self._emit(candidate, task, supply):
                    stats.alerted += 1
                else:
                    stats.failed += 1

            if stats.alerted or stats.failed:
                logger.info(
                    f"{task.symbol} ({task.kind.label}): {stats.alerted} alerted, "
                    f"{stats.filtered} filtered, {stats.duplicates} already seen"
                )
            return stats

    async def index(self, task: TrackedCollection) -> int:
        """
        Mark everything currently visible as seen without alerting.

        Returns:
            Number of newly indexed ids

        Raises:
            RateLimitError: the activity fetch was rate limited
        """
        async with self._lock:
            records = await self._fetcher.fetch(task.symbol, task.kind)
            added = self._dedup.add_many(task.kind, (compute_event_id(r) for r in records))
            logger.info(
                f"Indexed {added} existing {task.kind.label} for {task.symbol}",
                extra={'symbol': task.symbol, 'kind': task.kind.value, 'indexed': added}
            )
            return added

    async def preview(
        self,
        task: TrackedCollection,
        delete_after: float,
        count: int = STARTUP_PREVIEW_COUNT
    ) -> int:
        """
        Post the newest filter-passing events as short-lived messages.
        Dedup is neither consulted nor updated.

        Raises:
            RateLimitError: the activity fetch was rate limited
        """
        async with self._lock:
            records = await self._fetcher.fetch(task.symbol, task.kind)
            records = sorted(records, key=block_time, reverse=True)
            supply = (await self._supply.resolve(task.symbol)).supply

            shown = 0
            for record in records:
                if shown >= count:
                    break
                candidate = self._evaluate(record, compute_event_id(record), task, supply)
                if candidate is None:
                    continue
                if await self._emit(candidate, task, supply, delete_after=delete_after):
                    shown += 1
            return shown

    def _evaluate(
        self,
        record: Dict[str, Any],
        event_id: str,
        task: TrackedCollection,
        supply: Optional[int]
    ) -> Optional[Candidate]:
        price = parse_price(record)
        if price is None:
            logger.debug(f"Skipping {event_id} in {task.symbol}: no usable price")
            return None

        ceiling = task.price_ceiling
        if ceiling is not None and price > ceiling:
            logger.debug(f"Skipping {event_id} in {task.symbol}: {price} > {ceiling} SOL")
            return None

        mint = extract_token_id(record)
        rank = self._rank_index.get_rank(task.symbol, mint)
        if rank is None:
            rank = extract_rank(record)
        tier = classify(rank, supply)

        if not tier.is_at_least(task.min_rarity):
            logger.debug(
                f"Skipping {event_id} in {task.symbol}: {tier.value} below {task.min_rarity.value}"
            )
            return None

        return Candidate(event_id=event_id, record=record, price_sol=price, rank=rank, tier=tier)

    async def _emit(
        self,
        candidate: Candidate,
        task: TrackedCollection,
        supply: Optional[int],
        delete_after: Optional[float] = None
    ) -> bool:
        event = await self._enrich(candidate, task)
        payload = build_alert(event, task, supply)
        return await self._notifier.deliver(event, payload, delete_after=delete_after)

    async def _enrich(self, candidate: Candidate, task: TrackedCollection) -> MarketplaceEvent:
        record = candidate.record
        mint = extract_token_id(record)

        metadata: Dict[str, Any] = {}
        if self.fetch_token_metadata and mint:
            metadata = await self._marketplace.get_token_metadata(mint) or {}

        name = metadata.get('name') or extract_name(record)
        if not name:
            logger.warning(f"Record {candidate.event_id} in {task.symbol} has no name fields")
            name = UNKNOWN_NFT_NAME

        image = extract_image(record) or first_value(metadata, METADATA_IMAGE_EXTRACTORS)

        return MarketplaceEvent(
            id=candidate.event_id,
            token_id=mint or candidate.event_id,
            kind=task.kind,
            symbol=task.symbol,
            price_sol=candidate.price_sol,
            name=str(name),
            link=build_link(record),
            rarity_rank=candidate.rank,
            image_url=image if isinstance(image, str) else None,
            block_time=block_time(record) or None,
        )
