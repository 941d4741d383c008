"""
Tracker Engine

Owns every piece of shared mutable state (dedup sets, supply cache, rank
index, backoff, rotation index) and the lifecycle around them:

    startup  -> supply resolution, rank preload, index current activity,
                optional preview
    run      -> round-robin scheduler + periodic dedup clear
    stop     -> stop loops, close HTTP sessions

Two engines never share state, so tests can build as many as they like.
"""

import asyncio
import time
from typing import Callable, Dict, Optional

from config.settings import TrackerSettings, get_settings
from core.activity_fetcher import ActivityFetcher
from core.backoff_controller import BackoffController
from core.commands import CommandHandler
from core.dedup_cache import DedupCache
from core.howrare_client import HowRareClient
from core.magic_eden_client import MagicEdenClient
from core.models import EventKind, TrackedCollection, TrackedCollections
from core.notifier import ChatSink, Notifier
from core.pipeline import IngestionPipeline
from core.rank_index import RankIndex
from core.scheduler import RoundRobinScheduler
from core.supply_resolver import SupplyResolver
from core.track_store import JsonTrackStore
from utils.logger import get_logger
from utils.exceptions import RateLimitError, PersistenceError


logger = get_logger(__name__)


class TrackerEngine:

    def __init__(
        self,
        sink: ChatSink,
        settings_provider: Callable[[], TrackerSettings] = get_settings,
        marketplace: Optional[MagicEdenClient] = None,
        rarity_service: Optional[HowRareClient] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._settings_provider = settings_provider
        settings = settings_provider()

        self.marketplace = marketplace or MagicEdenClient()
        self.rarity_service = rarity_service or HowRareClient()
        self.notifier = Notifier(sink)

        self.dedup = DedupCache()
        self.backoff = BackoffController(
            tick_interval_ms=settings.round_robin_tick_ms,
            backoff_ms=settings.backoff_ms,
            clock=clock
        )
        self.supply = SupplyResolver(
            self.marketplace,
            self.rarity_service,
            overrides=lambda: self.settings.supply_overrides,
            slug_for=self.slug_for
        )
        self.rank_index = RankIndex(self.rarity_service, self.supply, self.slug_for)
        self.fetcher = ActivityFetcher(self.marketplace, limit=settings.activity_limit)
        self.lock = asyncio.Lock()
        self.pipeline = IngestionPipeline(
            self.fetcher,
            self.dedup,
            self.supply,
            self.rank_index,
            self.marketplace,
            self.notifier,
            lock=self.lock,
            fetch_token_metadata=settings.fetch_token_metadata
        )
        self.scheduler = RoundRobinScheduler(
            self.load_tracks,
            self.pipeline,
            self.backoff,
            notifier=self.notifier
        )
        self.commands = CommandHandler(
            store_provider=self.track_store,
            dedup=self.dedup,
            sink=sink,
            on_track_added=self.on_track_added,
            owner_id=lambda: self.settings.owner_id
        )

        self._stop_event = asyncio.Event()
        self._tasks = []

    @property
    def settings(self) -> TrackerSettings:
        return self._settings_provider()

    def slug_for(self, symbol: str) -> str:
        return self.settings.howrare_slugs.get(symbol, symbol)

    def track_store(self) -> JsonTrackStore:
        return JsonTrackStore(self.settings.tracks_path)

    def load_tracks(self) -> TrackedCollections:
        """
        Raises:
            PersistenceError: track list unreadable
        """
        return self.track_store().load()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def startup(self) -> None:
        """Warm caches and index current activity so old events never alert"""
        await self.marketplace.initialize()
        await self.rarity_service.initialize()

        try:
            tracks = self.load_tracks()
        except PersistenceError as e:
            logger.warning(f"Track list unreadable at startup, starting idle: {e}")
            return

        for symbol in tracks.symbols():
            await self._prepare_collection(symbol)

        for task in tracks.tasks():
            await self._index_task(task)

        logger.info(
            f"Startup complete - {len(tracks.listings)} listing tracks, "
            f"{len(tracks.sales)} sales tracks",
            extra={'seen': {k.value: v for k, v in self.dedup.sizes().items()}}
        )

        if self.settings.startup_preview and tracks.listings:
            first = next(iter(tracks.listings.values()))
            try:
                shown = await self.pipeline.preview(
                    first,
                    delete_after=self.settings.test_message_delete_seconds
                )
                logger.info(f"Startup preview posted {shown} listing(s) for {first.symbol}")
            except RateLimitError:
                self.backoff.on_rate_limited()

    async def on_track_added(self, track: TrackedCollection) -> None:
        """Prepare and index a new track before the scheduler reaches it"""
        await self._prepare_collection(track.symbol)
        await self._index_task(track)

    async def _prepare_collection(self, symbol: str) -> None:
        async with self.lock:
            try:
                await self.supply.resolve(symbol)
                if self.settings.preload_rank_index:
                    await self.rank_index.load_collection(symbol)
            except RateLimitError as e:
                logger.warning(f"Rate limited while preparing {symbol}: {e}")
                self.backoff.on_rate_limited()

    async def _index_task(self, task: TrackedCollection) -> None:
        try:
            await self.pipeline.index(task)
        except RateLimitError:
            self.backoff.on_rate_limited()

    def clear_caches(self) -> Dict[EventKind, int]:
        prior = self.dedup.clear()
        logger.info(
            f"Cleared seen caches (listings: {prior[EventKind.LISTING]}, "
            f"sales: {prior[EventKind.SALE]})"
        )
        return prior

    async def _clear_loop(self, interval_sec: Optional[float] = None) -> None:
        """Clear both seen sets every interval until stop(); None re-reads settings each round"""
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=interval_sec or self.settings.cache_clear_interval_sec
                )
            except asyncio.TimeoutError:
                self.clear_caches()

    async def run(self) -> None:
        """Start background loops; returns once they are scheduled"""
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self.scheduler.run(), name='round-robin-scheduler'),
            asyncio.create_task(self._clear_loop(), name='dedup-clear'),
        ]

    async def stop(self) -> None:
        logger.info("Stopping tracker engine")
        self._stop_event.set()
        await self.scheduler.stop()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.marketplace.close()
        await self.rarity_service.close()
