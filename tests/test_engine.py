"""
Tests for Tracker Engine lifecycle
"""

import asyncio
import json
import pytest

from core.models import EventKind, SupplySource
from utils.exceptions import RateLimitError

from conftest import activity


def write_tracks(path, data):
    with open(path, 'w') as f:
        json.dump(data, f)


@pytest.mark.asyncio
class TestTrackerEngine:

    async def test_startup_indexes_every_task(self, engine, settings, marketplace, sink):
        write_tracks(settings.tracks_path, {
            'collections': {'foo': {'max_price': 2}},
            'sales_collections': {'foo': {'max_price': 2}},
        })
        marketplace.get_activities.return_value = [
            activity('mintA', 1.0),
            activity('mintB', 1.0, kind='buyNow'),
        ]

        await engine.startup()

        assert engine.dedup.contains(EventKind.LISTING, 'mintA')
        assert engine.dedup.contains(EventKind.SALE, 'mintB')
        assert engine.supply.get_cached('foo').source is SupplySource.MARKETPLACE
        assert sink.sent == []

        await engine.scheduler.tick()
        await engine.scheduler.tick()
        assert sink.sent == []

    async def test_startup_rank_preload_uses_slug(self, engine, settings, rarity_service):
        write_tracks(settings.tracks_path, {'collections': {'great__goats': {'max_price': 1}}})
        rarity_service.get_collection.return_value = {
            'result': {'data': {'items': [{'mint': 'g1', 'rank': 1}]}}
        }

        await engine.startup()

        rarity_service.get_collection.assert_awaited_with('greatgoats')
        assert engine.rank_index.get_rank('great__goats', 'g1') == 1

    async def test_startup_with_corrupt_track_list_idles(self, engine, settings, marketplace):
        with open(settings.tracks_path, 'w') as f:
            f.write('{oops')

        await engine.startup()

        marketplace.get_activities.assert_not_awaited()
        assert await engine.scheduler.tick() is None

    async def test_rate_limit_during_indexing_backs_off(self, engine, settings, marketplace):
        write_tracks(settings.tracks_path, {'collections': {'foo': {'max_price': 2}}})
        marketplace.get_activities.side_effect = RateLimitError("429")

        await engine.startup()

        assert engine.backoff.is_paused()
        assert engine.backoff.tick_interval_ms == 650

    async def test_malformed_rank_document_does_not_stop_startup(
        self, engine, settings, marketplace, rarity_service
    ):
        write_tracks(settings.tracks_path, {'collections': {'foo': {'max_price': 2}}})
        rarity_service.get_collection.return_value = {'result': {'data': 'oops'}}
        marketplace.get_activities.return_value = [activity('mintA', 1.0)]

        await engine.startup()

        assert not engine.rank_index.is_loaded('foo')
        assert engine.dedup.contains(EventKind.LISTING, 'mintA')
        assert (await engine.scheduler.tick()).symbol == 'foo'

    async def test_supply_rate_limit_at_startup_backs_off_uncached(
        self, engine, settings, marketplace, rarity_service
    ):
        write_tracks(settings.tracks_path, {'collections': {'foo': {'max_price': 2}}})
        marketplace.get_collection_stats.side_effect = RateLimitError("429")

        await engine.startup()

        assert engine.backoff.rate_limit_count == 1
        assert engine.backoff.is_paused()
        assert engine.supply.get_cached('foo') is None
        rarity_service.get_collection.assert_not_awaited()

    async def test_supply_rate_limit_while_polling_backs_off(self, engine, settings, marketplace, sink):
        write_tracks(settings.tracks_path, {'collections': {'foo': {'max_price': 2}}})
        marketplace.get_collection_stats.side_effect = RateLimitError("429")
        marketplace.get_activities.return_value = [activity('mintA', 1.0)]

        await engine.scheduler.tick()

        assert engine.backoff.is_paused()
        assert engine.supply.get_cached('foo') is None
        assert not engine.dedup.contains(EventKind.LISTING, 'mintA')
        assert sink.texts and sink.texts[0].startswith('[BACKOFF]')

    async def test_clear_loop_clears_after_interval(self, engine):
        engine.dedup.add(EventKind.LISTING, 'a')
        engine.dedup.add(EventKind.SALE, 'b')

        task = asyncio.create_task(engine._clear_loop(interval_sec=0.01))
        await asyncio.sleep(0.05)
        engine._stop_event.set()
        await asyncio.wait_for(task, timeout=1)

        assert engine.dedup.sizes() == {EventKind.LISTING: 0, EventKind.SALE: 0}

    async def test_clear_caches(self, engine):
        engine.dedup.add(EventKind.LISTING, 'a')

        prior = engine.clear_caches()

        assert prior[EventKind.LISTING] == 1
        assert engine.dedup.sizes()[EventKind.LISTING] == 0

    async def test_run_and_stop(self, engine, marketplace, rarity_service):
        await engine.run()
        await asyncio.sleep(0)
        await engine.stop()

        assert engine.scheduler.is_running is False
        marketplace.close.assert_awaited_once()
        rarity_service.close.assert_awaited_once()
