"""
Tests for JSON Track Store
"""

import json
import pytest

from core.models import EventKind, TrackedCollection
from core.rarity import RarityTier
from core.track_store import JsonTrackStore
from utils.exceptions import PersistenceError


@pytest.mark.unit
class TestJsonTrackStore:

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonTrackStore(tmp_path / 'tracks.json')
        assert store.load().is_empty()

    def test_reads_existing_format(self, tmp_path):
        path = tmp_path / 'tracks.json'
        path.write_text(json.dumps({
            'collections': {
                'foo': {'max_price': 2, 'min_rarity': 'epic'},
                'bar': {'max_price': 0.5},
            },
            'sales_collections': {'foo': {'max_price': 10}},
        }))

        tracks = JsonTrackStore(path).load()

        assert [t.symbol for t in tracks.tasks()] == ['foo', 'bar', 'foo']
        assert tracks.get('foo', EventKind.LISTING).min_rarity is RarityTier.EPIC
        assert tracks.get('foo', EventKind.SALE).max_price == 10

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / 'tracks.json'
        path.write_text('{not json')

        with pytest.raises(PersistenceError, match="unreadable"):
            JsonTrackStore(path).load()

    def test_wrong_shape_raises(self, tmp_path):
        path = tmp_path / 'tracks.json'
        path.write_text('[1, 2, 3]')

        with pytest.raises(PersistenceError):
            JsonTrackStore(path).load()

    def test_add_and_remove_round_trip(self, tmp_path):
        path = tmp_path / 'data' / 'tracks.json'
        store = JsonTrackStore(path)

        store.add(TrackedCollection('foo', EventKind.LISTING, 2, RarityTier.LEGENDARY))
        store.add(TrackedCollection('foo', EventKind.SALE, 3))

        on_disk = json.loads(path.read_text())
        assert on_disk == {
            'collections': {'foo': {'max_price': 2, 'min_rarity': 'Legendary'}},
            'sales_collections': {'foo': {'max_price': 3}},
        }
        assert not (tmp_path / 'data' / 'tracks.json.tmp').exists()

        assert store.remove('foo', EventKind.SALE) is True
        assert store.remove('foo', EventKind.SALE) is False
        assert store.load().sales == {}

    def test_price_ceiling_semantics(self):
        assert TrackedCollection('a', EventKind.LISTING, 0).price_ceiling is None
        assert TrackedCollection('a', EventKind.LISTING, float('nan')).price_ceiling is None
        assert TrackedCollection('a', EventKind.LISTING, None).price_ceiling is None
        assert TrackedCollection('a', EventKind.LISTING, 2).price_ceiling == 2.0
