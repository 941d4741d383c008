"""
Tests for alert formatting
"""

import pytest

from core.models import EventKind, MarketplaceEvent, TrackedCollection
from core.notifier import build_alert, format_sol
from core.rarity import RarityTier


def make_event(**overrides):
    fields = dict(
        id='mintA',
        token_id='mintA',
        kind=EventKind.LISTING,
        symbol='foo',
        price_sol=1.25,
        name='Foo #1',
        link='https://magiceden.io/item-details/mintA',
        rarity_rank=40,
        image_url='https://img/a.png',
    )
    fields.update(overrides)
    return MarketplaceEvent(**fields)


@pytest.mark.unit
class TestBuildAlert:

    def test_full_listing_alert(self):
        payload = build_alert(make_event(), TrackedCollection('foo', EventKind.LISTING, 2), supply=1000)

        assert payload.title == 'New listing in foo!'
        assert payload.description.split('\n') == [
            'Name: **Foo #1**',
            'Price: **1.25 SOL** (<= 2 SOL)',
            'Rarity: **40** (Legendary)',
            'Link: https://magiceden.io/item-details/mintA',
        ]
        assert payload.url == 'https://magiceden.io/item-details/mintA'
        assert payload.color == RarityTier.LEGENDARY.color
        assert payload.image_url == 'https://img/a.png'

    def test_rank_without_supply(self):
        payload = build_alert(make_event(), TrackedCollection('foo', EventKind.LISTING, 2), supply=None)
        assert 'Rarity: **40**\n' in payload.description

    def test_sale_without_ceiling_or_rank(self):
        event = make_event(kind=EventKind.SALE, rarity_rank=None, image_url=None)
        payload = build_alert(event, TrackedCollection('foo', EventKind.SALE, 0), supply=1000)

        assert payload.title == 'New sale in foo!'
        assert 'Price: **1.25 SOL**\n' in payload.description
        assert 'Rarity' not in payload.description
        assert payload.color == 0x9B59FF
        assert payload.image_url is None


@pytest.mark.unit
def test_format_sol():
    assert format_sol(2.0) == '2'
    assert format_sol(1.5) == '1.5'
    assert format_sol(0.000123) == '0.000123'
