"""
Tests for activity record field extraction
"""

import hashlib
import json
import pytest

from core.field_extractors import (
    build_link,
    compute_event_id,
    extract_image,
    extract_name,
    extract_rank,
    parse_price,
)


@pytest.mark.unit
class TestEventId:
    """Dedup identity of activity records"""

    def test_token_mint_wins(self):
        assert compute_event_id({'tokenMint': 'mintA', 'id': 'evt1'}) == 'mintA'

    def test_falls_back_to_record_id(self):
        assert compute_event_id({'id': 'evt1', 'price': 1}) == 'evt1'

    def test_hash_of_canonical_json(self):
        record = {'price': 1.5, 'seller': 'abc'}
        expected = hashlib.sha256(
            json.dumps(record, sort_keys=True, separators=(',', ':')).encode('utf-8')
        ).hexdigest()

        assert compute_event_id(record) == expected

    def test_hash_ignores_key_order(self):
        first = compute_event_id({'a': 1, 'b': 2})
        second = compute_event_id({'b': 2, 'a': 1})
        assert first == second
        assert first


@pytest.mark.unit
class TestPrice:
    """Price field priority and validation"""

    def test_first_present_field_wins(self):
        assert parse_price({'price': 1.5, 'priceSol': 9}) == 1.5
        assert parse_price({'priceSol': '2.25'}) == 2.25
        assert parse_price({'buyNowPrice': 3}) == 3.0

    def test_null_field_is_skipped(self):
        assert parse_price({'price': None, 'priceSol': 4}) == 4.0

    def test_missing_price_is_zero(self):
        assert parse_price({}) == 0.0
        assert parse_price({'price': None, 'priceSol': None}) == 0.0

    @pytest.mark.parametrize('record', [
        {'price': 'abc'},
        {'price': float('nan')},
        {'price': float('inf')},
        {'price': True},
    ])
    def test_unusable_price(self, record):
        assert parse_price(record) is None


@pytest.mark.unit
class TestNameImageRank:
    """Ordered extractor lists"""

    def test_name_locations(self):
        assert extract_name({'name': 'Top', 'extra': {'name': 'Extra'}}) == 'Top'
        assert extract_name({'extra': {'title': 'Extra title'}}) == 'Extra title'
        assert extract_name({'token': {'name': 'Token'}}) == 'Token'
        assert extract_name({'metadata': {'title': 'Meta'}}) == 'Meta'
        assert extract_name({'name': ''}) is None

    def test_image_locations(self):
        assert extract_image({'extra': {'img': 'a.png'}, 'image': 'b.png'}) == 'a.png'
        assert extract_image({'image': 'b.png'}) == 'b.png'

    def test_image_from_token_files(self):
        record = {
            'token': {
                'properties': {
                    'files': [
                        {'type': 'video/mp4', 'uri': 'v.mp4'},
                        {'type': 'image/png', 'uri': 'i.png'},
                    ]
                }
            }
        }
        assert extract_image(record) == 'i.png'

    def test_rank_locations(self):
        assert extract_rank({'rarity': {'howrare': {'rank': 12}}}) == 12
        assert extract_rank({'extra': {'howrare_rank': '7'}}) == 7
        assert extract_rank({'token': {'howrare': {'rank': 3}}}) == 3
        assert extract_rank({'howrare': 44}) == 44

    def test_rank_skips_non_numeric_candidates(self):
        record = {'extra': {'howrare': {'score': 1.2}}, 'metadata': {'howrare_rank': 9}}
        assert extract_rank(record) == 9

    def test_missing_everything(self):
        assert extract_name({}) is None
        assert extract_image({}) is None
        assert extract_rank({}) is None


@pytest.mark.unit
class TestLink:

    def test_link_priority(self):
        assert build_link({'marketplaceLink': 'https://a', 'listingURL': 'https://b'}) == 'https://a'
        assert build_link({'listingURL': 'https://b'}) == 'https://b'
        assert build_link({'tokenMint': 'mintA'}) == 'https://magiceden.io/item-details/mintA'
