"""
Tests for Rarity Classifier
"""

import math
import pytest

from core.rarity import RarityTier, classify
from utils.exceptions import DataValidationError


@pytest.mark.unit
class TestClassify:
    """rank / supply percentile buckets"""

    @pytest.mark.parametrize('rank,expected', [
        (1, RarityTier.MYTHIC),
        (10, RarityTier.MYTHIC),
        (11, RarityTier.LEGENDARY),
        (50, RarityTier.LEGENDARY),
        (150, RarityTier.EPIC),
        (350, RarityTier.RARE),
        (351, RarityTier.UNCOMMON),
        (700, RarityTier.UNCOMMON),
        (701, RarityTier.COMMON),
        (1000, RarityTier.COMMON),
    ])
    def test_bucket_boundaries(self, rank, expected):
        assert classify(rank, 1000) is expected

    @pytest.mark.parametrize('rank,supply', [
        (None, 1000),
        (5, None),
        (0, 1000),
        (-3, 1000),
        (5, 0),
        ('abc', 1000),
        (True, 1000),
        (5, math.nan),
        (math.inf, 1000),
    ])
    def test_invalid_inputs_are_common(self, rank, supply):
        assert classify(rank, supply) is RarityTier.COMMON

    def test_numeric_strings_are_accepted(self):
        assert classify('3', '1000') is RarityTier.MYTHIC

    def test_monotonic_in_rank(self):
        """A rarer rank never yields a less rare tier"""
        supply = 1000
        positions = [classify(rank, supply).position for rank in range(1, supply + 1)]
        assert positions == sorted(positions)


@pytest.mark.unit
class TestRarityTier:
    """Tier ordering and parsing"""

    def test_ordering(self):
        assert RarityTier.MYTHIC.is_at_least(RarityTier.EPIC)
        assert RarityTier.EPIC.is_at_least(RarityTier.EPIC)
        assert not RarityTier.RARE.is_at_least(RarityTier.EPIC)
        assert RarityTier.COMMON.is_at_least(None)

    def test_parse_case_insensitive(self):
        assert RarityTier.parse('legendary') is RarityTier.LEGENDARY
        assert RarityTier.parse(' EPIC ') is RarityTier.EPIC
        assert RarityTier.parse(None) is None
        assert RarityTier.parse('') is None

    def test_parse_unknown_raises(self):
        with pytest.raises(DataValidationError, match="Unknown rarity tier"):
            RarityTier.parse('shiny')

    def test_parse_unknown_lenient(self):
        assert RarityTier.parse('shiny', strict=False) is None

    def test_palette(self):
        assert RarityTier.MYTHIC.color == 0xFF4747
        assert RarityTier.COMMON.color == 0xB0B8C1
