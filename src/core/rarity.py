"""
Rarity Classifier

Maps an item's rarity rank and its collection's supply to a discrete tier.

    p = rank / supply

    p <= 0.01  Mythic
    p <= 0.05  Legendary
    p <= 0.15  Epic
    p <= 0.35  Rare
    p <= 0.70  Uncommon
    otherwise  Common

Missing or invalid inputs classify as Common, so an unknown rarity never
blocks an alert unless the operator asked for a rarity floor.
"""

import math
from enum import Enum
from typing import Any, Optional

from config.constants import RARITY_THRESHOLDS, RARITY_COLORS, DEFAULT_ACCENT_COLOR
from utils.exceptions import DataValidationError


class RarityTier(str, Enum):
    """Tiers in declaration order, rarest first."""
    MYTHIC = 'Mythic'
    LEGENDARY = 'Legendary'
    EPIC = 'Epic'
    RARE = 'Rare'
    UNCOMMON = 'Uncommon'
    COMMON = 'Common'

    @property
    def position(self) -> int:
        """0 for the rarest tier."""
        return _TIER_ORDER.index(self)

    def is_at_least(self, floor: Optional['RarityTier']) -> bool:
        """True when this tier is as rare as `floor` or rarer. No floor always passes."""
        if floor is None:
            return True
        return self.position <= floor.position

    @property
    def color(self) -> int:
        return RARITY_COLORS.get(self.value, DEFAULT_ACCENT_COLOR)

    @classmethod
    def parse(cls, value: Any, strict: bool = True) -> Optional['RarityTier']:
        """
        Parse a tier name case-insensitively.

        Args:
            value: Tier name, a RarityTier, or None/empty
            strict: Raise on unknown names instead of returning None

        Raises:
            DataValidationError: unknown tier name with strict=True
        """
        if value is None or value == '':
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for tier in cls:
            if tier.value.lower() == text:
                return tier
        if strict:
            raise DataValidationError(
                f"Unknown rarity tier '{value}'",
                error_code='UNKNOWN_RARITY',
                details={'allowed': [t.value for t in cls]}
            )
        return None


_TIER_ORDER = list(RarityTier)


def _as_positive_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def classify(rank: Any, supply: Any) -> RarityTier:
    """
    Classify an item by rank within supply.

    Args:
        rank: 1-based rarity rank (1 = rarest); anything non-numeric is "unknown"
        supply: Collection size; anything non-numeric is "unknown"

    Returns:
        RarityTier, COMMON when either input is missing or invalid
    """
    rank_num = _as_positive_number(rank)
    supply_num = _as_positive_number(supply)
    if rank_num is None or supply_num is None:
        return RarityTier.COMMON

    percentile = rank_num / supply_num
    for tier_name, upper_bound in RARITY_THRESHOLDS:
        if percentile <= upper_bound:
            return RarityTier(tier_name)
    return RarityTier.COMMON
