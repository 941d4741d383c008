"""
Domain types shared by the ingestion engine.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.rarity import RarityTier


class EventKind(str, Enum):
    """Marketplace event kinds the tracker alerts on."""
    LISTING = 'listing'
    SALE = 'sale'

    @property
    def label(self) -> str:
        return 'listings' if self is EventKind.LISTING else 'sales'


class SupplySource(str, Enum):
    """Where a collection's supply figure came from."""
    MARKETPLACE = 'marketplace'
    ALT_RARITY_SERVICE = 'alt_rarity_service'
    LOCAL_OVERRIDE = 'local_override'
    UNRESOLVED = 'unresolved'


@dataclass(frozen=True)
class TrackedCollection:
    """
    One operator-configured track. Identity is (symbol, kind).

    A max_price of zero, negative or non-finite means "no ceiling".
    """
    symbol: str
    kind: EventKind
    max_price: Optional[float] = None
    min_rarity: Optional[RarityTier] = None

    @property
    def price_ceiling(self) -> Optional[float]:
        if self.max_price is None:
            return None
        try:
            ceiling = float(self.max_price)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(ceiling) or ceiling <= 0:
            return None
        return ceiling

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'max_price': self.max_price}
        if self.min_rarity is not None:
            data['min_rarity'] = self.min_rarity.value
        return data

    @classmethod
    def from_json(cls, symbol: str, kind: EventKind, data: Dict[str, Any]) -> 'TrackedCollection':
        data = data or {}
        return cls(
            symbol=symbol,
            kind=kind,
            max_price=data.get('max_price'),
            min_rarity=RarityTier.parse(data.get('min_rarity'), strict=False),
        )


@dataclass
class TrackedCollections:
    """
    The full track list, as persisted:
    {"collections": {...}, "sales_collections": {...}}
    """
    listings: Dict[str, TrackedCollection] = field(default_factory=dict)
    sales: Dict[str, TrackedCollection] = field(default_factory=dict)

    def _bucket(self, kind: EventKind) -> Dict[str, TrackedCollection]:
        return self.listings if kind is EventKind.LISTING else self.sales

    def tasks(self) -> List[TrackedCollection]:
        """All listing tracks, then all sales tracks, in insertion order."""
        return list(self.listings.values()) + list(self.sales.values())

    def symbols(self) -> List[str]:
        """Distinct symbols across both kinds, first-seen order."""
        return list(dict.fromkeys([*self.listings, *self.sales]))

    def get(self, symbol: str, kind: EventKind) -> Optional[TrackedCollection]:
        return self._bucket(kind).get(symbol)

    def upsert(self, track: TrackedCollection) -> None:
        self._bucket(track.kind)[track.symbol] = track

    def remove(self, symbol: str, kind: EventKind) -> bool:
        return self._bucket(kind).pop(symbol, None) is not None

    def is_empty(self) -> bool:
        return not self.listings and not self.sales

    def to_json(self) -> Dict[str, Any]:
        return {
            'collections': {s: t.to_json() for s, t in self.listings.items()},
            'sales_collections': {s: t.to_json() for s, t in self.sales.items()},
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'TrackedCollections':
        if not isinstance(data, dict):
            raise ValueError(f"Track list must be an object, got {type(data).__name__}")
        tracks = cls()
        for symbol, cfg in (data.get('collections') or {}).items():
            tracks.listings[symbol] = TrackedCollection.from_json(symbol, EventKind.LISTING, cfg)
        for symbol, cfg in (data.get('sales_collections') or {}).items():
            tracks.sales[symbol] = TrackedCollection.from_json(symbol, EventKind.SALE, cfg)
        return tracks


@dataclass(frozen=True)
class MarketplaceEvent:
    """A listing or sale normalized out of a raw activity record."""
    id: str
    token_id: str
    kind: EventKind
    symbol: str
    price_sol: float
    name: str
    link: str
    rarity_rank: Optional[int] = None
    image_url: Optional[str] = None
    block_time: Optional[int] = None


@dataclass(frozen=True)
class SupplyRecord:
    symbol: str
    supply: Optional[int]
    source: SupplySource


@dataclass
class AlertPayload:
    """Chat-platform-neutral alert. Adapters render it (e.g. as a Discord embed)."""
    title: str
    description: str
    url: str
    color: int
    image_url: Optional[str] = None


@dataclass
class DeliveryReceipt:
    """Returned by a chat sink for a delivered message."""
    message_id: Optional[int] = None
    channel_id: Optional[int] = None
