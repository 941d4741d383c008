"""
Test Configuration Module
Provides fixtures and shared test utilities
"""

import pytest
import sys
import os
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

from config.settings import TrackerSettings
from core.engine import TrackerEngine
from core.howrare_client import HowRareClient
from core.magic_eden_client import MagicEdenClient
from core.models import AlertPayload, DeliveryReceipt
from utils.exceptions import NotificationError


class FakeClock:
    """Manually advanced monotonic clock (seconds)"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse inside `async with`"""

    def __init__(self, status: int = 200, body: Any = None, text: str = '', headers: Optional[Dict] = None,
                 json_error: Optional[Exception] = None):
        self.status = status
        self._body = body
        self._text = text
        self.headers = headers or {}
        self._json_error = json_error

    async def json(self, content_type=None):
        if self._json_error is not None:
            raise self._json_error
        return self._body

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Returns queued responses (or raises queued errors) from get()"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None):
        self.calls.append({'url': url, 'params': params})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed = True


class RecordingSink:
    """Chat sink that records what would have been posted"""

    def __init__(self, fail: bool = False, purge_count: int = 0):
        self.sent: List[AlertPayload] = []
        self.delete_after: List[Optional[float]] = []
        self.texts: List[str] = []
        self.fail = fail
        self.purge_count = purge_count

    async def send(self, payload: AlertPayload, delete_after: Optional[float] = None) -> DeliveryReceipt:
        if self.fail:
            raise NotificationError("channel unavailable")
        self.sent.append(payload)
        self.delete_after.append(delete_after)
        return DeliveryReceipt(message_id=len(self.sent), channel_id=1)

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise NotificationError("channel unavailable")
        self.texts.append(text)

    async def purge_own_messages(self) -> int:
        if self.fail:
            raise NotificationError("missing permissions")
        return self.purge_count


def activity(mint: str, price: Any, rank: Optional[int] = None, kind: str = 'list', **extra) -> Dict[str, Any]:
    """Magic Eden activity record in the shape the v2 API returns"""
    record = {'type': kind, 'tokenMint': mint, 'price': price, 'blockTime': 1_700_000_000}
    if rank is not None:
        record['rarity'] = {'howrare': {'rank': rank}}
    record.update(extra)
    return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings(tmp_path):
    """Fully populated settings that ignore the developer's .env"""
    return TrackerSettings(
        _env_file=None,
        discord_token='test-token',
        discord_channel_id=111,
        owner_id=42,
        tracks_path=str(tmp_path / 'tracks.json'),
        preload_rank_index=True,
        supply_overrides={'overridden': 777},
        howrare_slugs={'great__goats': 'greatgoats'},
    )


@pytest.fixture
def marketplace():
    client = AsyncMock(spec=MagicEdenClient)
    client.get_activities.return_value = []
    client.get_collection_stats.return_value = {'stats': {'supply': 1000}}
    client.get_token_metadata.return_value = None
    return client


@pytest.fixture
def rarity_service():
    client = AsyncMock(spec=HowRareClient)
    client.get_collection.return_value = {'result': {'data': {'items': []}}}
    return client


@pytest.fixture
def engine(sink, settings, marketplace, rarity_service, clock):
    """Engine wired to mocked upstream APIs and a recording sink"""
    return TrackerEngine(
        sink,
        settings_provider=lambda: settings,
        marketplace=marketplace,
        rarity_service=rarity_service,
        clock=clock,
    )
