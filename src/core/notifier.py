"""
Alert formatting and delivery
"""

from typing import List, Optional, Protocol

from config.constants import DEFAULT_ACCENT_COLOR
from core.models import AlertPayload, DeliveryReceipt, EventKind, MarketplaceEvent, TrackedCollection
from core.rarity import classify
from utils.logger import get_logger, log_alert_event
from utils.exceptions import NotificationError


logger = get_logger(__name__)


class ChatSink(Protocol):
    """
    Outbound chat capability. Implementations raise NotificationError when the
    platform rejects a message.
    """

    async def send(self, payload: AlertPayload, delete_after: Optional[float] = None) -> DeliveryReceipt:
        ...

    async def send_text(self, text: str) -> None:
        ...

    async def purge_own_messages(self) -> int:
        ...


def format_sol(value: float) -> str:
    """2.0 -> '2', 1.50 -> '1.5'"""
    if float(value).is_integer():
        return str(int(value))
    return format(value, '.9f').rstrip('0').rstrip('.')


def build_alert(
    event: MarketplaceEvent,
    track: TrackedCollection,
    supply: Optional[int]
) -> AlertPayload:
    """Render a normalized event as a platform-neutral alert."""
    noun = 'listing' if event.kind is EventKind.LISTING else 'sale'

    price_line = f"Price: **{format_sol(event.price_sol)} SOL**"
    ceiling = track.price_ceiling
    if ceiling is not None:
        price_line += f" (<= {format_sol(ceiling)} SOL)"

    lines: List[str] = [f"Name: **{event.name}**", price_line]

    color = DEFAULT_ACCENT_COLOR
    if event.rarity_rank is not None:
        tier = classify(event.rarity_rank, supply)
        color = tier.color
        if supply:
            lines.append(f"Rarity: **{event.rarity_rank}** ({tier.value})")
        else:
            lines.append(f"Rarity: **{event.rarity_rank}**")

    lines.append(f"Link: {event.link}")

    return AlertPayload(
        title=f"New {noun} in {event.symbol}!",
        description='\n'.join(lines),
        url=event.link,
        color=color,
        image_url=event.image_url,
    )


class Notifier:
    """Best-effort delivery: failures are logged, never retried"""

    def __init__(self, sink: ChatSink):
        self._sink = sink

    async def deliver(
        self,
        event: MarketplaceEvent,
        payload: AlertPayload,
        delete_after: Optional[float] = None
    ) -> bool:
        try:
            await self._sink.send(payload, delete_after=delete_after)
        except NotificationError as e:
            logger.error(
                f"Alert delivery failed for {event.symbol} ({event.kind.value}): {e}",
                extra={'symbol': event.symbol, 'event_id': event.id}
            )
            return False

        log_alert_event(
            logger,
            'ALERT_SENT',
            symbol=event.symbol,
            kind=event.kind.value,
            event_id=event.id,
            price_sol=event.price_sol,
            rank=event.rarity_rank,
        )
        return True

    async def notice(self, text: str) -> None:
        """Short operational message (e.g. backoff notice); failures logged"""
        try:
            await self._sink.send_text(text)
        except NotificationError as e:
            logger.warning(f"Notice not delivered: {e}")
