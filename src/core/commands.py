"""
Operator Commands

Slash commands and text commands both normalize to a CommandIntent before
dispatch, so the handler has one contract regardless of transport.

    Slash                                Text
    metrack(symbol, max_price, rarity?)  /track <symbol> <max_price> [rarity]
    mesalestrack(...)                    /salestrack <symbol> <max_price> [rarity]
    meuntrack(symbol)                    /untrack <symbol>
    mesalesuntrack(symbol)               /salesuntrack <symbol>
    melist                               /list
    metest                               /test
    mecleanup                            /cleanup
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from config.constants import MAGIC_EDEN_MARKETPLACE_PATTERN, BARE_SYMBOL_PATTERN
from core.dedup_cache import DedupCache
from core.models import EventKind, TrackedCollection, TrackedCollections
from core.notifier import ChatSink, format_sol
from core.rarity import RarityTier
from core.track_store import JsonTrackStore
from utils.logger import get_logger, log_error_with_context
from utils.exceptions import DataValidationError, PersistenceError, NotificationError


logger = get_logger(__name__)


class CommandAction(str, Enum):
    TRACK = 'track'
    UNTRACK = 'untrack'
    LIST = 'list'
    TEST = 'test'
    CLEANUP = 'cleanup'


@dataclass(frozen=True)
class CommandIntent:
    action: CommandAction
    symbol: Optional[str] = None
    kind: Optional[EventKind] = None
    max_price: Optional[float] = None
    min_rarity: Optional[RarityTier] = None


# command name -> (action, kind)
SLASH_COMMANDS: Dict[str, Tuple[CommandAction, Optional[EventKind]]] = {
    'metrack': (CommandAction.TRACK, EventKind.LISTING),
    'mesalestrack': (CommandAction.TRACK, EventKind.SALE),
    'meuntrack': (CommandAction.UNTRACK, EventKind.LISTING),
    'mesalesuntrack': (CommandAction.UNTRACK, EventKind.SALE),
    'melist': (CommandAction.LIST, None),
    'metest': (CommandAction.TEST, None),
    'mecleanup': (CommandAction.CLEANUP, None),
}

TEXT_COMMANDS: Dict[str, Tuple[CommandAction, Optional[EventKind]]] = {
    '/track': (CommandAction.TRACK, EventKind.LISTING),
    '/salestrack': (CommandAction.TRACK, EventKind.SALE),
    '/untrack': (CommandAction.UNTRACK, EventKind.LISTING),
    '/salesuntrack': (CommandAction.UNTRACK, EventKind.SALE),
    '/list': (CommandAction.LIST, None),
    '/test': (CommandAction.TEST, None),
    '/cleanup': (CommandAction.CLEANUP, None),
}

_MARKETPLACE_RE = re.compile(MAGIC_EDEN_MARKETPLACE_PATTERN)
_BARE_SYMBOL_RE = re.compile(BARE_SYMBOL_PATTERN)

REFUSAL = "You are not allowed to use this command."
COMMAND_FAILED = "Command failed, see the bot logs for details."


def extract_symbol(text: Any) -> str:
    """
    Collection symbol from a Magic Eden marketplace URL or a bare symbol.

    Raises:
        DataValidationError: neither form matched
    """
    value = str(text or '').strip()
    match = _MARKETPLACE_RE.search(value)
    if match:
        return match.group(1)
    if _BARE_SYMBOL_RE.match(value):
        return value
    raise DataValidationError(
        f"Invalid Magic Eden collection: '{value}'. "
        f"Use a link like https://magiceden.io/marketplace/<symbol> or the bare symbol.",
        error_code='INVALID_SYMBOL'
    )


def parse_max_price(value: Any) -> float:
    """
    Raises:
        DataValidationError: not a finite, non-negative number
    """
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise DataValidationError(f"Invalid max price: '{value}'", error_code='INVALID_PRICE')
    if not math.isfinite(price) or price < 0:
        raise DataValidationError(f"Invalid max price: '{value}'", error_code='INVALID_PRICE')
    return price


def _build_intent(
    action: CommandAction,
    kind: Optional[EventKind],
    symbol: Any = None,
    max_price: Any = None,
    min_rarity: Any = None
) -> CommandIntent:
    if action is CommandAction.TRACK:
        if symbol is None or max_price is None:
            raise DataValidationError(
                "Usage: <collection> <max_price> [min_rarity]",
                error_code='MISSING_ARGUMENT'
            )
        return CommandIntent(
            action=action,
            symbol=extract_symbol(symbol),
            kind=kind,
            max_price=parse_max_price(max_price),
            min_rarity=RarityTier.parse(min_rarity),
        )

    if action is CommandAction.UNTRACK:
        if symbol is None:
            raise DataValidationError("Usage: <collection>", error_code='MISSING_ARGUMENT')
        return CommandIntent(action=action, symbol=extract_symbol(symbol), kind=kind)

    return CommandIntent(action=action)


def from_slash(name: str, **options: Any) -> CommandIntent:
    """
    Raises:
        DataValidationError: unknown command or invalid options
    """
    if name not in SLASH_COMMANDS:
        raise DataValidationError(f"Unknown command: {name}", error_code='UNKNOWN_COMMAND')
    action, kind = SLASH_COMMANDS[name]
    return _build_intent(
        action,
        kind,
        symbol=options.get('symbol'),
        max_price=options.get('max_price'),
        min_rarity=options.get('min_rarity'),
    )


def from_text(content: str) -> Optional[CommandIntent]:
    """
    Returns:
        CommandIntent, or None when the message is not a tracker command

    Raises:
        DataValidationError: a tracker command with invalid arguments
    """
    parts = (content or '').strip().split()
    if not parts or parts[0].lower() not in TEXT_COMMANDS:
        return None
    action, kind = TEXT_COMMANDS[parts[0].lower()]
    args = parts[1:]
    return _build_intent(
        action,
        kind,
        symbol=args[0] if len(args) > 0 else None,
        max_price=args[1] if len(args) > 1 else None,
        min_rarity=args[2] if len(args) > 2 else None,
    )


def describe_tracks(tracks: TrackedCollections) -> str:
    if tracks.is_empty():
        return "No collections are being tracked."

    lines: List[str] = []
    for title, bucket in (('Listings', tracks.listings), ('Sales', tracks.sales)):
        if not bucket:
            continue
        lines.append(f"**{title}**")
        for symbol, track in bucket.items():
            ceiling = track.price_ceiling
            price_text = f"max {format_sol(ceiling)} SOL" if ceiling is not None else "no max price"
            rarity_text = f", min rarity {track.min_rarity.value}" if track.min_rarity else ""
            lines.append(f"- {symbol}: {price_text}{rarity_text}")
    return '\n'.join(lines)


class CommandHandler:
    """Executes intents against the track store and the engine's caches"""

    def __init__(
        self,
        store_provider: Callable[[], JsonTrackStore],
        dedup: DedupCache,
        sink: ChatSink,
        on_track_added: Callable[[TrackedCollection], Awaitable[Any]],
        owner_id: Callable[[], int]
    ):
        """
        Args:
            store_provider: Current track store (path follows settings reloads)
            dedup: Engine dedup cache, cleared by `test`
            sink: Chat sink, purged by `cleanup`
            on_track_added: Indexes a freshly added track before it is polled
            owner_id: Current owner user id
        """
        self._store_provider = store_provider
        self._dedup = dedup
        self._sink = sink
        self._on_track_added = on_track_added
        self._owner_id = owner_id

    def is_authorized(self, user_id: Optional[int]) -> bool:
        owner = self._owner_id()
        return bool(owner) and user_id == owner

    async def handle(self, intent: CommandIntent, user_id: Optional[int]) -> str:
        """Run an intent and return the operator-facing reply"""
        if not self.is_authorized(user_id):
            logger.warning(f"Refused {intent.action.value} from user {user_id}")
            return REFUSAL

        logger.info(
            f"Command {intent.action.value} from owner",
            extra={'action': intent.action.value, 'symbol': intent.symbol}
        )
        try:
            if intent.action is CommandAction.TRACK:
                return await self._track(intent)
            if intent.action is CommandAction.UNTRACK:
                return self._untrack(intent)
            if intent.action is CommandAction.LIST:
                return describe_tracks(self._store_provider().load())
            if intent.action is CommandAction.TEST:
                return self._test()
            return await self._cleanup()
        except PersistenceError as e:
            log_error_with_context(
                logger, f"Track list error during {intent.action.value}", e,
                action=intent.action.value, path=e.path
            )
            return f"Could not access the track list: {e.message}"
        except Exception as e:
            log_error_with_context(
                logger, f"Command {intent.action.value} failed", e,
                action=intent.action.value, symbol=intent.symbol
            )
            return COMMAND_FAILED

    async def _track(self, intent: CommandIntent) -> str:
        track = TrackedCollection(
            symbol=intent.symbol,
            kind=intent.kind,
            max_price=intent.max_price,
            min_rarity=intent.min_rarity,
        )
        self._store_provider().add(track)
        await self._on_track_added(track)

        rarity_text = f", min rarity {track.min_rarity.value}" if track.min_rarity else ""
        ceiling = track.price_ceiling
        price_text = f"max {format_sol(ceiling)} SOL" if ceiling is not None else "no max price"
        return f"Now tracking {intent.kind.label} for **{intent.symbol}** ({price_text}{rarity_text})."

    def _untrack(self, intent: CommandIntent) -> str:
        if self._store_provider().remove(intent.symbol, intent.kind):
            return f"Stopped tracking {intent.kind.label} for **{intent.symbol}**."
        return f"**{intent.symbol}** is not tracked for {intent.kind.label}."

    def _test(self) -> str:
        prior = self._dedup.clear()
        return (
            f"Cleared seen caches (listings: {prior[EventKind.LISTING]}, "
            f"sales: {prior[EventKind.SALE]}). Current events will alert on their next poll."
        )

    async def _cleanup(self) -> str:
        try:
            deleted = await self._sink.purge_own_messages()
        except NotificationError as e:
            log_error_with_context(logger, "Cleanup failed", e, deleted=e.details.get('deleted', 0))
            return f"Cleanup failed: {e.message}"
        return f"Deleted {deleted} bot message(s)."


async def dispatch_text(handler: CommandHandler, content: str, user_id: Optional[int]) -> Optional[str]:
    """
    Parse and run a text command.

    Returns:
        Reply text, or None when the message is not a command
    """
    try:
        intent = from_text(content)
    except DataValidationError as e:
        return e.message if handler.is_authorized(user_id) else REFUSAL
    if intent is None:
        return None
    return await handler.handle(intent, user_id)


async def dispatch_slash(handler: CommandHandler, name: str, user_id: Optional[int], **options: Any) -> str:
    try:
        intent = from_slash(name, **options)
    except DataValidationError as e:
        return e.message if handler.is_authorized(user_id) else REFUSAL
    return await handler.handle(intent, user_id)
