"""
Constants Module for ME Tracker

Centralizes fixed parameters for the ingestion engine. Values that the
operator tunes at runtime live in config.settings instead; everything here is
part of the engine's contract and changes only with a code release.

Key Principles:
- Single source of truth for fixed parameters
- All constants are Final (immutable)
- Logging constants accept environment overrides
"""

from typing import Final, Dict, Tuple
import os


# ============================================================================
# 1. UPSTREAM API ENDPOINTS
# ============================================================================

MAGIC_EDEN_API_URL: Final[str] = os.getenv(
    'MAGIC_EDEN_API_URL',
    'https://api-mainnet.magiceden.dev/v2'
)

HOWRARE_API_URL: Final[str] = os.getenv(
    'HOWRARE_API_URL',
    'https://api.howrare.is/v0.1'
)

# Base for alert links when the activity record carries none
MAGIC_EDEN_ITEM_URL: Final[str] = 'https://magiceden.io/item-details'

# Accepted operator input: https://magiceden.io/marketplace/<symbol>
MAGIC_EDEN_MARKETPLACE_PATTERN: Final[str] = r'magiceden\.io/marketplace/([\w\-]+)'
BARE_SYMBOL_PATTERN: Final[str] = r'^[\w\-]+$'

API_TIMEOUT_SEC: Final[float] = 10.0
HTTP_USER_AGENT: Final[str] = 'ME-Tracker/0.1'


# ============================================================================
# 2. ACTIVITY CLASSIFICATION
# ============================================================================

# Magic Eden activity "type" values per event kind
ACTIVITY_TYPE_LISTING: Final[str] = 'list'
ACTIVITY_TYPE_SALE: Final[str] = 'buyNow'

DEFAULT_ACTIVITY_LIMIT: Final[int] = 40

# Price fields in priority order, first present wins
PRICE_FIELDS: Final[Tuple[str, ...]] = ('price', 'priceSol', 'buyNowPrice')

UNKNOWN_NFT_NAME: Final[str] = 'Unknown NFT'


# ============================================================================
# 3. ROUND-ROBIN SCHEDULING & BACKOFF
# ============================================================================
# ~1.8 requests per second against the marketplace at the default tick.
# On HTTP 429 every task pauses for BACKOFF_MS and the tick widens by
# BACKOFF_STEP_MS, never past BACKOFF_MAX_TICK_MS. The widening is permanent
# for the process lifetime.

DEFAULT_TICK_MS: Final[int] = 550
DEFAULT_BACKOFF_MS: Final[int] = 10_000
BACKOFF_STEP_MS: Final[int] = 100
BACKOFF_MAX_TICK_MS: Final[int] = 2_000


# ============================================================================
# 4. DEDUP CACHE
# ============================================================================

# Hourly clear bounds memory; events still visible afterwards may re-alert once
CACHE_CLEAR_INTERVAL_SEC: Final[int] = 3_600


# ============================================================================
# 5. RARITY
# ============================================================================
# rank / supply percentile upper bounds, rarest first. Not configurable per
# collection.

RARITY_THRESHOLDS: Final[Tuple[Tuple[str, float], ...]] = (
    ('Mythic', 0.01),
    ('Legendary', 0.05),
    ('Epic', 0.15),
    ('Rare', 0.35),
    ('Uncommon', 0.70),
)

RARITY_COLORS: Final[Dict[str, int]] = {
    'Mythic': 0xFF4747,
    'Legendary': 0xFF9900,
    'Epic': 0xA259FF,
    'Rare': 0x0099FF,
    'Uncommon': 0x00E599,
    'Common': 0xB0B8C1,
}

# Magic Eden purple, used when no rarity rank is known
DEFAULT_ACCENT_COLOR: Final[int] = 0x9B59FF

# Magic Eden symbol -> HowRare slug. Symbols not listed use themselves.
DEFAULT_HOWRARE_SLUGS: Final[Dict[str, str]] = {
    'great__goats': 'greatgoats',
    'undead_genesis': 'undead_genesis',
    'candies': 'candies',
    'morbie': 'morbie',
}


# ============================================================================
# 6. OPERATOR COMMANDS
# ============================================================================

DEFAULT_TRACKS_PATH: Final[str] = 'data/tracks.json'
TEST_MESSAGE_DELETE_SECONDS: Final[int] = 5
CLEANUP_BATCH_SIZE: Final[int] = 100
STARTUP_PREVIEW_COUNT: Final[int] = 3


# ============================================================================
# 7. LOGGING
# ============================================================================

LOG_LEVEL: Final[str] = os.getenv('LOG_LEVEL', 'INFO')
LOG_FILE_PATH: Final[str] = os.getenv('LOG_FILE_PATH', 'logs/metracker.log')
MAX_LOG_FILE_SIZE: Final[int] = 50 * 1024 * 1024  # 50 MB
LOG_BACKUP_COUNT: Final[int] = 10
STRUCTURED_LOGGING: Final[bool] = os.getenv('STRUCTURED_LOGGING', 'true').lower() == 'true'
