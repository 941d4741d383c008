"""
Runtime Configuration for ME Tracker

pydantic-settings based configuration: every field can be overridden from the
environment or a `.env` file, values are validated on load, and the settings
object is replaced wholesale on reload rather than mutated.

Usage:
    from config.settings import get_settings

    settings = get_settings()
    interval = settings.round_robin_tick_ms

    # Override via environment:
    # export ROUND_ROBIN_TICK_MS=800

Hot reload happens before each inbound operator command, so edits to `.env`
(new supply overrides, slug mappings) apply without a restart.
"""

from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import (
    DEFAULT_TICK_MS,
    DEFAULT_BACKOFF_MS,
    DEFAULT_ACTIVITY_LIMIT,
    DEFAULT_TRACKS_PATH,
    DEFAULT_HOWRARE_SLUGS,
    CACHE_CLEAR_INTERVAL_SEC,
    TEST_MESSAGE_DELETE_SECONDS,
)
from utils.exceptions import ConfigurationError
from utils.logger import get_logger


logger = get_logger(__name__)


class TrackerSettings(BaseSettings):
    """
    Tracker configuration.

    All parameters can be overridden via environment variables.
    Example: ROUND_ROBIN_TICK_MS=800 python src/main.py
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        env_ignore_empty=True,
        frozen=True,
    )

    # ============================================================================
    # DISCORD
    # ============================================================================

    discord_token: str = Field(default='', description="Bot token")
    discord_channel_id: int = Field(default=0, description="Alert channel id", ge=0)
    owner_id: int = Field(default=0, description="Only this user may run commands", ge=0)
    guild_id: Optional[int] = Field(
        default=None,
        description="Guild for instant slash-command sync (global sync when unset)"
    )

    # ============================================================================
    # POLLING
    # ============================================================================

    round_robin_tick_ms: int = Field(
        default=DEFAULT_TICK_MS,
        description="Initial scheduler tick; one task runs per tick",
        ge=50,
        le=60_000
    )

    backoff_ms: int = Field(
        default=DEFAULT_BACKOFF_MS,
        description="Pause applied to all polling after HTTP 429",
        ge=0,
        le=600_000
    )

    activity_limit: int = Field(
        default=DEFAULT_ACTIVITY_LIMIT,
        description="Activities requested per poll",
        ge=1,
        le=500
    )

    fetch_token_metadata: bool = Field(
        default=True,
        description="Fetch token name/image for events that pass all filters"
    )

    # ============================================================================
    # CACHES & SUPPLY
    # ============================================================================

    cache_clear_interval_sec: int = Field(
        default=CACHE_CLEAR_INTERVAL_SEC,
        description="Dedup cache clear period",
        ge=60
    )

    preload_rank_index: bool = Field(
        default=True,
        description="Bulk-load HowRare ranks for every tracked collection at startup"
    )

    supply_overrides: Dict[str, int] = Field(
        default_factory=dict,
        description="Operator-maintained symbol -> supply table, last resort of the supply chain"
    )

    howrare_slugs: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_HOWRARE_SLUGS),
        description="Magic Eden symbol -> HowRare slug"
    )

    # ============================================================================
    # OPERATOR COMMANDS
    # ============================================================================

    tracks_path: str = Field(default=DEFAULT_TRACKS_PATH, description="Persisted track list")

    test_message_delete_seconds: int = Field(
        default=TEST_MESSAGE_DELETE_SECONDS,
        description="Lifetime of preview messages",
        ge=1,
        le=3600
    )

    startup_preview: bool = Field(
        default=False,
        description="Post a few current listings after startup, then delete them"
    )

    # ============================================================================
    # VALIDATORS
    # ============================================================================

    @field_validator('supply_overrides')
    @classmethod
    def validate_supply_overrides(cls, v):
        """Overrides must be positive counts"""
        bad = {symbol: supply for symbol, supply in v.items() if supply <= 0}
        if bad:
            raise ValueError(f"Supply overrides must be positive: {bad}")
        return v

    def validate_required(self) -> None:
        """
        Fail fast when the minimum settings to run are absent.

        Raises:
            ConfigurationError: listing every missing setting
        """
        missing = []
        if not self.discord_token.strip():
            missing.append('DISCORD_TOKEN')
        if not self.discord_channel_id:
            missing.append('DISCORD_CHANNEL_ID')
        if not self.owner_id:
            missing.append('OWNER_ID')

        if missing:
            raise ConfigurationError(
                f"Missing required settings: {', '.join(missing)}",
                error_code='CONFIG_MISSING',
                details={'missing': missing}
            )


# Singleton instance
_settings: Optional[TrackerSettings] = None


def get_settings() -> TrackerSettings:
    """
    Get singleton settings instance.

    Returns:
        TrackerSettings: Configured settings instance
    """
    global _settings
    if _settings is None:
        _settings = TrackerSettings()
    return _settings


def reload_settings() -> TrackerSettings:
    """
    Force reload settings from environment and `.env`.

    The previous instance is kept if the new environment fails validation.

    Returns:
        TrackerSettings: Current settings instance
    """
    global _settings
    try:
        _settings = TrackerSettings()
    except ValueError as e:
        if _settings is None:
            raise ConfigurationError(f"Invalid configuration: {e}", original_error=e)
        logger.error(f"Settings reload rejected, keeping previous values: {e}")
    return _settings


__all__ = ['get_settings', 'reload_settings', 'TrackerSettings']
