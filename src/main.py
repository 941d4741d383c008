"""
ME Tracker - Main Entry Point

Watches Magic Eden collections for new listings and sales and posts
filtered, rarity-annotated alerts to a Discord channel.

Run with: python src/main.py   (or the `metracker` console script)
"""

import asyncio
import sys

from bot.discord_bot import MeTrackerBot
from config.settings import reload_settings
from utils.logger import setup_logging, get_logger
from utils.exceptions import ConfigurationError, MeTrackerError


logger = get_logger(__name__)


async def main():
    """Main entry point"""
    setup_logging()
    logger.info("Starting ME Tracker...")

    try:
        settings = reload_settings()
        settings.validate_required()
    except ConfigurationError as e:
        logger.critical(f"Cannot start: {e}")
        sys.exit(1)

    bot = MeTrackerBot(settings)
    try:
        async with bot:
            await bot.start(settings.discord_token)
    except MeTrackerError as e:
        logger.error(f"Tracker error: {e}")
        sys.exit(1)


def run():
    """Console-script entry point"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Tracker stopped by user")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
