"""Bot package initialization"""

# Import classes only when needed to avoid pulling discord.py into core tests
# Use direct imports in your code: from bot.discord_bot import MeTrackerBot
