"""
Discord adapter

- DiscordChannelSink: renders AlertPayloads as embeds in the alert channel
- MeTrackerBot: discord.Client with the slash-command tree, text-command
  intake and engine lifecycle
"""

from typing import Callable, Optional

import discord
from discord import app_commands

from config.constants import CLEANUP_BATCH_SIZE
from config.settings import TrackerSettings, get_settings, reload_settings
from core.commands import COMMAND_FAILED, dispatch_slash, dispatch_text
from core.engine import TrackerEngine
from core.models import AlertPayload, DeliveryReceipt
from core.rarity import RarityTier
from utils.logger import get_logger, log_error_with_context
from utils.exceptions import NotificationError


logger = get_logger(__name__)


RARITY_CHOICES = [app_commands.Choice(name=tier.value, value=tier.value) for tier in RarityTier]


def to_embed(payload: AlertPayload) -> discord.Embed:
    embed = discord.Embed(
        title=payload.title,
        description=payload.description,
        url=payload.url,
        color=payload.color
    )
    if payload.image_url:
        embed.set_image(url=payload.image_url)
    return embed


class DiscordChannelSink:
    """Chat sink bound to the configured alert channel"""

    def __init__(self, client: discord.Client, channel_id: Callable[[], int]):
        self._client = client
        self._channel_id = channel_id

    async def _channel(self) -> discord.abc.Messageable:
        channel_id = self._channel_id()
        channel = self._client.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self._client.fetch_channel(channel_id)
        except discord.HTTPException as e:
            raise NotificationError(
                f"Alert channel {channel_id} unavailable: {e}",
                error_code='CHANNEL_UNAVAILABLE',
                original_error=e
            )

    async def send(self, payload: AlertPayload, delete_after: Optional[float] = None) -> DeliveryReceipt:
        channel = await self._channel()
        try:
            message = await channel.send(embed=to_embed(payload), delete_after=delete_after)
        except discord.HTTPException as e:
            raise NotificationError(f"Discord rejected alert: {e}", original_error=e)
        return DeliveryReceipt(message_id=message.id, channel_id=channel.id)

    async def send_text(self, text: str) -> None:
        channel = await self._channel()
        try:
            await channel.send(text)
        except discord.HTTPException as e:
            raise NotificationError(f"Discord rejected message: {e}", original_error=e)

    async def purge_own_messages(self) -> int:
        """Delete this bot's messages, scanning the channel 100 at a time"""
        channel = await self._channel()
        own_id = self._client.user.id if self._client.user else None

        def is_own(message: discord.Message) -> bool:
            return message.author.id == own_id

        total = 0
        try:
            while True:
                deleted = await channel.purge(limit=CLEANUP_BATCH_SIZE, check=is_own)
                total += len(deleted)
                if len(deleted) < CLEANUP_BATCH_SIZE:
                    break
        except discord.HTTPException as e:
            raise NotificationError(
                f"Deleting messages failed after {total}: {e}",
                details={'deleted': total},
                original_error=e
            )
        logger.info(f"Cleanup deleted {total} bot messages")
        return total


class MeTrackerBot(discord.Client):

    def __init__(self, settings: Optional[TrackerSettings] = None):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents)

        self.tree = app_commands.CommandTree(self)
        self.sink = DiscordChannelSink(self, lambda: get_settings().discord_channel_id)
        self.engine = TrackerEngine(self.sink)
        self._guild_id = (settings or get_settings()).guild_id
        self._engine_started = False
        self._register_commands()

    async def setup_hook(self) -> None:
        if self._guild_id:
            guild = discord.Object(id=self._guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info(f"Synced {len(synced)} slash command(s) to guild {self._guild_id}")
        else:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash command(s) globally")

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        if self._engine_started:
            return
        self._engine_started = True
        try:
            await self.engine.startup()
        except Exception as e:
            log_error_with_context(logger, "Engine startup failed, polling anyway", e)
        await self.engine.run()

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.content.startswith('/'):
            return
        reload_settings()
        reply = await dispatch_text(self.engine.commands, message.content, message.author.id)
        if reply is None:
            return
        try:
            await message.reply(reply)
        except discord.HTTPException as e:
            logger.warning(f"Could not reply to command: {e}")

    async def close(self) -> None:
        if self._engine_started:
            await self.engine.stop()
        await super().close()

    async def _run_slash(self, interaction: discord.Interaction, name: str, **options) -> None:
        reload_settings()
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            reply = await dispatch_slash(self.engine.commands, name, interaction.user.id, **options)
        except Exception as e:
            log_error_with_context(logger, f"Slash command /{name} failed", e, command=name)
            reply = COMMAND_FAILED
        await interaction.followup.send(reply, ephemeral=True)

    def _register_commands(self) -> None:
        tree = self.tree

        @tree.command(name='metrack', description='Track new listings for a Magic Eden collection')
        @app_commands.describe(
            symbol='Magic Eden collection link or symbol',
            max_price='Only alert at or below this price (SOL, 0 for no limit)',
            min_rarity='Only alert at or above this rarity tier'
        )
        @app_commands.choices(min_rarity=RARITY_CHOICES)
        async def metrack(
            interaction: discord.Interaction,
            symbol: str,
            max_price: float,
            min_rarity: Optional[app_commands.Choice[str]] = None
        ):
            await self._run_slash(
                interaction, 'metrack',
                symbol=symbol, max_price=max_price,
                min_rarity=min_rarity.value if min_rarity else None
            )

        @tree.command(name='mesalestrack', description='Track sales for a Magic Eden collection')
        @app_commands.describe(
            symbol='Magic Eden collection link or symbol',
            max_price='Only alert at or below this price (SOL, 0 for no limit)',
            min_rarity='Only alert at or above this rarity tier'
        )
        @app_commands.choices(min_rarity=RARITY_CHOICES)
        async def mesalestrack(
            interaction: discord.Interaction,
            symbol: str,
            max_price: float,
            min_rarity: Optional[app_commands.Choice[str]] = None
        ):
            await self._run_slash(
                interaction, 'mesalestrack',
                symbol=symbol, max_price=max_price,
                min_rarity=min_rarity.value if min_rarity else None
            )

        @tree.command(name='meuntrack', description='Stop tracking listings for a collection')
        @app_commands.describe(symbol='Magic Eden collection link or symbol')
        async def meuntrack(interaction: discord.Interaction, symbol: str):
            await self._run_slash(interaction, 'meuntrack', symbol=symbol)

        @tree.command(name='mesalesuntrack', description='Stop tracking sales for a collection')
        @app_commands.describe(symbol='Magic Eden collection link or symbol')
        async def mesalesuntrack(interaction: discord.Interaction, symbol: str):
            await self._run_slash(interaction, 'mesalesuntrack', symbol=symbol)

        @tree.command(name='melist', description='Show tracked collections')
        async def melist(interaction: discord.Interaction):
            await self._run_slash(interaction, 'melist')

        @tree.command(name='metest', description='Clear seen caches so current events alert again')
        async def metest(interaction: discord.Interaction):
            await self._run_slash(interaction, 'metest')

        @tree.command(name='mecleanup', description="Delete this bot's messages in the channel")
        async def mecleanup(interaction: discord.Interaction):
            await self._run_slash(interaction, 'mecleanup')
