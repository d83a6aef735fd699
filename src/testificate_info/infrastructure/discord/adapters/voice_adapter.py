"""Discord voice adapter implementing VoiceGateway and VoiceConnection."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord

from testificate_info.application.interfaces.voice_adapter import VoiceConnection, VoiceGateway
from testificate_info.domain.shared.exceptions import ConnectionUnavailable
from testificate_info.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from testificate_info.application.interfaces.voice_adapter import AudioPlayer

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT: float = 10.0


class DiscordVoiceConnection(VoiceConnection):
    """Wraps one ``discord.VoiceClient``."""

    def __init__(self, voice_client: discord.VoiceClient) -> None:
        self._voice_client = voice_client
        self._guild_id = voice_client.guild.id
        self._destroyed = False

    @property
    def voice_client(self) -> discord.VoiceClient:
        return self._voice_client

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def channel_id(self) -> int | None:
        channel = self._voice_client.channel
        return channel.id if channel else None

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed or not self._voice_client.is_connected()

    def mark_lost(self) -> None:
        self._destroyed = True

    def subscribe(self, player: AudioPlayer) -> None:
        if self.is_destroyed:
            raise ConnectionUnavailable(self._guild_id)

        if self._voice_client.is_playing() or self._voice_client.is_paused():
            self._voice_client.stop()

        try:
            player.start(self._voice_client)
        except discord.ClientException as exc:
            if not self._voice_client.is_connected():
                raise ConnectionUnavailable(self._guild_id, str(exc)) from exc
            raise

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True

        try:
            await self._voice_client.disconnect(force=True)
            logger.info(LogTemplates.VOICE_DISCONNECTED, self._guild_id)
        except Exception as exc:
            logger.warning(LogTemplates.VOICE_DISCONNECT_FAILED, self._guild_id, exc)


class DiscordVoiceGateway(VoiceGateway):
    """Opens voice connections with the bot undeafened so it can listen."""

    def __init__(self, bot: discord.Client) -> None:
        self._bot = bot
        self._connections: dict[int, DiscordVoiceConnection] = {}

    def _get_voice_client(self, guild: discord.Guild) -> discord.VoiceClient | None:
        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    def get_connection(self, guild_id: int) -> DiscordVoiceConnection | None:
        connection = self._connections.get(guild_id)
        if connection is not None and connection.is_destroyed:
            del self._connections[guild_id]
            return None
        return connection

    def forget(self, guild_id: int) -> None:
        """Mark a connection the gateway dropped on its own as lost."""
        connection = self._connections.pop(guild_id, None)
        if connection is not None:
            connection.mark_lost()
            logger.info(LogTemplates.VOICE_CONNECTION_FORGOTTEN, guild_id)

    async def join(self, guild_id: int, channel_id: int) -> DiscordVoiceConnection | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            logger.warning(LogTemplates.GUILD_NOT_FOUND, guild_id)
            return None

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            logger.warning(LogTemplates.CHANNEL_NOT_VOICE, channel_id)
            return None

        vc = self._get_voice_client(guild)
        try:
            async with asyncio.timeout(CONNECT_TIMEOUT):
                if vc is not None and vc.is_connected():
                    if vc.channel is None or vc.channel.id != channel_id:
                        await vc.move_to(channel)
                        logger.info(LogTemplates.VOICE_MOVED, channel.name)
                else:
                    vc = await channel.connect(self_deaf=False, self_mute=False)
                    logger.info(LogTemplates.VOICE_CONNECTED, channel.name, guild.name)
        except TimeoutError:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id)
            return None
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            return None
        except discord.Forbidden:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel_id)
            return None

        existing = self.get_connection(guild_id)
        if existing is not None and existing.voice_client is vc:
            return existing

        connection = DiscordVoiceConnection(vc)
        self._connections[guild_id] = connection
        return connection
