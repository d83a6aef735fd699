"""QueueNotifier that posts to the text channel a queue was created from."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from testificate_info.application.interfaces.notifier import QueueNotifier
from testificate_info.domain.music.value_objects import FailureCategory
from testificate_info.domain.shared.messages import DiscordUIMessages, LogTemplates
from testificate_info.utils.reply import truncate

if TYPE_CHECKING:
    from testificate_info.domain.music.entities import QueueEntry

logger = logging.getLogger(__name__)

NOW_PLAYING_COLOR = discord.Color.green()

FAILURE_MESSAGES: dict[FailureCategory, str] = {
    FailureCategory.AUTHENTICATION_REQUIRED: DiscordUIMessages.FAILURE_AUTHENTICATION_REQUIRED,
    FailureCategory.UNAVAILABLE: DiscordUIMessages.FAILURE_UNAVAILABLE,
    FailureCategory.FORMAT_UNAVAILABLE: DiscordUIMessages.FAILURE_FORMAT_UNAVAILABLE,
    FailureCategory.TIMEOUT: DiscordUIMessages.FAILURE_TIMEOUT,
    FailureCategory.GENERIC: DiscordUIMessages.FAILURE_GENERIC,
}


def build_now_playing_embed(entry: QueueEntry) -> discord.Embed:
    track = entry.track
    embed = discord.Embed(
        description=DiscordUIMessages.NOW_PLAYING.format(
            title=truncate(track.title),
            duration=track.duration_formatted,
            position=entry.position,
        ),
        color=NOW_PLAYING_COLOR,
        url=track.source_url,
    )
    if track.thumbnail_url:
        embed.set_thumbnail(url=track.thumbnail_url)
    if entry.requested_by:
        embed.set_footer(text=f"Requested by {entry.requested_by}")
    return embed


class ChannelNotifier(QueueNotifier):
    """Holds only the channel id and looks the channel up on every send."""

    def __init__(self, bot: discord.Client, channel_id: int) -> None:
        self._bot = bot
        self._channel_id = channel_id

    @property
    def channel_id(self) -> int:
        return self._channel_id

    async def _send(self, content: str | None = None, *, embed: discord.Embed | None = None) -> None:
        channel = self._bot.get_channel(self._channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            logger.debug(LogTemplates.NOTIFY_CHANNEL_MISSING, self._channel_id)
            return

        try:
            if embed is not None:
                await channel.send(embed=embed)
            else:
                await channel.send(content)
        except discord.HTTPException as exc:
            logger.warning(LogTemplates.NOTIFY_SEND_FAILED, self._channel_id, exc)

    async def now_playing(self, entry: QueueEntry) -> None:
        await self._send(embed=build_now_playing_embed(entry))

    async def track_failed(self, entry: QueueEntry, category: FailureCategory) -> None:
        template = FAILURE_MESSAGES.get(category, DiscordUIMessages.FAILURE_GENERIC)
        await self._send(template.format(title=truncate(entry.title)))

    async def playback_failed(self, entry: QueueEntry) -> None:
        await self._send(DiscordUIMessages.FAILURE_PLAYBACK.format(title=truncate(entry.title)))

    async def connection_lost(self, entry: QueueEntry) -> None:
        await self._send(DiscordUIMessages.FAILURE_CONNECTION.format(title=truncate(entry.title)))
