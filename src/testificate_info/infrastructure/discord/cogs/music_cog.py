"""Prefix-command music cog: join, leave, play, skip, stop and queue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from testificate_info.application.commands.play_track import (
    PlayTrackCommand,
    PlayTrackResult,
    PlayTrackStatus,
)
from testificate_info.domain.music.entities import format_minutes_seconds
from testificate_info.domain.shared.messages import DiscordUIMessages, ErrorMessages
from testificate_info.utils.reply import format_queue_listing, truncate

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)


def guild_id_of(ctx: commands.Context) -> int:
    if ctx.guild is None:
        raise commands.NoPrivateMessage()
    return ctx.guild.id


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    @property
    def prefix(self) -> str:
        return self.container.settings.discord.command_prefix

    async def cog_check(self, ctx: commands.Context) -> bool:
        guild_id_of(ctx)
        return True

    async def _reply(self, ctx: commands.Context, message: str) -> None:
        await ctx.reply(message, mention_author=False)

    def format_play_result(self, result: PlayTrackResult, query: str) -> str:
        if result.status is PlayTrackStatus.QUEUED and result.entry is not None:
            return DiscordUIMessages.ACTION_QUEUED.format(
                title=truncate(result.entry.title),
                duration=result.entry.track.duration_formatted,
                position=result.entry.position,
            )
        if result.status is PlayTrackStatus.TOO_LONG and result.track is not None:
            return DiscordUIMessages.ERROR_TRACK_TOO_LONG.format(
                title=truncate(result.track.title),
                duration=result.track.duration_formatted,
                limit=format_minutes_seconds(result.limit_seconds or 0),
            )
        if result.status is PlayTrackStatus.TRACK_NOT_FOUND:
            return DiscordUIMessages.ERROR_TRACK_NOT_FOUND.format(query=truncate(query))
        if result.status is PlayTrackStatus.QUEUE_FULL:
            return DiscordUIMessages.ERROR_QUEUE_FULL
        return DiscordUIMessages.STATE_NOT_CONNECTED.format(prefix=self.prefix)

    @commands.command(name="join", help="Join your voice channel.")
    async def join(self, ctx: commands.Context) -> None:
        guild_id = guild_id_of(ctx)

        member = ctx.author
        if not isinstance(member, discord.Member) or not member.voice or not member.voice.channel:
            await self._reply(ctx, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
            return

        channel = member.voice.channel
        connection = await self.container.voice_gateway.join(guild_id, channel.id)
        if connection is None:
            await self._reply(ctx, DiscordUIMessages.ERROR_COULD_NOT_JOIN_VOICE)
            return

        self.container.queue_registry.create(
            guild_id,
            connection,
            self.container.create_notifier(ctx.channel.id),
        )
        await self._reply(
            ctx, DiscordUIMessages.ACTION_JOINED.format(channel=channel.name, prefix=self.prefix)
        )

    @commands.command(name="leave", aliases=["disconnect"], help="Leave voice and drop the queue.")
    async def leave(self, ctx: commands.Context) -> None:
        guild_id = guild_id_of(ctx)

        if not await self.container.queue_registry.leave(guild_id):
            connection = self.container.voice_gateway.get_connection(guild_id)
            if connection is None or connection.is_destroyed:
                await self._reply(ctx, DiscordUIMessages.STATE_NOT_CONNECTED.format(prefix=self.prefix))
                return
            await connection.destroy()

        await self._reply(ctx, DiscordUIMessages.ACTION_LEFT)

    @commands.command(name="play", aliases=["p"], help="Queue a song by name or YouTube link.")
    async def play(self, ctx: commands.Context, *, query: str = "") -> None:
        guild_id = guild_id_of(ctx)

        if not query.strip():
            await self._reply(ctx, DiscordUIMessages.ERROR_MISSING_QUERY.format(prefix=self.prefix))
            return

        command = PlayTrackCommand(
            guild_id=guild_id,
            query=query,
            requested_by=ctx.author.display_name or None,
        )
        result = await self.container.play_track_handler.handle(command)
        await self._reply(ctx, self.format_play_result(result, command.query))

    @commands.command(name="skip", aliases=["s"], help="Skip the current track.")
    async def skip(self, ctx: commands.Context) -> None:
        guild_id = guild_id_of(ctx)

        queue = self.container.queue_registry.get(guild_id)
        if queue is None:
            await self._reply(ctx, DiscordUIMessages.STATE_NOT_CONNECTED.format(prefix=self.prefix))
            return

        track = queue.skip()
        if track is None:
            await self._reply(ctx, DiscordUIMessages.STATE_NOTHING_PLAYING)
            return

        await self._reply(ctx, DiscordUIMessages.ACTION_SKIPPED.format(title=truncate(track.title)))

    @commands.command(name="stop", help="Clear the queue and stop playback, staying in voice.")
    async def stop(self, ctx: commands.Context) -> None:
        guild_id = guild_id_of(ctx)

        if not self.container.queue_registry.stop(guild_id):
            await self._reply(ctx, DiscordUIMessages.STATE_NOT_CONNECTED.format(prefix=self.prefix))
            return

        await self._reply(ctx, DiscordUIMessages.ACTION_STOPPED)

    @commands.command(name="queue", aliases=["q"], help="Show what is playing and what is next.")
    async def queue(self, ctx: commands.Context) -> None:
        guild_id = guild_id_of(ctx)

        queue = self.container.queue_registry.get(guild_id)
        if queue is None:
            await self._reply(ctx, DiscordUIMessages.STATE_NOT_CONNECTED.format(prefix=self.prefix))
            return

        await self._reply(ctx, format_queue_listing(queue.snapshot()))


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))
