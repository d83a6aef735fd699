"""AudioPlayer backed by a discord.py voice client."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, cast

import discord

from testificate_info.application.interfaces.voice_adapter import AudioPlayer, PlayerEvent
from testificate_info.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from testificate_info.application.interfaces.stream_acquirer import AudioStream

logger = logging.getLogger(__name__)


class DiscordAudioPlayer(AudioPlayer):
    """Plays one stream through a ``discord.VoiceClient``.

    discord.py reports the end of a source from its player thread; that
    callback is bridged back onto the event loop with
    ``run_coroutine_threadsafe`` before any listener runs.
    """

    def __init__(self, stream: AudioStream, *, volume: float = 0.5) -> None:
        super().__init__()
        self._stream = stream
        self._volume = volume
        self._source: discord.PCMVolumeTransformer | None = None
        self._voice_client: discord.VoiceClient | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started: asyncio.Task[bool] | None = None
        self._released = False

    @property
    def guild_id(self) -> int | None:
        return self._voice_client.guild.id if self._voice_client else None

    def start(self, transport: discord.VoiceClient) -> None:
        self._loop = asyncio.get_running_loop()
        self._voice_client = transport
        self._source = discord.PCMVolumeTransformer(
            cast(discord.AudioSource, self._stream), volume=self._volume
        )

        try:
            transport.play(self._source, after=self._after)
        except Exception:
            self._voice_client = None
            self._source = None
            self._cleanup_unstarted()
            raise

        logger.info(LogTemplates.PLAYER_STARTED, self.guild_id)
        self._started = self._loop.create_task(self.emit(PlayerEvent.PLAYING))

    def _after(self, error: Exception | None = None) -> None:
        """Runs on discord.py's player thread."""
        logger.debug(LogTemplates.PLAYER_FINISHED, self.guild_id, error)
        loop = self._loop
        if loop is None or loop.is_closed():
            return

        if error is not None:
            coro = self.emit(PlayerEvent.ERROR, error)
        else:
            coro = self.emit(PlayerEvent.IDLE)
        asyncio.run_coroutine_threadsafe(coro, loop)

    def stop(self) -> None:
        vc = self._voice_client
        if vc is None or self._source is None:
            self._cleanup_unstarted()
            return

        if self._started is not None and not self._started.done():
            self._started.cancel()

        if vc.source is self._source and (vc.is_playing() or vc.is_paused()):
            vc.stop()
            logger.info(LogTemplates.PLAYER_STOPPED, self.guild_id)

    def _cleanup_unstarted(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            self._stream.cleanup()
        except Exception as exc:
            logger.debug(LogTemplates.PLAYER_SOURCE_CLEANUP_ERROR, exc)

    @property
    def is_playing(self) -> bool:
        vc = self._voice_client
        return vc is not None and vc.source is self._source and vc.is_playing()
