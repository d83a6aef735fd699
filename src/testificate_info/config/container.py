"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for adapters, services and handlers. Components
are created on-demand and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.commands.play_track import PlayTrackHandler
    from ..application.interfaces.audio_resolver import SongResolver
    from ..application.interfaces.notifier import QueueNotifier
    from ..application.interfaces.stream_acquirer import AudioStream, StreamAcquirer
    from ..application.interfaces.voice_adapter import AudioPlayer, VoiceConnection, VoiceGateway
    from ..application.services.playback_queue import PlaybackQueue
    from ..application.services.queue_models import PlaybackPolicy
    from ..application.services.queue_registry import QueueRegistry
    from ..domain.shared.types import DiscordSnowflake
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    This container manages all application dependencies and their lifecycle.
    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: Bot | None = None

    # Infrastructure adapters
    _audio_resolver: SongResolver | None = None
    _stream_acquirer: StreamAcquirer | None = None
    _voice_gateway: VoiceGateway | None = None

    # Application services
    _playback_policy: PlaybackPolicy | None = None
    _queue_registry: QueueRegistry | None = None

    # Command handlers
    _play_track_handler: PlayTrackHandler | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Infrastructure Adapters ===

    @property
    def audio_resolver(self) -> SongResolver:
        if self._audio_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver

            self._audio_resolver = YtDlpResolver(
                self.settings.audio,
                strategy_delay=self.settings.playback.resolver_strategy_delay_seconds,
            )
        return self._audio_resolver

    @property
    def stream_acquirer(self) -> StreamAcquirer:
        if self._stream_acquirer is None:
            from ..infrastructure.audio.ytdlp_stream import YtDlpStreamAcquirer

            self._stream_acquirer = YtDlpStreamAcquirer(
                self.settings.audio,
                first_data_timeout=self.settings.playback.first_data_timeout_seconds,
                strategy_delay=self.settings.playback.strategy_delay_seconds,
            )
        return self._stream_acquirer

    @property
    def voice_gateway(self) -> VoiceGateway:
        if self._voice_gateway is None:
            from ..infrastructure.discord.adapters.voice_adapter import DiscordVoiceGateway

            self._voice_gateway = DiscordVoiceGateway(self.bot)
        return self._voice_gateway

    def create_player(self, stream: AudioStream) -> AudioPlayer:
        from ..infrastructure.discord.adapters.audio_player import DiscordAudioPlayer

        return DiscordAudioPlayer(stream, volume=self.settings.audio.default_volume)

    def create_notifier(self, channel_id: DiscordSnowflake) -> QueueNotifier:
        from ..infrastructure.discord.adapters.notifier import ChannelNotifier

        return ChannelNotifier(self.bot, channel_id)

    # === Application Services ===

    @property
    def playback_policy(self) -> PlaybackPolicy:
        if self._playback_policy is None:
            from ..application.services.queue_models import PlaybackPolicy

            self._playback_policy = PlaybackPolicy.from_settings(self.settings)
        return self._playback_policy

    def create_queue(
        self,
        guild_id: DiscordSnowflake,
        connection: VoiceConnection,
        notifier: QueueNotifier,
    ) -> PlaybackQueue:
        from ..application.services.playback_queue import PlaybackQueue

        return PlaybackQueue(
            guild_id=guild_id,
            connection=connection,
            acquirer=self.stream_acquirer,
            player_factory=self.create_player,
            notifier=notifier,
            policy=self.playback_policy,
        )

    @property
    def queue_registry(self) -> QueueRegistry:
        if self._queue_registry is None:
            from ..application.services.queue_registry import QueueRegistry

            self._queue_registry = QueueRegistry(self.create_queue)
        return self._queue_registry

    # === Command Handlers ===

    @property
    def play_track_handler(self) -> PlayTrackHandler:
        if self._play_track_handler is None:
            from ..application.commands.play_track import PlayTrackHandler

            self._play_track_handler = PlayTrackHandler(
                queue_registry=self.queue_registry,
                song_resolver=self.audio_resolver,
                max_track_duration_seconds=self.settings.audio.max_track_duration_seconds,
            )
        return self._play_track_handler

    # === Lifecycle ===

    async def shutdown(self) -> None:
        """Destroy every queue and drop its voice connection."""
        if self._queue_registry is not None:
            try:
                await self._queue_registry.shutdown()
            except Exception as exc:
                logger.warning(LogTemplates.REGISTRY_SHUTDOWN_FAILED, exc)


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
