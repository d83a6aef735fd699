"""Port interfaces for voice connections and the players they carry."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from testificate_info.domain.shared.messages import LogTemplates
from testificate_info.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from .stream_acquirer import AudioStream

logger = logging.getLogger(__name__)


class PlayerEvent(Enum):
    """Events an audio player reports to its owner."""

    PLAYING = "playing"
    IDLE = "idle"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not PlayerEvent.PLAYING


PlayerListener = Callable[..., Awaitable[None]]


class AudioPlayer(ABC):
    """Single-use player bound to one stream.

    Listeners are one-shot: each fires at most once, and the first terminal
    event (idle or error) drops every other terminal listener, so a player
    can end a track exactly once no matter how often the transport reports it.
    """

    def __init__(self) -> None:
        self._listeners: dict[PlayerEvent, list[PlayerListener]] = {}
        self._terminated = False

    def once(self, event: PlayerEvent, listener: PlayerListener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def emit(self, event: PlayerEvent, *args: Any) -> bool:
        """Fire the listeners registered for ``event``; returns whether any ran."""
        if event.is_terminal:
            if self._terminated:
                return False
            self._terminated = True
            listeners = self._listeners.pop(event, [])
            self._listeners.pop(PlayerEvent.IDLE, None)
            self._listeners.pop(PlayerEvent.ERROR, None)
        else:
            listeners = self._listeners.pop(event, [])

        for listener in listeners:
            try:
                await listener(*args)
            except Exception:
                logger.exception(LogTemplates.PLAYER_LISTENER_ERROR, event.value)
        return bool(listeners)

    @abstractmethod
    def start(self, transport: Any) -> None:
        """Begin feeding the stream into ``transport``."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop playback; the transport then reports the track as ended."""
        ...

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        ...


PlayerFactory = Callable[["AudioStream"], AudioPlayer]


class VoiceConnection(ABC):
    """A live audio transport in one guild's voice channel."""

    @property
    @abstractmethod
    def guild_id(self) -> DiscordSnowflake:
        ...

    @property
    @abstractmethod
    def channel_id(self) -> DiscordSnowflake | None:
        ...

    @property
    @abstractmethod
    def is_destroyed(self) -> bool:
        """True once the connection was torn down or dropped by the gateway."""
        ...

    @abstractmethod
    def subscribe(self, player: AudioPlayer) -> None:
        """Route ``player``'s audio into this connection and start it.

        Raises:
            ConnectionUnavailable: the connection is gone.
        """
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Disconnect; safe to call more than once."""
        ...


class VoiceGateway(ABC):
    """Interface for opening voice connections."""

    @abstractmethod
    async def join(
        self, guild_id: DiscordSnowflake, channel_id: DiscordSnowflake
    ) -> VoiceConnection | None:
        """Connect (or move) to a voice channel with speak and listen enabled."""
        ...

    @abstractmethod
    def get_connection(self, guild_id: DiscordSnowflake) -> VoiceConnection | None:
        ...

    @abstractmethod
    def forget(self, guild_id: DiscordSnowflake) -> None:
        """Handle the transport's disconnected event for ``guild_id``."""
        ...
