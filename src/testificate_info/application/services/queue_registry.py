"""Guild-keyed registry of playback queues, owned by the command layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ...domain.shared.messages import LogTemplates
from ...domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ..interfaces.notifier import QueueNotifier
    from ..interfaces.voice_adapter import VoiceConnection
    from .playback_queue import PlaybackQueue

logger = logging.getLogger(__name__)

QueueFactory = Callable[[DiscordSnowflake, "VoiceConnection", "QueueNotifier"], "PlaybackQueue"]


class QueueRegistry:
    """Maps guild ids to their live :class:`PlaybackQueue`.

    Destroyed queues are never handed out; ``get`` drops them on sight.
    """

    def __init__(self, queue_factory: QueueFactory) -> None:
        self._queue_factory = queue_factory
        self._queues: dict[DiscordSnowflake, PlaybackQueue] = {}

    def __len__(self) -> int:
        return len(self._queues)

    def __contains__(self, guild_id: object) -> bool:
        return self.get(guild_id) is not None  # type: ignore[arg-type]

    def get(self, guild_id: DiscordSnowflake) -> PlaybackQueue | None:
        queue = self._queues.get(guild_id)
        if queue is not None and queue.destroyed:
            del self._queues[guild_id]
            return None
        return queue

    def create(
        self,
        guild_id: DiscordSnowflake,
        connection: VoiceConnection,
        notifier: QueueNotifier,
    ) -> PlaybackQueue:
        """Return the guild's queue for ``connection``, replacing a stale one."""
        existing = self.get(guild_id)
        if existing is not None:
            if existing.connection is connection and not connection.is_destroyed:
                return existing
            existing.destroy()
            logger.info(LogTemplates.REGISTRY_REPLACED, guild_id)

        queue = self._queue_factory(guild_id, connection, notifier)
        self._queues[guild_id] = queue
        return queue

    def stop(self, guild_id: DiscordSnowflake) -> bool:
        """Destroy the guild's queue but stay in voice with a fresh, empty one."""
        queue = self._queues.pop(guild_id, None)
        if queue is None:
            return False

        queue.destroy()
        if not queue.connection.is_destroyed:
            self._queues[guild_id] = self._queue_factory(guild_id, queue.connection, queue.notifier)
        logger.info(LogTemplates.REGISTRY_STOPPED, guild_id)
        return True

    async def leave(self, guild_id: DiscordSnowflake) -> bool:
        """Destroy the guild's queue and its voice connection."""
        queue = self._queues.pop(guild_id, None)
        if queue is None:
            return False

        queue.destroy()
        await queue.connection.destroy()
        logger.info(LogTemplates.REGISTRY_LEFT, guild_id)
        return True

    def discard(self, guild_id: DiscordSnowflake) -> None:
        """Forget a guild whose connection was dropped from the outside."""
        queue = self._queues.pop(guild_id, None)
        if queue is not None:
            queue.destroy()

    async def shutdown(self) -> None:
        queues, self._queues = list(self._queues.values()), {}
        for queue in queues:
            queue.destroy()
            await queue.connection.destroy()
        logger.info(LogTemplates.REGISTRY_SHUTDOWN, len(queues))
