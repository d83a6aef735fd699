"""Command and handler for queueing a track from a query or URL."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from testificate_info.domain.music.entities import QueueEntry, Track
from testificate_info.domain.shared.exceptions import (
    BusinessRuleViolationError,
    ConnectionUnavailable,
)
from testificate_info.domain.shared.messages import LogTemplates
from testificate_info.domain.shared.types import DiscordSnowflake, NonEmptyStr, PositiveInt

if TYPE_CHECKING:
    from ..interfaces.audio_resolver import SongResolver
    from ..services.queue_registry import QueueRegistry

logger = logging.getLogger(__name__)


class PlayTrackStatus(Enum):
    """Status codes for play track results."""

    QUEUED = "queued"
    NOT_CONNECTED = "not_connected"
    TRACK_NOT_FOUND = "track_not_found"
    TOO_LONG = "too_long"
    QUEUE_FULL = "queue_full"


class PlayTrackCommand(BaseModel):
    """Request to resolve a query and append the result to a guild queue."""

    model_config = ConfigDict(frozen=True, strict=True)

    guild_id: DiscordSnowflake
    query: NonEmptyStr
    requested_by: NonEmptyStr | None = None

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class PlayTrackResult(BaseModel):
    """Result of a play track command."""

    model_config = ConfigDict(frozen=True, strict=True)

    status: PlayTrackStatus
    entry: QueueEntry | None = None
    track: Track | None = None
    limit_seconds: PositiveInt | None = None

    @property
    def is_success(self) -> bool:
        return self.status is PlayTrackStatus.QUEUED

    @classmethod
    def success(cls, entry: QueueEntry) -> PlayTrackResult:
        return cls(status=PlayTrackStatus.QUEUED, entry=entry, track=entry.track)

    @classmethod
    def error(
        cls,
        status: PlayTrackStatus,
        track: Track | None = None,
        limit_seconds: int | None = None,
    ) -> PlayTrackResult:
        return cls(status=status, track=track, limit_seconds=limit_seconds)


class PlayTrackHandler:
    """Resolves a query, enforces the duration cap and enqueues the track.

    The queue is looked up again after resolution because ``stop`` or
    ``leave`` may have replaced or dropped it in the meantime.
    """

    def __init__(
        self,
        *,
        queue_registry: QueueRegistry,
        song_resolver: SongResolver,
        max_track_duration_seconds: int,
    ) -> None:
        self._registry = queue_registry
        self._resolver = song_resolver
        self._max_duration = max_track_duration_seconds

    async def handle(self, command: PlayTrackCommand) -> PlayTrackResult:
        if self._registry.get(command.guild_id) is None:
            return PlayTrackResult.error(PlayTrackStatus.NOT_CONNECTED)

        track = await self._resolver.resolve(command.query)
        if track is None:
            return PlayTrackResult.error(PlayTrackStatus.TRACK_NOT_FOUND)

        if track.exceeds(self._max_duration):
            logger.info(
                LogTemplates.PLAY_REJECTED_TOO_LONG,
                track.title,
                command.guild_id,
                track.duration_seconds,
                self._max_duration,
            )
            return PlayTrackResult.error(
                PlayTrackStatus.TOO_LONG, track=track, limit_seconds=self._max_duration
            )

        queue = self._registry.get(command.guild_id)
        if queue is None:
            return PlayTrackResult.error(PlayTrackStatus.NOT_CONNECTED, track=track)

        try:
            entry = queue.enqueue(track, requested_by=command.requested_by)
        except ConnectionUnavailable:
            return PlayTrackResult.error(PlayTrackStatus.NOT_CONNECTED, track=track)
        except BusinessRuleViolationError:
            return PlayTrackResult.error(PlayTrackStatus.QUEUE_FULL, track=track)

        logger.info(LogTemplates.PLAY_ENQUEUED, track.title, command.guild_id, entry.position)
        return PlayTrackResult.success(entry)
