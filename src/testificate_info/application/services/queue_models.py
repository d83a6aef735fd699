"""DTOs for the playback queue service."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ...domain.music.entities import QueueEntry
from ...domain.music.value_objects import QueueState
from ...domain.shared.types import DelaySeconds, MaxQueueSize, NonNegativeInt, RetryCount

if TYPE_CHECKING:
    from ...config.settings import Settings


class PlaybackPolicy(BaseModel):
    """Numeric limits the queue obeys; supplied by the caller, never hard-coded."""

    model_config = ConfigDict(frozen=True)

    max_retries: RetryCount = 2
    retry_backoff_seconds: DelaySeconds = 2.5
    advance_delay_seconds: DelaySeconds = 1.0
    max_queue_size: MaxQueueSize = 50

    @classmethod
    def from_settings(cls, settings: Settings) -> PlaybackPolicy:
        return cls(
            max_retries=settings.playback.max_retries,
            retry_backoff_seconds=settings.playback.retry_backoff_seconds,
            advance_delay_seconds=settings.playback.advance_delay_seconds,
            max_queue_size=settings.audio.max_queue_size,
        )


class QueueSnapshot(BaseModel):
    """Read-only view of a queue for display."""

    model_config = ConfigDict(frozen=True)

    state: QueueState
    current: QueueEntry | None = None
    pending: list[QueueEntry] = Field(default_factory=list)
    retry_count: NonNegativeInt = 0

    @property
    def is_empty(self) -> bool:
        return self.current is None and not self.pending

    @property
    def total_duration_seconds(self) -> int:
        entries = ([self.current] if self.current else []) + self.pending
        return sum(entry.track.duration_seconds for entry in entries)
