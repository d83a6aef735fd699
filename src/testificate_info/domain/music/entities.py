"""Core domain entities for the music bounded context."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from testificate_info.domain.shared.types import (
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    QueuePositionInt,
    TrackTitleStr,
)


def format_minutes_seconds(seconds: int) -> str:
    """Render a duration as ``minutes:seconds`` with zero-padded seconds."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


class Track(BaseModel):
    """Immutable value object representing a resolved, playable track."""

    model_config = ConfigDict(frozen=True, strict=True)

    title: TrackTitleStr
    source_url: HttpUrlStr
    duration_seconds: DurationSeconds = 0
    thumbnail_url: HttpUrlStr | None = None

    @property
    def duration_formatted(self) -> str:
        return format_minutes_seconds(self.duration_seconds)

    @property
    def has_known_duration(self) -> bool:
        return self.duration_seconds > 0

    def exceeds(self, max_seconds: int) -> bool:
        """Whether this track is longer than ``max_seconds``."""
        return self.duration_seconds > max_seconds


class QueueEntry(BaseModel):
    """A track waiting in (or dequeued from) a guild queue.

    The position is the one the track received when it was added and is
    what notifications show, even after earlier entries have played.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    track: Track
    position: QueuePositionInt
    requested_by: NonEmptyStr | None = None

    @property
    def title(self) -> str:
        return self.track.title
