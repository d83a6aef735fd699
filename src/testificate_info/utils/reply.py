"""Utility functions for formatting Discord messages."""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING

from testificate_info.domain.music.entities import format_minutes_seconds
from testificate_info.domain.shared.messages import DiscordUIMessages

if TYPE_CHECKING:
    from testificate_info.application.services.queue_models import QueueSnapshot
    from testificate_info.domain.music.entities import Track

QUEUE_LISTING_LIMIT = 10


@cache
def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def display_duration(track: Track) -> str:
    if not track.has_known_duration:
        return DiscordUIMessages.DURATION_LIVE
    return track.duration_formatted


def format_queue_listing(snapshot: QueueSnapshot, limit: int = QUEUE_LISTING_LIMIT) -> str:
    """Render the current entry, up to ``limit`` pending ones and the total runtime."""
    if snapshot.is_empty:
        return DiscordUIMessages.STATE_QUEUE_EMPTY

    lines = [DiscordUIMessages.QUEUE_HEADER]
    if snapshot.current is not None:
        lines.append(
            DiscordUIMessages.QUEUE_CURRENT.format(
                title=truncate(snapshot.current.title),
                duration=display_duration(snapshot.current.track),
            )
        )

    for index, entry in enumerate(snapshot.pending[:limit], start=1):
        lines.append(
            DiscordUIMessages.QUEUE_LINE.format(
                index=index,
                title=truncate(entry.title),
                duration=display_duration(entry.track),
            )
        )

    hidden = len(snapshot.pending) - limit
    if hidden > 0:
        lines.append(DiscordUIMessages.QUEUE_MORE.format(count=hidden))

    lines.append(
        DiscordUIMessages.QUEUE_TOTAL.format(
            duration=format_minutes_seconds(snapshot.total_duration_seconds)
        )
    )
    return "\n".join(lines)
