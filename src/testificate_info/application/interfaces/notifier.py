"""Port interface for publishing queue notifications to a chat channel."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import QueueEntry
    from ...domain.music.value_objects import FailureCategory


class QueueNotifier(ABC):
    """Receives at most one message per track start and per track failure.

    Notification is fire-and-forget: implementations must not raise.
    """

    @abstractmethod
    async def now_playing(self, entry: "QueueEntry") -> None:
        ...

    @abstractmethod
    async def track_failed(self, entry: "QueueEntry", category: "FailureCategory") -> None:
        """A track was skipped after acquisition failed for ``category``."""
        ...

    @abstractmethod
    async def playback_failed(self, entry: "QueueEntry") -> None:
        """The player errored after the stream had started."""
        ...

    @abstractmethod
    async def connection_lost(self, entry: "QueueEntry") -> None:
        ...
