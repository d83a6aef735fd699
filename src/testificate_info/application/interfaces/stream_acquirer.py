"""Port interface for acquiring a playable audio stream for a track."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class AudioStream(Protocol):
    """A consumable audio byte stream owned by exactly one player."""

    def read(self) -> bytes: ...

    def cleanup(self) -> None: ...


class StreamAcquirer(ABC):
    """Interface for opening an audio stream for a resolved track."""

    @abstractmethod
    async def open_stream(self, track: "Track") -> AudioStream:
        """Return a stream that has already produced data.

        Raises:
            AcquisitionFailed: every strategy failed or timed out; the
                exception carries the failure category.
        """
        ...
