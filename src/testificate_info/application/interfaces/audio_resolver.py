"""Port interface for resolving tracks from queries and URLs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from testificate_info.domain.shared.types import NonEmptyStr, PositiveInt

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class SongResolver(ABC):
    """Interface for turning free text or a URL into a playable track."""

    @abstractmethod
    async def resolve(self, query: NonEmptyStr) -> "Track | None":
        """Resolve a query or URL to a track; ``None`` means not found. Never raises."""
        ...

    @abstractmethod
    async def search(self, query: NonEmptyStr, limit: PositiveInt = 5) -> list["Track"]:
        """Search for tracks matching a query, best match first."""
        ...

    @abstractmethod
    def is_direct_locator(self, query: NonEmptyStr) -> bool:
        """Whether the query has the provider's URL shape."""
        ...
