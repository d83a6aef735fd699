"""Exception classes for domain-level and playback errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..music.value_objects import FailureCategory


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class BusinessRuleViolationError(DomainError):
    """Raised when a business rule is violated."""

    def __init__(self, rule: str, message: str | None = None) -> None:
        msg = message or f"Business rule violated: {rule}"
        super().__init__(msg, code="BUSINESS_RULE_VIOLATION")
        self.rule = rule


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


# ── Playback taxonomy ───────────────────────────────────────────────


class ResolutionFailed(DomainError):
    """No search results, or metadata could not be obtained for a query."""

    def __init__(self, query: str, message: str | None = None) -> None:
        super().__init__(message or f"Could not resolve '{query}'", code="RESOLUTION_FAILED")
        self.query = query


class AcquisitionFailed(DomainError):
    """Every stream strategy failed for a track.

    ``category`` carries the most significant failure seen so callers can
    word the user-facing message; ``attempts`` is the number of strategies
    that were tried.
    """

    def __init__(
        self,
        category: FailureCategory,
        attempts: int = 0,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"Stream acquisition failed ({category.value}) after {attempts} attempt(s)",
            code="ACQUISITION_FAILED",
        )
        self.category = category
        self.attempts = attempts


class PlaybackFailed(DomainError):
    """The player errored after a stream had been obtained."""

    def __init__(self, track_title: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Playback of '{track_title}' failed: {cause}", code="PLAYBACK_FAILED")
        self.track_title = track_title
        self.cause = cause


class ConnectionUnavailable(DomainError):
    """The voice session is missing or was destroyed at the moment of use."""

    def __init__(self, guild_id: int, message: str | None = None) -> None:
        super().__init__(
            message or f"No live voice connection for guild {guild_id}",
            code="CONNECTION_UNAVAILABLE",
        )
        self.guild_id = guild_id
