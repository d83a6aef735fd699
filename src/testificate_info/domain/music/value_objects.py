"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from enum import Enum


class QueueState(Enum):
    """Playback queue state with enforced transitions.

    State transitions:
    - IDLE -> STARTING (a track was dequeued)
    - STARTING -> PLAYING (stream acquired, player subscribed)
    - STARTING -> RETRYING (recoverable acquisition failure)
    - STARTING -> IDLE (track skipped)
    - RETRYING -> STARTING (backoff elapsed)
    - PLAYING -> IDLE (player finished or errored)
    - Any -> DESTROYED (stop, leave or disconnect)
    """

    IDLE = "idle"
    STARTING = "starting"
    PLAYING = "playing"
    RETRYING = "retrying"
    DESTROYED = "destroyed"

    def can_transition_to(self, target: QueueState) -> bool:
        """Check if transition to target state is valid."""
        if self is QueueState.DESTROYED:
            return False
        if target is QueueState.DESTROYED:
            return True

        valid_transitions = {
            QueueState.IDLE: {QueueState.STARTING},
            QueueState.STARTING: {
                QueueState.PLAYING,
                QueueState.RETRYING,
                QueueState.IDLE,
            },
            QueueState.RETRYING: {QueueState.STARTING, QueueState.IDLE},
            QueueState.PLAYING: {QueueState.IDLE},
        }
        return target in valid_transitions.get(self, set())


class FailureCategory(Enum):
    """Why a track could not be played, as surfaced to users."""

    AUTHENTICATION_REQUIRED = "authentication_required"
    UNAVAILABLE = "unavailable"
    FORMAT_UNAVAILABLE = "format_unavailable"
    TIMEOUT = "timeout"
    GENERIC = "generic"

    @property
    def is_recoverable(self) -> bool:
        """Retrying cannot help when the source wants a login or is gone."""
        return self not in {FailureCategory.AUTHENTICATION_REQUIRED, FailureCategory.UNAVAILABLE}

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def most_severe(cls, categories: list[FailureCategory]) -> FailureCategory:
        """Pick the category that best explains a set of failed attempts."""
        if not categories:
            return cls.GENERIC
        return max(categories, key=lambda c: c.severity)


_SEVERITY: dict[FailureCategory, int] = {
    FailureCategory.GENERIC: 0,
    FailureCategory.TIMEOUT: 1,
    FailureCategory.FORMAT_UNAVAILABLE: 2,
    FailureCategory.AUTHENTICATION_REQUIRED: 3,
    FailureCategory.UNAVAILABLE: 4,
}
