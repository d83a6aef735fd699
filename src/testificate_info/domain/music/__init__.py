"""
Music Bounded Context

Tracks, queue entries and the value objects driving the playback queue.
"""

from testificate_info.domain.music.entities import QueueEntry, Track
from testificate_info.domain.music.value_objects import FailureCategory, QueueState

__all__ = [
    # Entities
    "Track",
    "QueueEntry",
    # Value Objects
    "QueueState",
    "FailureCategory",
]
