"""
Domain Layer

Contains pure playback logic:
- shared/: Cross-cutting types, messages and exceptions
- music/: Tracks, queue entries and queue/failure value objects
"""

from testificate_info.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
