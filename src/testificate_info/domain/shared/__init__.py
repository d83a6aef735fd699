"""
Shared Domain Kernel

Contains exceptions and message catalogues shared across the bot.
"""

from testificate_info.domain.shared.exceptions import (
    AcquisitionFailed,
    BusinessRuleViolationError,
    ConnectionUnavailable,
    DomainError,
    InvalidOperationError,
    PlaybackFailed,
    ResolutionFailed,
)

__all__ = [
    "DomainError",
    "BusinessRuleViolationError",
    "InvalidOperationError",
    "ResolutionFailed",
    "AcquisitionFailed",
    "PlaybackFailed",
    "ConnectionUnavailable",
]
