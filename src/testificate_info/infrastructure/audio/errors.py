"""Maps yt-dlp and FFmpeg failures onto :class:`FailureCategory`."""

from __future__ import annotations

import re
from typing import Final

from testificate_info.domain.music.value_objects import FailureCategory

# Checked in order; "Private video. Sign in if you've been granted access"
# must land on UNAVAILABLE, not on AUTHENTICATION_REQUIRED.
_PATTERNS: Final[list[tuple[FailureCategory, re.Pattern[str]]]] = [
    (
        FailureCategory.UNAVAILABLE,
        re.compile(
            r"private video|video unavailable|is unavailable|no longer available"
            r"|has been removed|been terminated|copyright|not available in your country"
            r"|members-only|members only",
            re.IGNORECASE,
        ),
    ),
    (
        FailureCategory.AUTHENTICATION_REQUIRED,
        re.compile(
            r"sign in to confirm|not a bot|login required|log in|sign in"
            r"|use --cookies|cookies|age-restricted|inappropriate for some users",
            re.IGNORECASE,
        ),
    ),
    (
        FailureCategory.FORMAT_UNAVAILABLE,
        re.compile(
            r"requested format|no video formats|no suitable format|format is not available",
            re.IGNORECASE,
        ),
    ),
    (
        FailureCategory.TIMEOUT,
        re.compile(r"timed out|timeout|time out", re.IGNORECASE),
    ),
]


def classify_error(exc: BaseException) -> FailureCategory:
    """Best-effort category for a failed extraction or stream start."""
    if isinstance(exc, TimeoutError):
        return FailureCategory.TIMEOUT

    text = str(exc)
    for category, pattern in _PATTERNS:
        if pattern.search(text):
            return category
    return FailureCategory.GENERIC
