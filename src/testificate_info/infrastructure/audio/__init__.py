"""Audio infrastructure - yt-dlp resolver and stream acquirer."""

from testificate_info.infrastructure.audio.errors import classify_error
from testificate_info.infrastructure.audio.models import CacheEntry, YtDlpOpts, YtDlpTrackInfo
from testificate_info.infrastructure.audio.ytdlp_resolver import YtDlpResolver
from testificate_info.infrastructure.audio.ytdlp_stream import (
    DEFAULT_STRATEGIES,
    PrimedAudioSource,
    StreamStrategy,
    YtDlpStreamAcquirer,
)

__all__ = [
    "CacheEntry",
    "DEFAULT_STRATEGIES",
    "PrimedAudioSource",
    "StreamStrategy",
    "YtDlpOpts",
    "YtDlpResolver",
    "YtDlpStreamAcquirer",
    "YtDlpTrackInfo",
    "classify_error",
]
