"""StreamAcquirer implementation: yt-dlp format strategies feeding FFmpeg.

A strategy only counts as successful once FFmpeg has produced its first
20 ms PCM frame. That frame is kept and replayed by
:class:`PrimedAudioSource`, so probing costs no audio.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any, Final, cast

import discord
from yt_dlp import YoutubeDL

from testificate_info.application.interfaces.stream_acquirer import StreamAcquirer
from testificate_info.application.services.strategy_chain import (
    NamedAttempt,
    StrategiesExhausted,
    first_success,
)
from testificate_info.config.settings import AudioSettings
from testificate_info.domain.music.entities import Track
from testificate_info.domain.music.value_objects import FailureCategory
from testificate_info.domain.shared.exceptions import AcquisitionFailed
from testificate_info.domain.shared.messages import ErrorMessages, LogTemplates
from testificate_info.infrastructure.audio.errors import classify_error
from testificate_info.infrastructure.audio.models import ANDROID_USER_AGENT, YtDlpOpts

logger = logging.getLogger(__name__)

FIRST_DATA_TIMEOUT: Final[float] = 15.0
STRATEGY_DELAY: Final[float] = 1.5

SourceFactory = Callable[[str], discord.AudioSource]


@dataclass(frozen=True)
class StreamStrategy:
    """One way of asking yt-dlp for a playable audio URL."""

    name: str
    format: str
    use_cookies: bool = False


DEFAULT_STRATEGIES: Final[tuple[StreamStrategy, ...]] = (
    StreamStrategy("best-audio+cookies", "bestaudio/best", use_cookies=True),
    StreamStrategy("worst-audio+cookies", "worstaudio/worst", use_cookies=True),
    StreamStrategy("worst-audio", "worstaudio/worst"),
    StreamStrategy("any-audio", "ba*/b"),
    StreamStrategy("itag-filter", "140/251/250/249"),
)


def _cleanup_quietly(source: discord.AudioSource) -> None:
    try:
        source.cleanup()
    except Exception as exc:
        logger.debug(LogTemplates.PLAYER_SOURCE_CLEANUP_ERROR, exc)


class PrimedAudioSource(discord.AudioSource):
    """Wraps a source whose first frame has already been read."""

    def __init__(self, source: discord.AudioSource, first_frame: bytes) -> None:
        self._source = source
        self._first_frame: bytes | None = first_frame

    @classmethod
    async def prime(cls, source: discord.AudioSource, *, timeout: float) -> PrimedAudioSource:
        """Read one frame from ``source`` within ``timeout`` seconds.

        The source is cleaned up before any error leaves this method.

        Raises:
            TimeoutError: no frame arrived in time.
            EOFError: the source ended before producing any data.
        """
        try:
            async with asyncio.timeout(timeout):
                frame = await asyncio.to_thread(source.read)
        except TimeoutError as exc:
            _cleanup_quietly(source)
            raise TimeoutError(ErrorMessages.FIRST_FRAME_TIMEOUT.format(timeout=timeout)) from exc
        except BaseException:
            _cleanup_quietly(source)
            raise

        if not frame:
            _cleanup_quietly(source)
            raise EOFError(ErrorMessages.EMPTY_FIRST_FRAME)

        return cls(source, frame)

    def read(self) -> bytes:
        if self._first_frame is not None:
            frame, self._first_frame = self._first_frame, None
            return frame
        return self._source.read()

    def is_opus(self) -> bool:
        return self._source.is_opus()

    def cleanup(self) -> None:
        self._first_frame = None
        self._source.cleanup()


class YtDlpStreamAcquirer(StreamAcquirer):
    """Opens a primed FFmpeg source for a track, trying each strategy in turn."""

    def __init__(
        self,
        settings: AudioSettings | None = None,
        *,
        strategies: Sequence[StreamStrategy] = DEFAULT_STRATEGIES,
        first_data_timeout: float = FIRST_DATA_TIMEOUT,
        strategy_delay: float = STRATEGY_DELAY,
        source_factory: SourceFactory | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or AudioSettings()
        self._strategies = tuple(strategies)
        self._first_data_timeout = first_data_timeout
        self._strategy_delay = strategy_delay
        self._source_factory = source_factory or self._create_ffmpeg_source
        self._sleep = sleep
        self._base_opts = YtDlpOpts()

        if not self._settings.cookies_file and any(s.use_cookies for s in self._strategies):
            logger.info(LogTemplates.STREAM_COOKIE_STRATEGIES_SKIPPED)

    @property
    def active_strategies(self) -> list[StreamStrategy]:
        if self._settings.cookies_file:
            return list(self._strategies)
        return [s for s in self._strategies if not s.use_cookies]

    def _opts_for(self, strategy: StreamStrategy) -> YtDlpOpts:
        cookiefile = self._settings.cookies_file if strategy.use_cookies else None
        return self._base_opts.model_copy(
            update={"format": strategy.format, "cookiefile": cookiefile}
        )

    def _create_ffmpeg_source(self, stream_url: str) -> discord.AudioSource:
        # User-Agent must match yt-dlp's Android client to prevent YouTube 403
        base_before_opts = self._settings.ffmpeg_options.get("before_options", "")
        before_opts = f'{base_before_opts} -headers "User-Agent: {ANDROID_USER_AGENT}"'
        return discord.FFmpegPCMAudio(
            stream_url,
            before_options=before_opts.strip(),
            options=self._settings.ffmpeg_options.get("options", "-vn"),
        )

    def _extract_stream_url_sync(self, page_url: str, opts: YtDlpOpts) -> str:
        with YoutubeDL(params=cast(Any, opts.to_params())) as ydl:
            data = ydl.extract_info(page_url, download=False)

        if isinstance(data, dict):
            stream_url = data.get("url")
            if not stream_url:
                formats = [
                    f for f in data.get("requested_formats") or [] if f.get("acodec") != "none"
                ]
                stream_url = formats[-1].get("url") if formats else None
            if isinstance(stream_url, str) and stream_url:
                return stream_url

        raise ValueError(ErrorMessages.NO_STREAM_URL.format(title=page_url))

    async def _open_with(self, strategy: StreamStrategy, track: Track) -> PrimedAudioSource:
        stream_url = await asyncio.to_thread(
            self._extract_stream_url_sync, track.source_url, self._opts_for(strategy)
        )
        source = self._source_factory(stream_url)
        primed = await PrimedAudioSource.prime(source, timeout=self._first_data_timeout)
        logger.info(LogTemplates.STREAM_ACQUIRED, track.title, strategy.name)
        return primed

    async def open_stream(self, track: Track) -> PrimedAudioSource:
        attempts = [
            NamedAttempt(strategy.name, partial(self._open_with, strategy, track))
            for strategy in self.active_strategies
        ]

        try:
            return await first_success(
                attempts,
                label="stream",
                delay=self._strategy_delay,
                sleep=self._sleep,
            )
        except StrategiesExhausted as exc:
            category = FailureCategory.most_severe([classify_error(e) for e in exc.errors])
            logger.warning(LogTemplates.STREAM_ABANDONED, track.title, category.value)
            raise AcquisitionFailed(category, attempts=len(exc.failures)) from exc
