"""SongResolver implementation using yt-dlp for URL resolution and search."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Final, cast

from yt_dlp import YoutubeDL

from testificate_info.application.interfaces.audio_resolver import SongResolver
from testificate_info.application.services.strategy_chain import (
    NamedAttempt,
    StrategiesExhausted,
    first_success,
)
from testificate_info.config.settings import AudioSettings
from testificate_info.domain.music.entities import Track
from testificate_info.domain.shared.exceptions import ResolutionFailed
from testificate_info.domain.shared.messages import ErrorMessages, LogTemplates
from testificate_info.infrastructure.audio.models import (
    ANDROID_USER_AGENT,
    CACHE_MAX_SIZE,
    CACHE_TTL,
    DEFAULT_SEARCH_LIMIT,
    DESKTOP_USER_AGENT,
    LOG_URL_TRUNCATE,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)

logger = logging.getLogger(__name__)

# ── Module-level state and patterns ────────────────────────────────────

_info_cache: dict[str, CacheEntry] = {}

YOUTUBE_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:https?://)?(?:www\.|m\.|music\.)?"
    r"(?:youtube\.com/(?:watch\?|shorts/|embed/|live/)|youtu\.be/)",
    re.IGNORECASE,
)

YOUTUBE_ID_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?:[?&]v=|youtu\.be/|/shorts/|/embed/|/live/)([a-zA-Z0-9_-]{11})"
)


def extract_video_id(url: str) -> str | None:
    match = YOUTUBE_ID_PATTERN.search(url)
    return match.group(1) if match else None


def clear_info_cache() -> None:
    _info_cache.clear()


class YtDlpResolver(SongResolver):
    """Resolves YouTube links through a fallback chain and text through search.

    Direct links are tried with, in order: Android client headers, desktop
    browser headers, the configured cookie session, a bare request and
    finally a search for the link's video id.
    """

    def __init__(
        self,
        settings: AudioSettings | None = None,
        *,
        strategy_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or AudioSettings()
        self._strategy_delay = strategy_delay
        self._sleep = sleep
        self._base_opts = YtDlpOpts()

    # ── Option sets per strategy ───────────────────────────────────

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _android_opts(self) -> YtDlpOpts:
        return self._get_opts(
            http_headers={"User-Agent": ANDROID_USER_AGENT},
            extractor_args={"youtube": {"player_client": ["android"]}},
        )

    def _desktop_opts(self) -> YtDlpOpts:
        return self._get_opts(
            http_headers={
                "User-Agent": DESKTOP_USER_AGENT,
                "Accept-Language": "en-US,en;q=0.9",
            },
            extractor_args={"youtube": {"player_client": ["web"]}},
        )

    def _cookie_opts(self) -> YtDlpOpts:
        return self._get_opts(cookiefile=self._settings.cookies_file)

    def _direct_attempts(self, url: str) -> list[NamedAttempt[YtDlpTrackInfo]]:
        attempts = [
            NamedAttempt("android-client", partial(self._extract_info, url, self._android_opts())),
            NamedAttempt("desktop-browser", partial(self._extract_info, url, self._desktop_opts())),
        ]
        if self._settings.cookies_file:
            attempts.append(
                NamedAttempt("cookie-session", partial(self._extract_info, url, self._cookie_opts()))
            )
        attempts.append(NamedAttempt("bare", partial(self._extract_info, url, self._get_opts())))
        attempts.append(NamedAttempt("id-search", partial(self._search_by_video_id, url)))
        return attempts

    # ── Blocking yt-dlp calls ──────────────────────────────────────

    @staticmethod
    def _parse_info(data: dict[str, Any]) -> YtDlpTrackInfo:
        return YtDlpTrackInfo.model_validate(data)

    def _extract_info_sync(self, url: str, opts: YtDlpOpts) -> YtDlpTrackInfo:
        with YoutubeDL(params=cast(Any, opts.to_params())) as ydl:
            data = ydl.extract_info(url, download=False)
        if not isinstance(data, dict):
            raise ResolutionFailed(url, ErrorMessages.NO_URL_IN_INFO_DICT)
        return self._parse_info(dict(data))

    def _search_sync(self, query: str, limit: int = 1) -> list[YtDlpTrackInfo]:
        search_query = f"ytsearch{limit}:{query}"
        with YoutubeDL(params=cast(Any, self._get_opts().to_params())) as ydl:
            data = ydl.extract_info(search_query, download=False)

        if not isinstance(data, dict):
            return []

        entries = data.get("entries", [])
        if not isinstance(entries, list):
            return []

        return [self._parse_info(dict(e)) for e in entries if e]

    # ── Async wrappers ─────────────────────────────────────────────

    async def _extract_info(self, url: str, opts: YtDlpOpts) -> YtDlpTrackInfo:
        return await asyncio.to_thread(self._extract_info_sync, url, opts)

    async def _search_first(self, query: str) -> YtDlpTrackInfo:
        logger.debug(LogTemplates.RESOLVER_SEARCHING, query)
        results = await asyncio.to_thread(self._search_sync, query, 1)
        if not results:
            raise ResolutionFailed(query, ErrorMessages.EMPTY_SEARCH)
        return results[0]

    async def _search_by_video_id(self, url: str) -> YtDlpTrackInfo:
        video_id = extract_video_id(url)
        if video_id is None:
            raise ResolutionFailed(url, ErrorMessages.NO_VIDEO_ID.format(url=url))
        return await self._search_first(video_id)

    async def _resolve_direct(self, url: str) -> YtDlpTrackInfo:
        cached = self._get_cached(url)
        if cached is not None:
            return cached

        info = await first_success(
            self._direct_attempts(url),
            label="resolver",
            delay=self._strategy_delay,
            sleep=self._sleep,
        )
        self._store_cached(url, info)
        return info

    # ── Cache ──────────────────────────────────────────────────────

    @staticmethod
    def _get_cached(url: str) -> YtDlpTrackInfo | None:
        cached = _info_cache.get(url)
        if cached is None:
            return None
        if time.time() - cached.cached_at < CACHE_TTL:
            logger.debug(LogTemplates.CACHE_HIT_URL, url[:LOG_URL_TRUNCATE])
            return cached.info
        _info_cache.pop(url, None)
        return None

    @staticmethod
    def _store_cached(url: str, info: YtDlpTrackInfo) -> None:
        now = time.time()
        _info_cache[url] = CacheEntry(info=info, cached_at=now)

        if len(_info_cache) > CACHE_MAX_SIZE:
            expired = [k for k, entry in _info_cache.items() if now - entry.cached_at >= CACHE_TTL]
            for k in expired:
                _info_cache.pop(k, None)
            if expired:
                logger.debug(LogTemplates.CACHE_EXPIRED_CLEANED, len(expired))

    # ── Conversion ─────────────────────────────────────────────────

    def _info_to_track(self, info: YtDlpTrackInfo) -> Track | None:
        url = info.canonical_url
        if not url:
            logger.warning(LogTemplates.YTDLP_NO_URL_IN_INFO_DICT)
            return None

        return Track(
            title=info.title,
            source_url=url,
            duration_seconds=info.duration_seconds,
            thumbnail_url=info.thumbnail,
        )

    # ── SongResolver ───────────────────────────────────────────────

    async def resolve(self, query: str) -> Track | None:
        query = query.strip()
        if not query:
            return None

        try:
            if self.is_direct_locator(query):
                info = await self._resolve_direct(query)
            else:
                info = await self._search_first(query)
        except (StrategiesExhausted, ResolutionFailed):
            logger.warning(LogTemplates.RESOLVER_NOT_FOUND, query)
            return None
        except Exception:
            logger.exception(LogTemplates.RESOLVER_FAILED, query)
            return None

        track = self._info_to_track(info)
        if track is None:
            logger.warning(LogTemplates.RESOLVER_NOT_FOUND, query)
        return track

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Track]:
        try:
            results = await asyncio.to_thread(self._search_sync, query, limit)
        except Exception:
            logger.exception(LogTemplates.YTDLP_FAILED_SEARCH, query)
            return []

        tracks: list[Track] = []
        for info in results:
            track = self._info_to_track(info)
            if track:
                tracks.append(track)
        return tracks

    def is_direct_locator(self, query: str) -> bool:
        return YOUTUBE_URL_PATTERN.match(query.strip()) is not None
