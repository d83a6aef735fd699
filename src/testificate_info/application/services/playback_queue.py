"""Per-guild playback queue and the state machine that drives it.

One :class:`PlaybackQueue` exists per guild while the bot sits in voice.
It owns the FIFO of pending entries, the entry currently being started or
played, the player for that entry and the retry budget. Everything runs on
the event loop; the only suspension points are stream acquisition and the
fixed delays between retries and tracks.

Transitions::

    IDLE --dequeue--> STARTING --stream--> PLAYING --idle/error--> IDLE
                         |  ^
          recoverable    v  | backoff
                       RETRYING          (retries exhausted -> IDLE, skip)

    any --destroy()--> DESTROYED

A retried track stays ``current`` and is retried in place, so no other
pending entry can start before it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from ...domain.music.entities import QueueEntry, Track
from ...domain.music.value_objects import FailureCategory, QueueState
from ...domain.shared.exceptions import (
    AcquisitionFailed,
    BusinessRuleViolationError,
    ConnectionUnavailable,
    InvalidOperationError,
    PlaybackFailed,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ...domain.shared.types import DiscordSnowflake
from ..interfaces.voice_adapter import PlayerEvent
from .queue_models import PlaybackPolicy, QueueSnapshot

if TYPE_CHECKING:
    from ..interfaces.notifier import QueueNotifier
    from ..interfaces.stream_acquirer import AudioStream, StreamAcquirer
    from ..interfaces.voice_adapter import AudioPlayer, PlayerFactory, VoiceConnection

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PlaybackQueue:
    """FIFO of tracks for one guild plus the player currently consuming it."""

    def __init__(
        self,
        *,
        guild_id: DiscordSnowflake,
        connection: VoiceConnection,
        acquirer: StreamAcquirer,
        player_factory: PlayerFactory,
        notifier: QueueNotifier,
        policy: PlaybackPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._guild_id = guild_id
        self._connection = connection
        self._acquirer = acquirer
        self._player_factory = player_factory
        self._notifier = notifier
        self._policy = policy or PlaybackPolicy()
        self._sleep = sleep

        self._pending: deque[QueueEntry] = deque()
        self._current: QueueEntry | None = None
        self._state = QueueState.IDLE
        self._retry_count = 0
        self._player: AudioPlayer | None = None
        self._destroyed = False
        self._driver: asyncio.Task[None] | None = None

        logger.debug(LogTemplates.QUEUE_CREATED, guild_id)

    # ── Read-only state ────────────────────────────────────────────

    @property
    def guild_id(self) -> DiscordSnowflake:
        return self._guild_id

    @property
    def connection(self) -> VoiceConnection:
        return self._connection

    @property
    def notifier(self) -> QueueNotifier:
        return self._notifier

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def current(self) -> QueueEntry | None:
        return self._current

    @property
    def pending(self) -> list[QueueEntry]:
        return list(self._pending)

    @property
    def is_playing(self) -> bool:
        return self._state is QueueState.PLAYING

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def player(self) -> AudioPlayer | None:
        return self._player

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            state=self._state,
            current=self._current,
            pending=list(self._pending),
            retry_count=self._retry_count,
        )

    # ── Commands ───────────────────────────────────────────────────

    def enqueue(self, track: Track, requested_by: str | None = None) -> QueueEntry:
        """Append a track and start playback if the queue is idle.

        Raises:
            ConnectionUnavailable: the queue or its voice connection is gone.
            BusinessRuleViolationError: the queue is full.
        """
        self._ensure_usable()

        if len(self._pending) >= self._policy.max_queue_size:
            raise BusinessRuleViolationError(
                rule="MAX_QUEUE_SIZE",
                message=ErrorMessages.QUEUE_FULL.format(max_size=self._policy.max_queue_size),
            )

        position = len(self._pending) + (1 if self._current is not None else 0) + 1
        entry = QueueEntry(track=track, position=position, requested_by=requested_by)
        self._pending.append(entry)
        logger.info(LogTemplates.QUEUE_ENQUEUED, track.title, position, self._guild_id)

        self._kick()
        return entry

    def skip(self) -> Track | None:
        """Stop the current player; its idle event advances the queue."""
        if self._destroyed or self._state is not QueueState.PLAYING:
            return None
        if self._player is None or self._current is None:
            return None

        track = self._current.track
        logger.info(LogTemplates.QUEUE_SKIP, track.title, self._guild_id)
        self._player.stop()
        return track

    def destroy(self) -> None:
        """Clear everything and refuse further work. Idempotent."""
        if self._destroyed:
            return

        self._destroyed = True
        self._pending.clear()
        self._current = None
        self._retry_count = 0
        self._release_player()
        self._transition(QueueState.DESTROYED)
        logger.info(LogTemplates.QUEUE_DESTROYED, self._guild_id)

    async def wait_until_settled(self) -> None:
        """Wait for the in-flight start sequence, if any, to finish."""
        while (driver := self._driver) is not None and not driver.done():
            await asyncio.wait({driver})

    # ── Driver ─────────────────────────────────────────────────────

    def _ensure_usable(self) -> None:
        if not self._destroyed and self._connection.is_destroyed:
            self.destroy()
        if self._destroyed:
            raise ConnectionUnavailable(self._guild_id)

    def _can_dequeue(self) -> bool:
        return not self._destroyed and self._state is QueueState.IDLE and bool(self._pending)

    def _kick(self) -> None:
        if not self._can_dequeue():
            return
        if self._driver is not None and not self._driver.done():
            return

        self._driver = asyncio.create_task(
            self._drive(), name=f"playback-queue-{self._guild_id}"
        )
        self._driver.add_done_callback(self._on_driver_done)

    def _on_driver_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                LogTemplates.QUEUE_TRACK_FAILED,
                self._current.title if self._current else "<none>",
                self._guild_id,
                repr(exc),
                exc_info=exc,
            )

    async def _drive(self) -> None:
        while self._can_dequeue():
            entry = self._pending.popleft()
            self._current = entry
            self._retry_count = 0
            self._transition(QueueState.STARTING)
            logger.info(LogTemplates.QUEUE_DEQUEUED, entry.title, self._guild_id)

            if await self._start(entry):
                return
            if self._destroyed:
                return
            await self._sleep(self._policy.advance_delay_seconds)

        if not self._destroyed and self._current is None and not self._pending:
            logger.info(LogTemplates.QUEUE_EMPTY, self._guild_id)

    async def _start(self, entry: QueueEntry) -> bool:
        """Acquire a stream for ``entry`` (retrying in place) and start it."""
        while True:
            stream, category = await self._acquire(entry.track)

            if self._destroyed:
                logger.debug(LogTemplates.QUEUE_STALE_CONTINUATION, self._guild_id)
                if stream is not None:
                    _cleanup_stream(stream)
                return False

            if stream is not None:
                return await self._begin_playback(entry, stream)

            if category.is_recoverable and self._retry_count < self._policy.max_retries:
                self._retry_count += 1
                self._transition(QueueState.RETRYING)
                logger.warning(
                    LogTemplates.QUEUE_RETRY_SCHEDULED,
                    entry.title,
                    self._guild_id,
                    self._retry_count,
                    self._policy.max_retries,
                    category.value,
                )
                await self._sleep(self._policy.retry_backoff_seconds)
                if self._destroyed:
                    logger.debug(LogTemplates.QUEUE_STALE_CONTINUATION, self._guild_id)
                    return False
                self._transition(QueueState.STARTING)
                continue

            await self._abandon(entry, category)
            return False

    async def _acquire(self, track: Track) -> tuple[AudioStream | None, FailureCategory]:
        try:
            return await self._acquirer.open_stream(track), FailureCategory.GENERIC
        except AcquisitionFailed as exc:
            return None, exc.category
        except Exception:
            logger.exception(LogTemplates.STREAM_ABANDONED, track.title, "unexpected error")
            return None, FailureCategory.GENERIC

    async def _begin_playback(self, entry: QueueEntry, stream: AudioStream) -> bool:
        if self._connection.is_destroyed:
            _cleanup_stream(stream)
            await self._lose_connection(entry)
            return False

        self._release_player()
        player = self._player_factory(stream)
        player.once(PlayerEvent.PLAYING, partial(self._on_player_playing, player, entry))
        player.once(PlayerEvent.IDLE, partial(self._on_player_idle, player))
        player.once(PlayerEvent.ERROR, partial(self._on_player_error, player))
        self._player = player

        try:
            self._connection.subscribe(player)
        except ConnectionUnavailable:
            _cleanup_stream(stream)
            await self._lose_connection(entry)
            return False
        except Exception as exc:
            _cleanup_stream(stream)
            self._release_player()
            self._current = None
            self._retry_count = 0
            self._transition(QueueState.IDLE)
            await self._report_playback_failure(entry, exc)
            return False

        self._transition(QueueState.PLAYING)
        self._retry_count = 0
        return True

    async def _abandon(self, entry: QueueEntry, category: FailureCategory) -> None:
        logger.warning(LogTemplates.QUEUE_TRACK_FAILED, entry.title, self._guild_id, category.value)
        self._current = None
        self._retry_count = 0
        self._transition(QueueState.IDLE)
        await self._notify(self._notifier.track_failed, entry, category)

    async def _report_playback_failure(self, entry: QueueEntry, cause: BaseException | None) -> None:
        failure = PlaybackFailed(entry.title, cause)
        logger.warning(LogTemplates.QUEUE_PLAYBACK_ERROR, self._guild_id, failure)
        await self._notify(self._notifier.playback_failed, entry)

    async def _lose_connection(self, entry: QueueEntry) -> None:
        logger.warning(LogTemplates.QUEUE_CONNECTION_LOST, self._guild_id, entry.title)
        await self._notify(self._notifier.connection_lost, entry)
        self.destroy()

    # ── Player listeners ───────────────────────────────────────────

    def _is_stale(self, player: AudioPlayer, event: PlayerEvent) -> bool:
        if self._destroyed:
            logger.debug(LogTemplates.QUEUE_STALE_CONTINUATION, self._guild_id)
            return True
        if player is not self._player:
            logger.debug(LogTemplates.QUEUE_STALE_PLAYER_EVENT, event.value, self._guild_id)
            return True
        return False

    async def _on_player_playing(self, player: AudioPlayer, entry: QueueEntry) -> None:
        if self._is_stale(player, PlayerEvent.PLAYING):
            return
        await self._notify(self._notifier.now_playing, entry)

    async def _on_player_idle(self, player: AudioPlayer, *_: Any) -> None:
        if self._is_stale(player, PlayerEvent.IDLE):
            return
        self._finish_current()
        await self._advance_after_delay()

    async def _on_player_error(self, player: AudioPlayer, error: BaseException | None = None) -> None:
        if self._is_stale(player, PlayerEvent.ERROR):
            return

        entry = self._current
        self._finish_current()
        if entry is not None:
            await self._report_playback_failure(entry, error)
        await self._advance_after_delay()

    def _finish_current(self) -> None:
        if self._player is not None:
            self._player.remove_all_listeners()
            self._player = None
        self._current = None
        self._retry_count = 0
        self._transition(QueueState.IDLE)

    async def _advance_after_delay(self) -> None:
        await self._sleep(self._policy.advance_delay_seconds)
        if self._destroyed:
            logger.debug(LogTemplates.QUEUE_STALE_CONTINUATION, self._guild_id)
            return
        if not self._pending:
            if self._state is QueueState.IDLE:
                logger.info(LogTemplates.QUEUE_EMPTY, self._guild_id)
            return
        self._kick()

    # ── Helpers ────────────────────────────────────────────────────

    def _release_player(self) -> None:
        player, self._player = self._player, None
        if player is None:
            return
        player.remove_all_listeners()
        player.stop()

    def _transition(self, target: QueueState) -> None:
        if not self._state.can_transition_to(target):
            raise InvalidOperationError(
                operation=f"transition to {target.value}",
                current_state=self._state.value,
                message=ErrorMessages.INVALID_TRANSITION.format(
                    current=self._state.value, target=target.value
                ),
            )
        logger.debug(LogTemplates.QUEUE_TRANSITION, self._guild_id, self._state.value, target.value)
        self._state = target

    async def _notify(self, publish: Callable[..., Awaitable[None]], *args: Any) -> None:
        if self._destroyed:
            return
        try:
            await publish(*args)
        except Exception:
            logger.exception(LogTemplates.QUEUE_NOTIFY_FAILED, self._guild_id)


def _cleanup_stream(stream: AudioStream) -> None:
    try:
        stream.cleanup()
    except Exception as exc:
        logger.debug(LogTemplates.PLAYER_SOURCE_CLEANUP_ERROR, exc)
