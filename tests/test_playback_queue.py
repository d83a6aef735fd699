"""Tests for the per-guild playback queue state machine."""

import asyncio
import logging
from unittest.mock import patch

import pytest
from conftest import (
    GUILD_ID,
    FakeStream,
    GatedSleep,
    ScriptedAcquirer,
    spin,
)

from testificate_info.application.interfaces.voice_adapter import PlayerEvent
from testificate_info.application.services.queue_models import PlaybackPolicy
from testificate_info.domain.music.value_objects import FailureCategory, QueueState
from testificate_info.domain.shared.exceptions import (
    AcquisitionFailed,
    BusinessRuleViolationError,
    ConnectionUnavailable,
)
from testificate_info.domain.shared.messages import LogTemplates


def timeout_failure() -> AcquisitionFailed:
    return AcquisitionFailed(FailureCategory.TIMEOUT, attempts=3)


class TestEnqueue:
    """Adding tracks to the queue."""

    @pytest.mark.asyncio
    async def test_first_track_gets_position_one_and_starts(self, make_queue, players, notifier, sample_track):
        """The first track is position 1 and begins playing."""
        queue = make_queue()

        entry = queue.enqueue(sample_track, requested_by="alice")
        await queue.wait_until_settled()

        assert entry.position == 1
        assert entry.requested_by == "alice"
        assert queue.state is QueueState.PLAYING
        assert queue.current == entry
        assert len(players) == 1
        assert players[0].start_calls == 1

    @pytest.mark.asyncio
    async def test_positions_count_current_and_pending(self, make_queue, make_track):
        """Positions reflect the playing track plus everything waiting."""
        queue = make_queue()

        first = queue.enqueue(make_track("A"))
        await queue.wait_until_settled()
        second = queue.enqueue(make_track("B"))
        third = queue.enqueue(make_track("C"))

        assert (first.position, second.position, third.position) == (1, 2, 3)
        assert [e.title for e in queue.pending] == ["B", "C"]

    @pytest.mark.asyncio
    async def test_queue_full_raises(self, make_queue, make_track):
        """Pending entries are capped by the policy."""
        queue = make_queue(policy=PlaybackPolicy(max_queue_size=2, advance_delay_seconds=0))

        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))

        with pytest.raises(BusinessRuleViolationError) as exc_info:
            queue.enqueue(make_track("C"))

        assert exc_info.value.rule == "MAX_QUEUE_SIZE"
        await queue.wait_until_settled()

    @pytest.mark.asyncio
    async def test_enqueue_after_destroy_raises(self, make_queue, sample_track):
        """A destroyed queue refuses new tracks."""
        queue = make_queue()
        queue.destroy()

        with pytest.raises(ConnectionUnavailable):
            queue.enqueue(sample_track)

    @pytest.mark.asyncio
    async def test_enqueue_on_dead_connection_destroys_queue(self, make_queue, connection, sample_track):
        """A dropped connection is noticed on the next enqueue."""
        queue = make_queue()
        connection.destroyed = True

        with pytest.raises(ConnectionUnavailable):
            queue.enqueue(sample_track)

        assert queue.destroyed is True
        assert queue.state is QueueState.DESTROYED


class TestPlaybackOrder:
    """Tracks play in the order they were added."""

    @pytest.mark.asyncio
    async def test_tracks_play_in_fifo_order(self, make_queue, make_track, players, notifier):
        """Each idle event starts the next pending track."""
        queue = make_queue()
        for title in ("A", "B", "C"):
            queue.enqueue(make_track(title))

        for index in range(3):
            await queue.wait_until_settled()
            player = players[index]
            await player.emit(PlayerEvent.PLAYING)
            await player.emit(PlayerEvent.IDLE)

        await queue.wait_until_settled()

        assert notifier.events == [
            ("now_playing", "A", 1),
            ("now_playing", "B", 2),
            ("now_playing", "C", 3),
        ]
        assert queue.state is QueueState.IDLE
        assert queue.current is None
        assert len(players) == 3

    @pytest.mark.asyncio
    async def test_single_track_returns_to_idle(self, make_queue, players, notifier, sample_track):
        """One track plays once and the queue goes quiet."""
        queue = make_queue()

        entry = queue.enqueue(sample_track)
        await queue.wait_until_settled()
        await players[0].emit(PlayerEvent.PLAYING)
        await players[0].emit(PlayerEvent.IDLE)
        await queue.wait_until_settled()
        await spin()

        assert entry.position == 1
        assert notifier.events == [("now_playing", "Song A", 1)]
        assert queue.state is QueueState.IDLE
        assert queue.current is None
        assert queue.snapshot().is_empty

    @pytest.mark.asyncio
    async def test_now_playing_sent_once_per_track(self, make_queue, players, notifier, sample_track):
        """A repeated PLAYING event does not produce a second message."""
        queue = make_queue()
        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert await players[0].emit(PlayerEvent.PLAYING) is True
        assert await players[0].emit(PlayerEvent.PLAYING) is False

        assert notifier.kinds() == ["now_playing"]

    @pytest.mark.asyncio
    async def test_duplicate_terminal_events_advance_once(self, make_queue, make_track, players):
        """Only the first terminal event of a player advances the queue."""
        queue = make_queue()
        for title in ("A", "B", "C"):
            queue.enqueue(make_track(title))
        await queue.wait_until_settled()

        await players[0].emit(PlayerEvent.IDLE)
        await players[0].emit(PlayerEvent.ERROR, RuntimeError("late"))
        await players[0].emit(PlayerEvent.IDLE)
        await queue.wait_until_settled()

        assert len(players) == 2
        assert queue.current.title == "B"
        assert [e.title for e in queue.pending] == ["C"]

    @pytest.mark.asyncio
    async def test_player_error_notifies_and_advances(self, make_queue, make_track, players, notifier):
        """A player error reports the failure and moves on."""
        queue = make_queue()
        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        await players[0].emit(PlayerEvent.ERROR, RuntimeError("ffmpeg died"))
        await queue.wait_until_settled()

        assert ("playback_failed", "A", None) in notifier.events
        assert queue.current.title == "B"
        assert queue.state is QueueState.PLAYING

    @pytest.mark.asyncio
    async def test_new_player_per_track_releases_previous(self, make_queue, make_track, players):
        """A finished player has no listeners left once the next one starts."""
        queue = make_queue()
        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        await players[0].emit(PlayerEvent.IDLE)
        await queue.wait_until_settled()

        assert players[0] is not players[1]
        assert players[0].listener_count == 0
        assert queue.player is players[1]


class TestSkip:
    """Skipping the current track."""

    @pytest.mark.asyncio
    async def test_skip_stops_player_and_returns_track(self, make_queue, make_track, players):
        """Skip only stops the player; the idle event advances."""
        queue = make_queue()
        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        skipped = queue.skip()

        assert skipped.title == "A"
        assert players[0].stop_calls == 1
        assert queue.current.title == "A"

        await players[0].emit(PlayerEvent.IDLE)
        await queue.wait_until_settled()

        assert queue.current.title == "B"

    @pytest.mark.asyncio
    async def test_double_skip_does_not_double_advance(self, make_queue, make_track, players):
        """Two skips for the same player end the track only once."""
        queue = make_queue()
        for title in ("A", "B", "C"):
            queue.enqueue(make_track(title))
        await queue.wait_until_settled()

        queue.skip()
        queue.skip()
        await players[0].emit(PlayerEvent.IDLE)
        await players[0].emit(PlayerEvent.IDLE)
        await queue.wait_until_settled()

        assert len(players) == 2
        assert queue.current.title == "B"
        assert [e.title for e in queue.pending] == ["C"]

    def test_skip_when_idle_returns_none(self, make_queue):
        """Nothing to skip on an idle queue."""
        queue = make_queue()

        assert queue.skip() is None


class TestRetries:
    """Acquisition failures and the retry budget."""

    @pytest.mark.asyncio
    async def test_recoverable_failure_is_bounded(self, make_queue, notifier, players, sample_track):
        """A timing-out track gets max_retries + 1 attempts and one failure message."""
        acquirer = ScriptedAcquirer(timeout_failure())
        queue = make_queue(acquirer)

        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert len(acquirer.calls) == 3
        assert notifier.events == [("track_failed", "Song A", FailureCategory.TIMEOUT)]
        assert queue.state is QueueState.IDLE
        assert queue.retry_count == 0
        assert queue.current is None
        assert players == []

    @pytest.mark.asyncio
    async def test_zero_retry_budget_means_single_attempt(self, make_queue, notifier, sample_track):
        """With no retries configured a failure is final."""
        acquirer = ScriptedAcquirer(timeout_failure())
        queue = make_queue(acquirer, policy=PlaybackPolicy(max_retries=0, advance_delay_seconds=0))

        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert len(acquirer.calls) == 1
        assert notifier.kinds() == ["track_failed"]

    @pytest.mark.asyncio
    async def test_auth_failure_is_not_retried(self, make_queue, make_track, notifier, players):
        """Authentication failures skip straight to the next track."""
        acquirer = ScriptedAcquirer(
            AcquisitionFailed(FailureCategory.AUTHENTICATION_REQUIRED, attempts=5),
            FakeStream("B"),
        )
        queue = make_queue(acquirer)

        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        assert acquirer.calls == ["A", "B"]
        assert notifier.events == [
            ("track_failed", "A", FailureCategory.AUTHENTICATION_REQUIRED),
        ]
        assert queue.current.title == "B"
        assert queue.state is QueueState.PLAYING

    @pytest.mark.asyncio
    async def test_unavailable_failure_is_not_retried(self, make_queue, notifier, sample_track):
        """Removed or private videos are never retried."""
        acquirer = ScriptedAcquirer(AcquisitionFailed(FailureCategory.UNAVAILABLE, attempts=3))
        queue = make_queue(acquirer)

        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert len(acquirer.calls) == 1
        assert notifier.events == [("track_failed", "Song A", FailureCategory.UNAVAILABLE)]

    @pytest.mark.asyncio
    async def test_retry_then_success_resets_counter(self, make_queue, notifier, players, sample_track):
        """A track that recovers plays with a fresh retry counter."""
        acquirer = ScriptedAcquirer(timeout_failure(), FakeStream())
        queue = make_queue(acquirer)

        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert len(acquirer.calls) == 2
        assert queue.state is QueueState.PLAYING
        assert queue.retry_count == 0
        assert len(players) == 1
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_retried_track_stays_current(self, make_queue, make_track):
        """Other pending tracks wait while a track is retried in place."""
        sleep = GatedSleep()
        acquirer = ScriptedAcquirer(timeout_failure(), FakeStream())
        queue = make_queue(acquirer, sleep=sleep)

        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await spin()

        assert queue.state is QueueState.RETRYING
        assert queue.current.title == "A"
        assert queue.retry_count == 1
        assert [e.title for e in queue.pending] == ["B"]

        sleep.release()
        await queue.wait_until_settled()

        assert queue.current.title == "A"
        assert queue.state is QueueState.PLAYING

    @pytest.mark.asyncio
    async def test_unexpected_acquirer_error_counts_as_generic(self, make_queue, notifier, sample_track):
        """An unclassified exception is retried like a generic failure."""
        acquirer = ScriptedAcquirer(RuntimeError("boom"))
        queue = make_queue(acquirer)

        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert len(acquirer.calls) == 3
        assert notifier.events == [("track_failed", "Song A", FailureCategory.GENERIC)]


class TestDestroy:
    """Stopping and tearing down a queue."""

    @pytest.mark.asyncio
    async def test_destroy_stops_player_and_clears_state(self, make_queue, make_track, players):
        """Destroy drops the player's listeners and stops it."""
        queue = make_queue()
        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        queue.destroy()

        assert queue.state is QueueState.DESTROYED
        assert queue.current is None
        assert queue.pending == []
        assert queue.player is None
        assert players[0].stop_calls == 1
        assert players[0].listener_count == 0

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, make_queue, players, sample_track):
        """A second destroy performs no further player actions."""
        queue = make_queue()
        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        queue.destroy()
        queue.destroy()

        assert players[0].stop_calls == 1

    @pytest.mark.asyncio
    async def test_no_notifications_after_destroy_during_retry(self, make_queue, notifier, players, sample_track):
        """A retry backoff that ends after destroy does nothing."""
        sleep = GatedSleep()
        acquirer = ScriptedAcquirer(timeout_failure(), FakeStream())
        queue = make_queue(acquirer, sleep=sleep)

        queue.enqueue(sample_track)
        await spin()
        assert queue.state is QueueState.RETRYING

        queue.destroy()
        sleep.release()
        await queue.wait_until_settled()
        await spin()

        assert len(acquirer.calls) == 1
        assert notifier.events == []
        assert players == []
        assert queue.state is QueueState.DESTROYED

    @pytest.mark.asyncio
    async def test_player_events_after_destroy_are_ignored(self, make_queue, make_track, players, notifier):
        """Late transport events on a destroyed queue have no effect."""
        queue = make_queue()
        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        queue.destroy()
        await players[0].emit(PlayerEvent.PLAYING)
        await players[0].emit(PlayerEvent.IDLE)
        await spin()

        assert notifier.events == []
        assert len(players) == 1

    @pytest.mark.asyncio
    async def test_destroy_during_advance_delay_prevents_next_track(self, make_queue, make_track, players):
        """Destroying while waiting to advance keeps the next track from starting."""
        sleep = GatedSleep()
        queue = make_queue(sleep=sleep)
        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        idle = players[0].emit(PlayerEvent.IDLE)
        queue_task = asyncio.ensure_future(idle)
        await spin()
        queue.destroy()
        sleep.release()
        await queue_task

        assert len(players) == 1
        assert queue.state is QueueState.DESTROYED

    @pytest.mark.asyncio
    async def test_connection_lost_before_playback(self, make_queue, connection, notifier, players, sample_track):
        """A connection dropped while acquiring destroys the queue with one message."""
        queue = make_queue()

        queue.enqueue(sample_track)
        connection.destroyed = True
        await queue.wait_until_settled()

        assert notifier.events == [("connection_lost", "Song A", None)]
        assert queue.destroyed is True
        assert players == []


class TestSubscribeFailure:
    """The voice connection refusing a player is a terminal playback failure."""

    @pytest.mark.asyncio
    async def test_failure_notifies_once_and_returns_to_idle(self, make_queue, connection, notifier, players, sample_track, caplog):
        stream = FakeStream("A")
        queue = make_queue(ScriptedAcquirer(stream))
        connection.subscribe_error = RuntimeError("opus encoder missing")
        caplog.set_level(logging.WARNING)

        queue.enqueue(sample_track)
        await queue.wait_until_settled()

        assert notifier.events == [("playback_failed", "Song A", None)]
        assert queue.state is QueueState.IDLE
        assert queue.current is None
        assert queue.destroyed is False
        assert stream.cleaned_up is True
        assert players[0].stop_calls == 1
        assert players[0].listener_count == 0
        assert any("Playback of 'Song A' failed" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_next_track_starts_after_failure(self, make_queue, make_track, connection, notifier, players):
        first, second = FakeStream("A"), FakeStream("B")
        queue = make_queue(ScriptedAcquirer(first, second))
        connection.subscribe_error = RuntimeError("opus encoder missing")

        queue.enqueue(make_track("A"))
        queue.enqueue(make_track("B"))
        await queue.wait_until_settled()

        assert notifier.kinds() == ["playback_failed"]
        assert first.cleaned_up is True
        assert second.cleaned_up is False
        assert queue.current.title == "B"
        assert queue.state is QueueState.PLAYING
        assert players[1].start_calls == 1


class TestStreamFallbackEndToEnd:
    """Queue driven by the real yt-dlp stream acquirer with faked extraction."""

    @pytest.mark.asyncio
    async def test_two_failed_strategies_then_success(self, make_queue, players, notifier, sample_track, caplog):
        """Strategy fallback happens inside one acquisition, not as a queue retry."""
        from testificate_info.config.settings import AudioSettings
        from testificate_info.infrastructure.audio.ytdlp_stream import YtDlpStreamAcquirer

        acquirer = YtDlpStreamAcquirer(
            AudioSettings(),
            first_data_timeout=1.0,
            strategy_delay=0,
            source_factory=lambda url: FakeStream(url),
        )
        queue = make_queue(acquirer)
        caplog.set_level(logging.WARNING)

        with patch.object(
            acquirer,
            "_extract_stream_url_sync",
            side_effect=[
                TimeoutError("timed out"),
                TimeoutError("timed out"),
                "https://rr1.example.com/audio",
            ],
        ):
            queue.enqueue(sample_track)
            await queue.wait_until_settled()

        failed = [r for r in caplog.records if r.msg == LogTemplates.STRATEGY_FAILED]
        assert len(failed) == 2

        await players[0].emit(PlayerEvent.PLAYING)

        assert queue.state is QueueState.PLAYING
        assert queue.retry_count == 0
        assert notifier.events == [("now_playing", "Song A", 1)]
        assert queue.guild_id == GUILD_ID
