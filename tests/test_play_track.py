"""Tests for the play command handler."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import GUILD_ID

from testificate_info.application.commands.play_track import (
    PlayTrackCommand,
    PlayTrackHandler,
    PlayTrackResult,
    PlayTrackStatus,
)
from testificate_info.application.interfaces.audio_resolver import SongResolver
from testificate_info.application.services.queue_models import PlaybackPolicy
from testificate_info.domain.shared.messages import LogTemplates


@pytest.fixture
def resolver(sample_track):
    resolver = MagicMock(spec=SongResolver)
    resolver.resolve = AsyncMock(return_value=sample_track)
    return resolver


@pytest.fixture
def handler(registry, resolver):
    return PlayTrackHandler(
        queue_registry=registry,
        song_resolver=resolver,
        max_track_duration_seconds=900,
    )


def command(query="never gonna give you up", requested_by="alice"):
    return PlayTrackCommand(guild_id=GUILD_ID, query=query, requested_by=requested_by)


class TestPlayTrackCommand:
    """Command validation."""

    def test_query_is_stripped(self):
        """Surrounding whitespace is removed."""
        assert command(query="  hello  ").query == "hello"

    def test_blank_query_rejected(self):
        """A whitespace-only query is not a valid command."""
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            command(query="   ")


class TestPlayTrackHandler:
    """Resolve, check and enqueue."""

    @pytest.mark.asyncio
    async def test_not_connected_without_queue(self, handler, resolver):
        """No queue means the bot never joined; the resolver is not called."""
        result = await handler.handle(command())

        assert result.status is PlayTrackStatus.NOT_CONNECTED
        resolver.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_queues_resolved_track(self, handler, registry, connection, notifier, sample_track):
        """A found track is enqueued and reported with its position."""
        queue = registry.create(GUILD_ID, connection, notifier)

        result = await handler.handle(command())

        assert result.is_success
        assert result.entry.track == sample_track
        assert result.entry.position == 1
        assert result.entry.requested_by == "alice"
        await queue.wait_until_settled()
        assert queue.current == result.entry

    @pytest.mark.asyncio
    async def test_track_not_found(self, handler, registry, connection, notifier, resolver):
        """A resolver miss is reported as not found."""
        registry.create(GUILD_ID, connection, notifier)
        resolver.resolve.return_value = None

        result = await handler.handle(command(query="zzzz"))

        assert result.status is PlayTrackStatus.TRACK_NOT_FOUND
        resolver.resolve.assert_awaited_once_with("zzzz")

    @pytest.mark.asyncio
    async def test_rejects_track_over_duration_cap(
        self, handler, registry, connection, notifier, resolver, make_track, caplog
    ):
        """A 20 minute track is refused against a 15 minute cap and never queued."""
        caplog.set_level(logging.INFO)
        queue = registry.create(GUILD_ID, connection, notifier)
        long_track = make_track("Long Mix", duration=1200)
        resolver.resolve.return_value = long_track

        result = await handler.handle(command())

        assert result.status is PlayTrackStatus.TOO_LONG
        assert result.track == long_track
        assert result.limit_seconds == 900
        assert queue.snapshot().is_empty
        assert any(r.msg == LogTemplates.PLAY_REJECTED_TOO_LONG for r in caplog.records)

    @pytest.mark.asyncio
    async def test_track_exactly_at_cap_is_accepted(self, handler, registry, connection, notifier, resolver, make_track):
        """The cap is inclusive."""
        registry.create(GUILD_ID, connection, notifier)
        resolver.resolve.return_value = make_track(duration=900)

        result = await handler.handle(command())

        assert result.is_success

    @pytest.mark.asyncio
    async def test_queue_left_during_resolution(self, handler, registry, connection, notifier, resolver, sample_track):
        """Leaving while the resolver runs reports not connected."""
        registry.create(GUILD_ID, connection, notifier)

        async def resolve_then_leave(query):
            await registry.leave(GUILD_ID)
            return sample_track

        resolver.resolve.side_effect = resolve_then_leave

        result = await handler.handle(command())

        assert result.status is PlayTrackStatus.NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_dead_connection_reports_not_connected(self, handler, registry, connection, notifier):
        """A connection that dropped silently is detected on enqueue."""
        registry.create(GUILD_ID, connection, notifier)
        connection.destroyed = True

        result = await handler.handle(command())

        assert result.status is PlayTrackStatus.NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_queue_full(self, resolver, connection, notifier, make_queue, make_track):
        """A full queue is reported rather than raised."""
        from testificate_info.application.services.queue_registry import QueueRegistry

        policy = PlaybackPolicy(max_queue_size=1, advance_delay_seconds=0)
        registry = QueueRegistry(lambda g, c, n: make_queue(conn=c, policy=policy))
        queue = registry.create(GUILD_ID, connection, notifier)
        queue.enqueue(make_track("Already waiting"))
        handler = PlayTrackHandler(
            queue_registry=registry, song_resolver=resolver, max_track_duration_seconds=900
        )

        result = await handler.handle(command())

        assert result.status is PlayTrackStatus.QUEUE_FULL
        await queue.wait_until_settled()


class TestPlayTrackResult:
    """Result helpers."""

    def test_error_is_not_success(self):
        assert not PlayTrackResult.error(PlayTrackStatus.TRACK_NOT_FOUND).is_success
