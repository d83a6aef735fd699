import asyncio

import pytest

from testificate_info.application.interfaces.notifier import QueueNotifier
from testificate_info.application.interfaces.stream_acquirer import StreamAcquirer
from testificate_info.application.interfaces.voice_adapter import (
    AudioPlayer,
    VoiceConnection,
    VoiceGateway,
)
from testificate_info.domain.shared.exceptions import ConnectionUnavailable

GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222
TEXT_CHANNEL_ID = 333333333333333333


# ============================================================================
# Fakes
# ============================================================================


class FakeStream:
    """Audio stream that records cleanup."""

    def __init__(self, name: str = "stream"):
        self.name = name
        self.cleaned_up = False

    def read(self) -> bytes:
        return b"\x00" * 3840

    def cleanup(self) -> None:
        self.cleaned_up = True


class FakePlayer(AudioPlayer):
    """Player that never emits on its own; tests drive ``emit`` directly."""

    def __init__(self, stream):
        super().__init__()
        self.stream = stream
        self.transport = None
        self.start_calls = 0
        self.stop_calls = 0
        self._playing = False

    def start(self, transport) -> None:
        self.start_calls += 1
        self.transport = transport
        self._playing = True

    def stop(self) -> None:
        self.stop_calls += 1
        self._playing = False

    @property
    def is_playing(self) -> bool:
        return self._playing


class FakeConnection(VoiceConnection):
    def __init__(self, guild_id: int = GUILD_ID, channel_id: int = CHANNEL_ID):
        self._guild_id = guild_id
        self._channel_id = channel_id
        self.destroyed = False
        self.subscribed: list[AudioPlayer] = []
        self.destroy_calls = 0
        self.subscribe_error: Exception | None = None

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def is_destroyed(self) -> bool:
        return self.destroyed

    def subscribe(self, player: AudioPlayer) -> None:
        if self.destroyed:
            raise ConnectionUnavailable(self._guild_id)
        if self.subscribe_error is not None:
            error, self.subscribe_error = self.subscribe_error, None
            raise error
        self.subscribed.append(player)
        player.start(self)

    async def destroy(self) -> None:
        self.destroy_calls += 1
        self.destroyed = True


class FakeGateway(VoiceGateway):
    def __init__(self):
        self.connections: dict[int, FakeConnection] = {}
        self.join_calls: list[tuple[int, int]] = []
        self.fail_join = False

    async def join(self, guild_id, channel_id):
        self.join_calls.append((guild_id, channel_id))
        if self.fail_join:
            return None
        connection = self.connections.get(guild_id)
        if connection is None or connection.is_destroyed:
            connection = FakeConnection(guild_id, channel_id)
            self.connections[guild_id] = connection
        return connection

    def get_connection(self, guild_id):
        return self.connections.get(guild_id)

    def forget(self, guild_id) -> None:
        connection = self.connections.pop(guild_id, None)
        if connection is not None:
            connection.destroyed = True


class RecordingNotifier(QueueNotifier):
    """Records every notification as ``(kind, title, detail)``."""

    def __init__(self):
        self.events: list[tuple] = []

    async def now_playing(self, entry) -> None:
        self.events.append(("now_playing", entry.title, entry.position))

    async def track_failed(self, entry, category) -> None:
        self.events.append(("track_failed", entry.title, category))

    async def playback_failed(self, entry) -> None:
        self.events.append(("playback_failed", entry.title, None))

    async def connection_lost(self, entry) -> None:
        self.events.append(("connection_lost", entry.title, None))

    def kinds(self) -> list[str]:
        return [event[0] for event in self.events]


class ScriptedAcquirer(StreamAcquirer):
    """Plays back a script of outcomes; the last one repeats.

    An outcome that is an exception instance is raised, anything else is
    returned as the stream.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[str] = []

    async def open_stream(self, track):
        self.calls.append(track.title)
        if not self.outcomes:
            return FakeStream(track.title)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class GatedSleep:
    """Sleep that blocks until released; records requested delays."""

    def __init__(self):
        self.calls: list[float] = []
        self._gate = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await self._gate.wait()

    def release(self) -> None:
        self._gate.set()


async def instant_sleep(delay: float) -> None:
    await asyncio.sleep(0)


async def spin(times: int = 5) -> None:
    """Let pending tasks on the loop run."""
    for _ in range(times):
        await asyncio.sleep(0)


# ============================================================================
# Domain Fixtures
# ============================================================================


@pytest.fixture
def make_track():
    """Factory for tracks with sensible defaults."""
    from testificate_info.domain.music.entities import Track

    def _make(title: str = "Song A", duration: int = 200, video_id: str = "dQw4w9WgXcQ"):
        return Track(
            title=title,
            source_url=f"https://www.youtube.com/watch?v={video_id}",
            duration_seconds=duration,
        )

    return _make


@pytest.fixture
def sample_track(make_track):
    """Create a sample 3:20 track."""
    return make_track()


@pytest.fixture
def fast_policy():
    """Playback policy without delays."""
    from testificate_info.application.services.queue_models import PlaybackPolicy

    return PlaybackPolicy(
        max_retries=2,
        retry_backoff_seconds=0,
        advance_delay_seconds=0,
        max_queue_size=50,
    )


# ============================================================================
# Queue Fixtures
# ============================================================================


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def players():
    """Every player the queue fixture's factory created, in order."""
    return []


@pytest.fixture
def make_queue(connection, notifier, players, fast_policy):
    """Factory for a PlaybackQueue wired to fakes."""
    from testificate_info.application.services.playback_queue import PlaybackQueue

    def _factory(stream):
        player = FakePlayer(stream)
        players.append(player)
        return player

    def _make(acquirer=None, *, sleep=instant_sleep, policy=None, conn=None):
        return PlaybackQueue(
            guild_id=GUILD_ID,
            connection=conn or connection,
            acquirer=acquirer or ScriptedAcquirer(),
            player_factory=_factory,
            notifier=notifier,
            policy=policy or fast_policy,
            sleep=sleep,
        )

    return _make


@pytest.fixture
def registry(make_queue):
    """QueueRegistry whose factory builds fake-backed queues."""
    from testificate_info.application.services.queue_registry import QueueRegistry

    created = []

    def _factory(guild_id, conn, queue_notifier):
        queue = make_queue(conn=conn)
        created.append(queue)
        return queue

    reg = QueueRegistry(_factory)
    reg.created = created
    return reg


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that would leak into Settings."""
    for name in (
        "ENVIRONMENT",
        "DEBUG",
        "LOG_LEVEL",
        "DISCORD_TOKEN",
        "DISCORD__TOKEN",
        "DISCORD__COMMAND_PREFIX",
        "AUDIO__COOKIES_FILE",
        "AUDIO__MAX_TRACK_DURATION_SECONDS",
        "PLAYBACK__MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
