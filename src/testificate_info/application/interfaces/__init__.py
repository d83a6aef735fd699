"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from testificate_info.application.interfaces.audio_resolver import SongResolver
from testificate_info.application.interfaces.notifier import QueueNotifier
from testificate_info.application.interfaces.stream_acquirer import AudioStream, StreamAcquirer
from testificate_info.application.interfaces.voice_adapter import (
    AudioPlayer,
    PlayerEvent,
    PlayerFactory,
    VoiceConnection,
    VoiceGateway,
)

__all__ = [
    "SongResolver",
    "StreamAcquirer",
    "AudioStream",
    "QueueNotifier",
    "AudioPlayer",
    "PlayerEvent",
    "PlayerFactory",
    "VoiceConnection",
    "VoiceGateway",
]
