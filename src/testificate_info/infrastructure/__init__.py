"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Discord (bot, cogs, voice, player and notifier adapters)
- Audio (yt-dlp resolver and stream acquirer, FFmpeg probing)
"""

from testificate_info.infrastructure.discord.adapters.voice_adapter import DiscordVoiceGateway
from testificate_info.infrastructure.discord.bot import create_bot

__all__ = [
    "create_bot",
    "DiscordVoiceGateway",
]
