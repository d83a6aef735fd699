"""Discord cogs - command handlers."""

from testificate_info.infrastructure.discord.cogs.event_cog import EventCog
from testificate_info.infrastructure.discord.cogs.music_cog import MusicCog

__all__ = [
    "MusicCog",
    "EventCog",
]
