"""Centralized message constants for error messages, log lines, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Queue Validation Errors
    QUEUE_FULL = "Queue is full (max {max_size} tracks)"
    INVALID_TRANSITION = "Cannot transition from {current} to {target}"

    # Audio/Stream Errors
    NO_URL_IN_INFO_DICT = "No URL found in info dict"
    NO_STREAM_URL = "yt-dlp returned no stream URL for {title}"
    EMPTY_FIRST_FRAME = "Stream ended before producing any audio"
    FIRST_FRAME_TIMEOUT = "No audio within {timeout:.0f}s"
    NO_VIDEO_ID = "Could not extract a video ID from {url}"
    EMPTY_SEARCH = "Search returned no results"

    # Configuration Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    DISCORD_TOKEN_REQUIRED = "DISCORD_TOKEN environment variable is required"
    FFMPEG_NOT_FOUND = "ffmpeg not found in PATH, playback will fail"
    COOKIES_FILE_MISSING = "Cookies file {path} does not exist, cookie strategies will fail"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Voice Operations
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_MOVED = "Moved to voice channel %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_DISCONNECT_FAILED = "Failed to disconnect voice in guild %s: %r"
    VOICE_BOT_LEFT = "Bot left voice in guild %s, discarding queue"
    CHANNEL_NOT_VOICE = "Channel %s is not a voice channel"
    GUILD_NOT_FOUND = "Guild %s not found"
    VOICE_CONNECTION_FORGOTTEN = "Voice connection for guild %s dropped externally"

    # Player
    PLAYER_STARTED = "Player started in guild %s"
    PLAYER_FINISHED = "Player finished in guild %s (error: %s)"
    PLAYER_STOPPED = "Player stopped in guild %s"
    PLAYER_LISTENER_ERROR = "Player listener for %s raised"
    PLAYER_SOURCE_CLEANUP_ERROR = "Error cleaning up audio source: %s"

    # Queue State Machine
    QUEUE_CREATED = "Created playback queue for guild %s"
    QUEUE_ENQUEUED = "Enqueued '%s' at position %s in guild %s"
    QUEUE_DEQUEUED = "Dequeued '%s' in guild %s"
    QUEUE_TRANSITION = "Guild %s queue %s -> %s"
    QUEUE_RETRY_SCHEDULED = "Retrying '%s' in guild %s (%s/%s) after %s failure"
    QUEUE_TRACK_FAILED = "Giving up on '%s' in guild %s: %s"
    QUEUE_PLAYBACK_ERROR = "Player error in guild %s: %s"
    QUEUE_EMPTY = "Queue empty in guild %s"
    QUEUE_DESTROYED = "Destroyed playback queue for guild %s"
    QUEUE_STALE_CONTINUATION = "Ignoring continuation for destroyed queue in guild %s"
    QUEUE_STALE_PLAYER_EVENT = "Ignoring %s from a replaced player in guild %s"
    QUEUE_SKIP = "Skipping '%s' in guild %s"
    QUEUE_CONNECTION_LOST = "Voice connection gone for guild %s while starting '%s'"
    QUEUE_NOTIFY_FAILED = "Failed to publish queue notification in guild %s"

    # Registry
    REGISTRY_REPLACED = "Replacing existing queue for guild %s"
    REGISTRY_STOPPED = "Stopped queue for guild %s, voice kept"
    REGISTRY_LEFT = "Left voice and dropped queue for guild %s"
    REGISTRY_SHUTDOWN = "Shutting down %s playback queue(s)"
    REGISTRY_SHUTDOWN_FAILED = "Failed shutting down playback queues: %r"

    # Strategy Chains
    STRATEGY_FAILED = "%s strategy '%s' failed (%s/%s): %s"
    STRATEGY_SUCCEEDED = "%s strategy '%s' succeeded (%s/%s)"
    STRATEGIES_EXHAUSTED = "%s: all %s strategies failed"

    # Resolver
    CACHE_HIT_URL = "Cache hit for URL: %s"
    CACHE_EXPIRED_CLEANED = "Cleaned %d expired cache entries"
    RESOLVER_SEARCHING = "Searching for '%s'"
    RESOLVER_NOT_FOUND = "Nothing found for '%s'"
    RESOLVER_FAILED = "Failed to resolve '%s'"
    YTDLP_NO_URL_IN_INFO_DICT = "No URL in yt-dlp info dict"
    YTDLP_FAILED_SEARCH = "Failed to search for: %s"

    # Stream Acquirer
    STREAM_ACQUIRED = "Acquired stream for '%s' via '%s'"
    STREAM_COOKIE_STRATEGIES_SKIPPED = "No cookies file configured, skipping cookie strategies"
    STREAM_ABANDONED = "Abandoning stream for '%s': %s"

    # Play Command
    PLAY_REJECTED_TOO_LONG = "Rejected '%s' in guild %s: %ss exceeds %ss"
    PLAY_ENQUEUED = "Play request '%s' queued in guild %s at %s"

    # Notifications
    NOTIFY_CHANNEL_MISSING = "Notification channel %s no longer reachable"
    NOTIFY_SEND_FAILED = "Failed to send notification to channel %s: %s"

    # Bot Lifecycle
    BOT_STARTING = "Starting TestificateInfo (environment=%s)"
    BOT_STARTING_RUN = "Starting bot event loop"
    BOT_STARTUP_WARNING = "Startup check: %s"
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"
    BOT_STOPPED = "Bot stopped"
    BOT_KEYBOARD_INTERRUPT = "Interrupted, shutting down"
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SETUP = "Running setup hook"
    BOT_SETUP_COMPLETE = "Setup complete"
    BOT_COG_LOADED = "Loaded cog %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Cogs loaded: %s ok, %s failed"
    BOT_READY = "Logged in as %s (id=%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guild(s)"
    BOT_COMMAND_ERROR = "Command '%s' failed: %r"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Could not send error message to channel"
    BOT_SHUTTING_DOWN = "Shutting down"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error shutting down container: %s"
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown exceeded %ss"
    BOT_SHUTDOWN_COMPLETE = "Shutdown complete"


class DiscordUIMessages:
    """User-facing chat text."""

    # State checks
    STATE_SERVER_ONLY = "❌ This command only works in a server."
    STATE_NEED_TO_BE_IN_VOICE = "❌ Join a voice channel first."
    STATE_NOT_CONNECTED = "❌ I'm not in a voice channel. Use `{prefix}join` first."
    STATE_NOTHING_PLAYING = "Nothing is playing right now."
    STATE_QUEUE_EMPTY = "📭 The queue is empty."

    # Actions
    ACTION_JOINED = "🔊 Joined **{channel}**. Requests go to `{prefix}play <song>`."
    ACTION_LEFT = "👋 Left the voice channel."
    ACTION_STOPPED = "⏹️ Stopped playback and cleared the queue."
    ACTION_SKIPPED = "⏭️ Skipped **{title}**."
    ACTION_QUEUED = "🎶 Added **{title}** ({duration}) at position **{position}**."

    # Errors
    ERROR_COULD_NOT_JOIN_VOICE = "❌ Couldn't join your voice channel."
    ERROR_MISSING_QUERY = "❌ Usage: `{prefix}play <song name or YouTube link>`"
    ERROR_TRACK_NOT_FOUND = "❌ Couldn't find anything for **{query}**."
    ERROR_TRACK_TOO_LONG = "⛔ **{title}** is {duration} long; the limit is {limit}."
    ERROR_QUEUE_FULL = "❌ The queue is full."
    ERROR_OCCURRED = "❌ Something went wrong: {error}"

    # Notifications
    NOW_PLAYING = "▶️ Now playing: **{title}** ({duration}) · queue position {position}"
    FAILURE_AUTHENTICATION_REQUIRED = (
        "🔒 **{title}** needs a signed-in YouTube session, skipping it."
    )
    FAILURE_UNAVAILABLE = "🚫 **{title}** is private or unavailable, skipping it."
    FAILURE_FORMAT_UNAVAILABLE = "🎚️ No playable audio format for **{title}**, skipping it."
    FAILURE_TIMEOUT = "⌛ **{title}** timed out while loading, skipping it."
    FAILURE_GENERIC = "⚠️ Couldn't play **{title}**, skipping it."
    FAILURE_PLAYBACK = "⚠️ Playback of **{title}** broke off, moving on."
    FAILURE_CONNECTION = "🔌 Lost the voice connection while starting **{title}**."

    # Queue listing
    QUEUE_HEADER = "📜 **Queue**"
    QUEUE_CURRENT = "▶️ {title} ({duration})"
    QUEUE_LINE = "`{index}.` {title} ({duration})"
    QUEUE_MORE = "…and {count} more"
    QUEUE_TOTAL = "⏱️ Total: {duration}"
    DURATION_LIVE = "live"
