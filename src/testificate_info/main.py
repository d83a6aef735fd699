#!/usr/bin/env python3
"""Main entry point for the TestificateInfo bot."""

from __future__ import annotations

import json
import logging
import logging.config
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from testificate_info.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from testificate_info.config.settings import Settings

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"
_FALLBACK_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO", config_path: Path = _LOGGING_CONFIG_PATH) -> None:
    """Apply ``logging_config.json``, or a plain console format when it is unusable."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(level=level, format=_FALLBACK_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logger.warning(LogTemplates.LOGGING_CONFIG_FALLBACK, config_path)

    logging.getLogger().setLevel(level)


def startup_warnings(settings: Settings) -> list[str]:
    """Problems that leave the bot able to log in but unable to play anything."""
    warnings: list[str] = []
    if shutil.which("ffmpeg") is None:
        warnings.append(ErrorMessages.FFMPEG_NOT_FOUND)

    cookies_file = settings.audio.cookies_file
    if cookies_file is not None and not Path(cookies_file).expanduser().is_file():
        warnings.append(ErrorMessages.COOKIES_FILE_MISSING.format(path=cookies_file))
    return warnings


def run(settings: Settings, token: str) -> int:
    from testificate_info.config.container import create_container
    from testificate_info.infrastructure.discord.bot import create_bot

    bot = create_bot(create_container(settings), settings)
    try:
        logger.info(LogTemplates.BOT_STARTING_RUN)
        bot.run_with_graceful_shutdown(token)
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1
    else:
        logger.info(LogTemplates.BOT_STOPPED)
    return 0


def main() -> int:
    from testificate_info.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    token = settings.bot_token
    if not token:
        logger.error(ErrorMessages.DISCORD_TOKEN_REQUIRED)
        return 1

    logger.info(LogTemplates.BOT_STARTING, settings.environment)
    for warning in startup_warnings(settings):
        logger.warning(LogTemplates.BOT_STARTUP_WARNING, warning)

    return run(settings, token)


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
