"""Loguru sink configuration."""

import sys

from loguru import logger

from agency.core.config import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings | None = None) -> None:
    """Configure loguru based on settings.

    Replaces the default handler with a colorized stderr sink and, when
    ``log_file`` is set, a daily rotating file sink.
    """
    settings = settings or get_settings()
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=LOG_FORMAT,
        colorize=True,
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            format=LOG_FORMAT,
        )
