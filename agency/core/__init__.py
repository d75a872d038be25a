"""Core module - configuration, logging and errors."""

from agency.core.config import Settings, clear_settings_cache, get_settings
from agency.core.logging import configure_logging

__all__ = [
    "Settings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
]
