"""Configuration module."""

from catmatch.config.logging import bind_task_context, configure_logging, get_logger
from catmatch.config.settings import Settings, get_settings, reset_settings

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "bind_task_context",
    "get_logger",
]
