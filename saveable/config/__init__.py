"""
Configuration package for the saveable engine.
"""

from .settings import (
    SaveableSettings,
    LogLevel,
    settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "SaveableSettings",
    "LogLevel",
    "settings",
    "get_settings",
    "reload_settings",
]
