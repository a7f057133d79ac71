"""
Configuration package for the Trip Planner store.
"""

from .settings import (
    Settings,
    Environment,
    LogLevel,
    StorageBackend,
    StorageSettings,
    RedisSettings,
    PhotoSearchSettings,
    FlightLookupSettings,
    get_settings,
    reload_settings,
)
from .loader import ConfigLoader, load_config_for_environment

__all__ = [
    "Settings",
    "Environment",
    "LogLevel",
    "StorageBackend",
    "StorageSettings",
    "RedisSettings",
    "PhotoSearchSettings",
    "FlightLookupSettings",
    "get_settings",
    "reload_settings",
    "ConfigLoader",
    "load_config_for_environment",
]
