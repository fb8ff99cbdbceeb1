"""Modular Pydantic Settings v2 configuration.

One frozen settings model per domain (app, logging, rabbit), each loaded from
environment variables with its own prefix and cached by an LRU loader.

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. .env file (development only)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_logging_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .rabbit import RabbitSettings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "RabbitSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_logging_settings",
    "get_rabbit_settings",
]
