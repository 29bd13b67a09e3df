"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from consul_agent.core.settings.loader import get_consul_settings

    settings = get_consul_settings()  # First call: loads and validates
    settings = get_consul_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_consul_settings.cache_clear()

    Or override with custom values:
    settings = ConsulSettings(host="consul.test", ...)
"""

from __future__ import annotations

from functools import lru_cache

from .consul import ConsulSettings
from .logs import LoggingSettings


@lru_cache(maxsize=1)
def get_consul_settings() -> ConsulSettings:
    """Get cached Consul agent connection settings.

    Returns:
        Validated and frozen ConsulSettings instance.
    """
    return ConsulSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


def clear_settings_cache() -> None:
    """Clear every cached settings loader (used by tests and reloads)."""
    get_consul_settings.cache_clear()
    get_logging_settings.cache_clear()
