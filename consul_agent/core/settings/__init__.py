"""Modular Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from consul_agent.core.settings import get_consul_settings

    settings = get_consul_settings()
    print(settings.base_url)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .consul import ConsulSettings
from .loader import clear_settings_cache, get_consul_settings, get_logging_settings
from .logs import LoggingSettings

__all__ = [
    "ConsulSettings",
    "LoggingSettings",
    "clear_settings_cache",
    "get_consul_settings",
    "get_logging_settings",
]
