"""Consul agent connection settings.

Environment variables use CONSUL_ prefix.
Example: CONSUL_HOST=consul.local, CONSUL_TOKEN=secret
"""

from __future__ import annotations

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_consul_yaml_source


class ConsulSettings(BaseSettings):
    """Consul agent HTTP API settings.

    Environment variables use CONSUL_ prefix.
    Example: CONSUL_PORT=8500
    """

    # ──────────────────────────────────────────────────────────────
    # Consul agent connection
    # ──────────────────────────────────────────────────────────────

    host: str = Field(
        default="127.0.0.1",
        description="Consul agent hostname or IP address",
    )

    port: int = Field(
        default=8500,
        ge=1,
        le=65535,
        description="Consul agent HTTP API port",
    )

    scheme: str = Field(
        default="http",
        pattern=r"^https?$",
        description="HTTP scheme for Consul API (http or https)",
    )

    token: SecretStr | None = Field(
        default=None,
        description="Consul ACL token for authentication",
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify SSL certificates when using HTTPS",
    )

    user_agent: str = Field(
        default="consul-agent-client",
        description="User-Agent header sent with every request",
    )

    # ──────────────────────────────────────────────────────────────
    # Timeouts
    # ──────────────────────────────────────────────────────────────

    connect_timeout: float = Field(
        default=5.0,
        ge=0.5,
        le=30.0,
        description="HTTP connection timeout in seconds",
    )

    read_timeout: float = Field(
        default=10.0,
        ge=0.5,
        le=300.0,
        description="HTTP read timeout in seconds for request/response calls",
    )

    monitor_read_timeout: float | None = Field(
        default=None,
        description="Read timeout for the log monitor stream. None waits indefinitely.",
    )

    # ──────────────────────────────────────────────────────────────
    # Computed properties
    # ──────────────────────────────────────────────────────────────

    @computed_field
    @property
    def base_url(self) -> str:
        """Build Consul agent base URL."""
        return f"{self.scheme}://{self.host}:{self.port}"

    # ──────────────────────────────────────────────────────────────
    # Helper methods
    # ──────────────────────────────────────────────────────────────

    def get_auth_headers(self) -> dict[str, str]:
        """Get HTTP headers for Consul API authentication.

        Returns:
            Dictionary with X-Consul-Token header if token is set.
        """
        if self.token:
            return {"X-Consul-Token": self.token.get_secret_value()}
        return {}

    def get_default_headers(self) -> dict[str, str]:
        """Get headers sent with every request (auth plus User-Agent)."""
        return {"User-Agent": self.user_agent, **self.get_auth_headers()}

    # ──────────────────────────────────────────────────────────────
    # Model configuration
    # ──────────────────────────────────────────────────────────────

    model_config = SettingsConfigDict(
        env_prefix="CONSUL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_consul_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
