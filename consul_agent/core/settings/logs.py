"""Logging settings for the consul-agent CLI and library."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_logging_yaml_source

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Where the client's own diagnostics go.

    Command output goes to stdout; these settings only cover the records
    emitted by the transport, the identity cache and the log reader. The
    default keeps stderr quiet unless a request fails.

    Environment variables use the LOG_ prefix.
    Example: LOG_LEVEL=debug LOG_JSON_LOGS=true LOG_FILE_PATH=/var/log/consul-agent.jsonl
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root logger level; DEBUG traces every agent request",
    )

    json_logs: bool = Field(
        default=False,
        description="Emit one JSON object per record instead of plain text",
    )

    console_enabled: bool = Field(
        default=True,
        description="Write records to stderr",
    )

    # ──────────────────────────────────────────────────────────────
    # File logging / rotation
    # ──────────────────────────────────────────────────────────────

    file_path: Path | None = Field(
        default=None,
        description="Also write records to this file. None disables file logging.",
    )

    file_max_bytes: int = Field(
        default=10_485_760,  # 10 MiB
        ge=1024,
        le=1_073_741_824,
        description="Rotate the log file once it reaches this size (max 1 GiB)",
    )

    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Number of rotated log files to keep",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept lowercase level names (LOG_LEVEL=debug)."""
        if isinstance(v, str):
            return v.upper()
        return v

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Return kwargs for configure_logging(...)."""
        return {
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "file_path": str(self.file_path) if self.file_path else None,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
        }

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        """Source precedence: init > conf/logging.yaml > env > .env > secrets."""
        return (
            init_settings,
            create_logging_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
