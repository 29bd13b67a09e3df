"""CLI utilities for running async operations and formatting output."""

from consul_agent.cli.utils.async_runner import coro
from consul_agent.cli.utils.formatters import (
    error,
    header,
    status_label,
    success,
    warning,
)

__all__ = [
    "coro",
    "error",
    "header",
    "status_label",
    "success",
    "warning",
]
