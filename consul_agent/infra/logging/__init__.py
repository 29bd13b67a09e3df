"""Logging infrastructure.

Usage:
    from consul_agent.infra.logging import setup_logging

    setup_logging()  # reads LOG_* settings once
"""

from consul_agent.infra.logging.config import configure_logging, setup_logging, shutdown
from consul_agent.infra.logging.formatters import JSONFormatter

__all__ = ["JSONFormatter", "configure_logging", "setup_logging", "shutdown"]
