"""Async client for the Consul agent HTTP control API."""

from consul_agent.agent import (
    ConsulAgentClient,
    LogLevel,
    LogStream,
    NodeNameCache,
    TTLStatus,
    decode_status,
    encode_current,
    encode_legacy,
)
from consul_agent.core.exceptions import (
    ConsulAgentException,
    ConsulAPIError,
    ConsulConnectionError,
    ConsulTimeoutError,
    StatusDecodeError,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "ConsulAPIError",
    "ConsulAgentClient",
    "ConsulAgentException",
    "ConsulConnectionError",
    "ConsulTimeoutError",
    "LogLevel",
    "LogStream",
    "NodeNameCache",
    "StatusDecodeError",
    "TTLStatus",
    "TransportError",
    "__version__",
    "decode_status",
    "encode_current",
    "encode_legacy",
]
