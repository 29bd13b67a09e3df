"""Custom exception classes for the Consul agent client."""

from __future__ import annotations

from typing import Any


class ConsulAgentException(Exception):
    """Base client exception.

    All custom exceptions should inherit from this class.

    Attributes:
        detail: Human-readable error message.
        type: Error type identifier.
        extra: Additional context-specific information about the error.

    Example:
        raise ConsulAgentException(
            detail="Agent returned an unexpected payload",
            type="unexpected-payload",
            extra={"path": "/v1/agent/self"},
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "about:blank",
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize client exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.type = type
        self.extra = extra or {}
        super().__init__(detail)


class StatusDecodeError(ConsulAgentException, ValueError):
    """Raised when a TTL status string is not one of the six wire values.

    Subclasses ValueError so pydantic reports it as a validation error
    when it occurs inside a model validator.
    """

    def __init__(self, value: Any) -> None:
        super().__init__(
            detail=f"Invalid TTL status value: {value!r}",
            type="invalid-status",
            extra={"value": value},
        )
        self.value = value


class TransportError(ConsulAgentException):
    """Raised when a request to the agent fails.

    Example:
        raise TransportError(
            detail="Agent unreachable",
            type="connection-error",
            extra={"operation": "self"},
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "transport-error",
        operation: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize transport exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            operation: Logical agent operation that failed (e.g. "self").
            extra: Additional context about the error.
        """
        self.operation = operation
        super().__init__(detail=detail, type=type, extra=extra)


class ConsulTimeoutError(TransportError):
    """Raised when the agent does not answer within the configured timeout."""

    def __init__(
        self,
        detail: str,
        operation: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type="timeout", operation=operation, extra=extra)


class ConsulConnectionError(TransportError):
    """Raised when the connection to the agent fails."""

    def __init__(
        self,
        detail: str,
        operation: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            detail=detail, type="connection-error", operation=operation, extra=extra
        )


class ConsulAPIError(TransportError):
    """Raised when the agent answers with an unexpected HTTP status.

    Example:
        raise ConsulAPIError(
            status_code=404,
            detail="CheckID \"web\" does not have associated TTL",
            operation="ttl_update",
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        operation: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API exception.

        Args:
            status_code: HTTP status code returned by the agent.
            detail: Response body excerpt or error message.
            operation: Logical agent operation that failed.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        super().__init__(
            detail=detail,
            type="http-error",
            operation=operation,
            extra={"status_code": status_code, **(extra or {})},
        )
