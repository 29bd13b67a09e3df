"""Protocol definitions for the agent transport abstraction.

This module defines the AgentTransportProtocol that allows for:
- Easy testing with MockAgentTransport
- Dependency injection of different transport implementations
- A clear contract for the request shapes the client needs
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from consul_agent.agent.monitor import ByteStream

QueryParams = Mapping[str, str]


@runtime_checkable
class AgentTransportProtocol(Protocol):
    """Protocol for HTTP calls against the Consul agent.

    All methods are async. Failures raise TransportError subclasses;
    cancellation propagates as asyncio.CancelledError.
    """

    async def get_json(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
        allow_status: Collection[int] = (),
    ) -> Any:
        """GET a path and decode its JSON body.

        Args:
            path: Agent API path, e.g. "/v1/agent/self".
            params: Query string parameters.
            operation: Logical operation name for logs, traces and metrics.
            allow_status: Non-2xx statuses that still carry a valid body.

        Returns:
            Decoded JSON value.
        """
        ...

    async def get_text(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
        allow_status: Collection[int] = (),
    ) -> str:
        """GET a path and return its body as text."""
        ...

    async def put(
        self,
        path: str,
        json: Any = None,
        params: QueryParams | None = None,
        *,
        operation: str,
    ) -> None:
        """PUT to a path, optionally with a JSON body."""
        ...

    async def stream_get(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
    ) -> ByteStream:
        """GET a path and return the still-open response body.

        The caller owns the returned stream and must close it.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the transport."""
        ...
