"""Consul agent HTTP transport with observability.

This module provides the real AgentTransport implementation that:
- Uses httpx for async HTTP operations
- Includes OpenTelemetry tracing for all API calls
- Records Prometheus metrics for monitoring
- Raises TransportError subclasses on failure (never retries)
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Collection
from typing import TYPE_CHECKING, Any

import httpx
from opentelemetry import trace

from consul_agent.agent.metrics import (
    agent_errors_total,
    agent_operation_duration_seconds,
    agent_requests_total,
)
from consul_agent.core.exceptions import (
    ConsulAPIError,
    ConsulConnectionError,
    ConsulTimeoutError,
    TransportError,
)

if TYPE_CHECKING:
    from opentelemetry.trace import Span

    from consul_agent.agent.protocols import QueryParams
    from consul_agent.core.settings.consul import ConsulSettings

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ResponseByteStream:
    """Open response body that fails with TransportError subclasses.

    Reads that fail after the response was opened (connection drop, read
    timeout) raise ConsulTimeoutError or ConsulConnectionError, the same
    as a failure while opening it.
    """

    def __init__(self, response: httpx.Response, *, operation: str, path: str) -> None:
        self.response = response
        self._operation = operation
        self._path = path

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        except httpx.TimeoutException as e:
            agent_errors_total.labels(operation=self._operation, error_type="timeout").inc()
            logger.warning(
                "Consul %s stream timed out",
                self._operation,
                extra={"path": self._path, "error": str(e)},
            )
            raise ConsulTimeoutError(
                f"Consul agent stream timed out on GET {self._path}",
                operation=self._operation,
            ) from e
        except httpx.HTTPError as e:
            agent_errors_total.labels(operation=self._operation, error_type="connection").inc()
            logger.warning(
                "Consul %s stream interrupted",
                self._operation,
                extra={"path": self._path, "error": str(e)},
            )
            raise ConsulConnectionError(
                f"Consul agent stream interrupted on GET {self._path}: {e}",
                operation=self._operation,
            ) from e

    async def aclose(self) -> None:
        await self.response.aclose()


class AgentTransport:
    """HTTP transport for the Consul Agent API with observability.

    This transport implements AgentTransportProtocol and provides:
    - Async HTTP operations using httpx
    - OpenTelemetry tracing for distributed tracing
    - Prometheus metrics for monitoring
    - Typed errors: ConsulTimeoutError, ConsulConnectionError, ConsulAPIError

    Example:
        settings = get_consul_settings()
        transport = AgentTransport(settings)

        info = await transport.get_json("/v1/agent/self", operation="self")

        await transport.close()
    """

    def __init__(
        self,
        settings: ConsulSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the agent transport.

        Args:
            settings: ConsulSettings instance. If None, loads from environment.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        if settings is None:
            from consul_agent.core.settings import get_consul_settings

            settings = get_consul_settings()

        self._settings = settings
        self._base_url = settings.base_url
        self._monitor_timeout = httpx.Timeout(
            settings.connect_timeout, read=settings.monitor_read_timeout
        )

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=settings.get_default_headers(),
            timeout=httpx.Timeout(settings.read_timeout, connect=settings.connect_timeout),
            verify=settings.verify_ssl,
            transport=transport,
        )

        logger.debug(
            "AgentTransport initialized",
            extra={"base_url": self._base_url},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def get_json(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
        allow_status: Collection[int] = (),
    ) -> Any:
        """GET a path and decode its JSON body.

        Raises:
            TransportError: On network failure, unexpected status, or a body
                that is not valid JSON.
        """
        response = await self._send(
            "GET", path, operation=operation, params=params, allow_status=allow_status
        )
        try:
            return response.json()
        except ValueError as e:
            agent_errors_total.labels(operation=operation, error_type="invalid_json").inc()
            raise TransportError(
                f"Agent returned invalid JSON for {path}",
                type="invalid-response",
                operation=operation,
                extra={"response": response.text[:200]},
            ) from e

    async def get_text(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
        allow_status: Collection[int] = (),
    ) -> str:
        """GET a path and return its body as text."""
        response = await self._send(
            "GET", path, operation=operation, params=params, allow_status=allow_status
        )
        return response.text

    async def put(
        self,
        path: str,
        json: Any = None,
        params: QueryParams | None = None,
        *,
        operation: str,
    ) -> None:
        """PUT to a path, optionally with a JSON body."""
        await self._send("PUT", path, operation=operation, params=params, json=json)

    async def stream_get(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
    ) -> ResponseByteStream:
        """GET a path and return the response body still open.

        The read timeout comes from ``monitor_read_timeout`` (unbounded by
        default). The caller owns the stream and must ``aclose()`` it.
        """
        response = await self._send(
            "GET",
            path,
            operation=operation,
            params=params,
            stream=True,
            timeout=self._monitor_timeout,
        )
        return ResponseByteStream(response, operation=operation, path=path)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: QueryParams | None = None,
        json: Any = None,
        allow_status: Collection[int] = (),
        stream: bool = False,
        timeout: httpx.Timeout | None = None,
    ) -> httpx.Response:
        start_time = time.perf_counter()

        with tracer.start_as_current_span(f"consul.{operation}") as span:
            span.set_attribute("http.method", method)
            span.set_attribute("consul.path", path)

            try:
                request = self._client.build_request(
                    method,
                    path,
                    params=dict(params) if params else None,
                    json=json,
                    timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                )
                response = await self._client.send(request, stream=stream)

            except httpx.TimeoutException as e:
                self._record_failure(span, operation, "timeout", start_time, e)
                logger.warning(
                    "Consul %s timed out",
                    operation,
                    extra={"path": path, "error": str(e)},
                )
                raise ConsulTimeoutError(
                    f"Consul agent timed out on {method} {path}",
                    operation=operation,
                ) from e

            except httpx.HTTPError as e:
                self._record_failure(span, operation, "connection", start_time, e)
                logger.warning(
                    "Consul %s connection error",
                    operation,
                    extra={"path": path, "error": str(e)},
                )
                raise ConsulConnectionError(
                    f"Consul agent unreachable on {method} {path}: {e}",
                    operation=operation,
                ) from e

            duration = time.perf_counter() - start_time
            agent_operation_duration_seconds.labels(operation=operation).observe(duration)

            if response.is_success or response.status_code in allow_status:
                span.set_attribute("consul.success", True)
                span.set_attribute("consul.status_code", response.status_code)
                agent_requests_total.labels(operation=operation, status="success").inc()
                logger.debug(
                    "Consul %s succeeded",
                    operation,
                    extra={"path": path, "status_code": response.status_code},
                )
                return response

            if stream:
                try:
                    await response.aread()
                finally:
                    await response.aclose()

            span.set_attribute("consul.success", False)
            span.set_attribute("consul.status_code", response.status_code)
            agent_requests_total.labels(operation=operation, status="failure").inc()
            agent_errors_total.labels(operation=operation, error_type="http_error").inc()
            logger.warning(
                "Consul %s failed",
                operation,
                extra={
                    "path": path,
                    "status_code": response.status_code,
                    "response": response.text[:200],
                },
            )
            raise ConsulAPIError(
                status_code=response.status_code,
                detail=response.text[:200] or response.reason_phrase,
                operation=operation,
                extra={"path": path},
            )

    @staticmethod
    def _record_failure(
        span: Span,
        operation: str,
        error_type: str,
        start_time: float,
        error: Exception,
    ) -> None:
        duration = time.perf_counter() - start_time
        agent_operation_duration_seconds.labels(operation=operation).observe(duration)
        span.set_attribute("consul.success", False)
        span.record_exception(error)
        agent_requests_total.labels(operation=operation, status="failure").inc()
        agent_errors_total.labels(operation=operation, error_type=error_type).inc()

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()
        logger.debug("AgentTransport closed")
