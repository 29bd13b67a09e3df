"""Accessor for the Consul agent's /v1/agent endpoints.

ConsulAgentClient wraps an AgentTransportProtocol implementation and exposes
the agent endpoint surface with typed models. It also owns the memoized
node name and hands monitor streams to LogStream.

Example:
    async with ConsulAgentClient() as agent:
        print(await agent.get_node_name())

        await agent.update_ttl("service:web-1", "ok", TTLStatus.PASSING)

        async with agent.monitor(LogLevel.DEBUG) as logs:
            async for line in logs:
                print(line)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote

from consul_agent.agent.identity import NodeNameCache
from consul_agent.agent.metrics import agent_node_name_fetches_total
from consul_agent.agent.models import (
    AgentCheck,
    AgentCheckRegistration,
    AgentMember,
    AgentService,
    AgentServiceRegistration,
    AgentVersion,
    CheckUpdate,
    LocalServiceHealth,
    LogLevel,
)
from consul_agent.agent.monitor import LogStream
from consul_agent.agent.status import TTLStatus, decode_status, encode_legacy
from consul_agent.core.exceptions import TransportError

if TYPE_CHECKING:
    from consul_agent.agent.protocols import AgentTransportProtocol
    from consul_agent.core.settings.consul import ConsulSettings

logger = logging.getLogger(__name__)

# /v1/agent/health/service/* answers 429 for warning and 503 for critical,
# still with a valid body
_HEALTH_STATUSES = (429, 503)


def _segment(value: str) -> str:
    """Escape a value used as a single path segment."""
    return quote(value, safe="")


class ConsulAgentClient:
    """Client for the local Consul agent.

    Key behaviors:
    - get_node_name() fetches once per client and is safe under concurrency
    - TTL updates accept either status vocabulary and send the right one
      for each endpoint generation
    - monitor() yields log lines and always releases the stream
    - Errors propagate as TransportError subclasses; nothing is retried

    Example:
        agent = ConsulAgentClient(settings=get_consul_settings())
        members = await agent.members()
        await agent.close()
    """

    def __init__(
        self,
        settings: ConsulSettings | None = None,
        transport: AgentTransportProtocol | None = None,
    ) -> None:
        """Initialize the agent client.

        Args:
            settings: ConsulSettings for the default transport. Ignored when
                a transport is injected.
            transport: Transport implementation. If None, creates AgentTransport.
                Pass MockAgentTransport for testing.
        """
        if transport is None:
            from consul_agent.agent.transport import AgentTransport

            transport = AgentTransport(settings)

        self._transport = transport
        self._node_name = NodeNameCache(self._fetch_node_name)

    @property
    def transport(self) -> AgentTransportProtocol:
        return self._transport

    # ──────────────────────────────────────────────────────────────
    # Identity
    # ──────────────────────────────────────────────────────────────

    async def self_info(self) -> dict[str, dict[str, Any]]:
        """Return the agent's self description (GET /v1/agent/self)."""
        return await self._transport.get_json("/v1/agent/self", operation="self")

    async def get_node_name(self) -> str:
        """Return the agent's node name, fetched once per client."""
        return await self._node_name.get()

    async def _fetch_node_name(self) -> str:
        agent_node_name_fetches_total.inc()
        info = await self.self_info()
        try:
            return str(info["Config"]["NodeName"])
        except (KeyError, TypeError) as e:
            raise TransportError(
                "Agent self description has no Config.NodeName",
                type="invalid-response",
                operation="self",
            ) from e

    # ──────────────────────────────────────────────────────────────
    # Checks, services, members
    # ──────────────────────────────────────────────────────────────

    async def checks(self, filter: str | None = None) -> dict[str, AgentCheck]:
        """Return checks registered with the agent, keyed by check ID.

        Args:
            filter: Optional Consul filter expression.
        """
        params = {"filter": filter} if filter else None
        data = await self._transport.get_json(
            "/v1/agent/checks", params, operation="checks"
        )
        return {key: AgentCheck.model_validate(value) for key, value in data.items()}

    async def services(self, filter: str | None = None) -> dict[str, AgentService]:
        """Return services registered with the agent, keyed by service ID.

        Args:
            filter: Optional Consul filter expression.
        """
        params = {"filter": filter} if filter else None
        data = await self._transport.get_json(
            "/v1/agent/services", params, operation="services"
        )
        return {key: AgentService.model_validate(value) for key, value in data.items()}

    async def members(self, wan: bool = False) -> list[AgentMember]:
        """Return the members the agent sees in the LAN (or WAN) gossip pool."""
        params = {"wan": "1"} if wan else None
        data = await self._transport.get_json(
            "/v1/agent/members", params, operation="members"
        )
        return [AgentMember.model_validate(item) for item in data]

    # ──────────────────────────────────────────────────────────────
    # Registration
    # ──────────────────────────────────────────────────────────────

    async def service_register(
        self,
        service: AgentServiceRegistration,
        replace_existing_checks: bool = False,
    ) -> None:
        """Register a service with the local agent."""
        params = {"replace-existing-checks": "true"} if replace_existing_checks else None
        await self._transport.put(
            "/v1/agent/service/register",
            service.to_wire(),
            params,
            operation="service_register",
        )
        logger.info(
            "Service registered with Consul agent",
            extra={"service_id": service.id, "service_name": service.name},
        )

    async def service_deregister(self, service_id: str) -> None:
        await self._transport.put(
            f"/v1/agent/service/deregister/{_segment(service_id)}",
            operation="service_deregister",
        )
        logger.info("Service deregistered from Consul agent", extra={"service_id": service_id})

    async def check_register(self, check: AgentCheckRegistration) -> None:
        await self._transport.put(
            "/v1/agent/check/register", check.to_wire(), operation="check_register"
        )

    async def check_deregister(self, check_id: str) -> None:
        await self._transport.put(
            f"/v1/agent/check/deregister/{_segment(check_id)}",
            operation="check_deregister",
        )

    # ──────────────────────────────────────────────────────────────
    # TTL checks
    # ──────────────────────────────────────────────────────────────

    async def update_ttl(
        self,
        check_id: str,
        output: str,
        status: TTLStatus | str,
    ) -> None:
        """Set a TTL check's status and output.

        Uses PUT /v1/agent/check/update/{check_id} with the current
        vocabulary in the body.

        Args:
            check_id: The check ID (typically "service:{service_id}").
            output: Human-readable check output.
            status: TTLStatus or any of the six wire strings.

        Raises:
            StatusDecodeError: If status is not a valid wire string.
        """
        update = CheckUpdate(status=decode_status(status), output=output)
        await self._transport.put(
            f"/v1/agent/check/update/{_segment(check_id)}",
            update.to_wire(),
            operation="ttl_update",
        )

    async def _legacy_update_ttl(
        self, check_id: str, status: TTLStatus, note: str | None
    ) -> None:
        legacy = encode_legacy(status)
        params = {"note": note} if note else None
        await self._transport.put(
            f"/v1/agent/check/{legacy}/{_segment(check_id)}",
            params=params,
            operation=f"ttl_{legacy}",
        )

    async def pass_ttl(self, check_id: str, note: str | None = None) -> None:
        """Mark a TTL check as passing (PUT /v1/agent/check/pass/{id})."""
        await self._legacy_update_ttl(check_id, TTLStatus.PASSING, note)

    async def warn_ttl(self, check_id: str, note: str | None = None) -> None:
        """Mark a TTL check as warning (PUT /v1/agent/check/warn/{id})."""
        await self._legacy_update_ttl(check_id, TTLStatus.WARNING, note)

    async def fail_ttl(self, check_id: str, note: str | None = None) -> None:
        """Mark a TTL check as critical (PUT /v1/agent/check/fail/{id})."""
        await self._legacy_update_ttl(check_id, TTLStatus.CRITICAL, note)

    # ──────────────────────────────────────────────────────────────
    # Cluster membership and lifecycle
    # ──────────────────────────────────────────────────────────────

    async def join(self, address: str, wan: bool = False) -> None:
        """Ask the agent to join a cluster through the given address."""
        params = {"wan": "1"} if wan else None
        await self._transport.put(
            f"/v1/agent/join/{_segment(address)}", params=params, operation="join"
        )

    async def force_leave(self, node: str) -> None:
        """Force a failed member into the left state."""
        await self._transport.put(
            f"/v1/agent/force-leave/{_segment(node)}", operation="force_leave"
        )

    async def leave(self) -> None:
        """Gracefully shut down the agent."""
        await self._transport.put("/v1/agent/leave", operation="leave")

    async def reload(self) -> None:
        """Reload the agent's configuration."""
        await self._transport.put("/v1/agent/reload", operation="reload")

    # ──────────────────────────────────────────────────────────────
    # Maintenance mode
    # ──────────────────────────────────────────────────────────────

    async def enable_service_maintenance(self, service_id: str, reason: str) -> None:
        await self._transport.put(
            f"/v1/agent/service/maintenance/{_segment(service_id)}",
            params={"enable": "true", "reason": reason},
            operation="service_maintenance",
        )

    async def disable_service_maintenance(self, service_id: str) -> None:
        await self._transport.put(
            f"/v1/agent/service/maintenance/{_segment(service_id)}",
            params={"enable": "false"},
            operation="service_maintenance",
        )

    async def enable_node_maintenance(self, reason: str) -> None:
        await self._transport.put(
            "/v1/agent/maintenance",
            params={"enable": "true", "reason": reason},
            operation="node_maintenance",
        )

    async def disable_node_maintenance(self) -> None:
        await self._transport.put(
            "/v1/agent/maintenance",
            params={"enable": "false"},
            operation="node_maintenance",
        )

    # ──────────────────────────────────────────────────────────────
    # Log monitor
    # ──────────────────────────────────────────────────────────────

    async def open_monitor(self, level: LogLevel = LogLevel.INFO) -> LogStream:
        """Open the agent's log stream in plain text.

        The caller owns the returned LogStream and must close it, e.g. with
        ``async with`` or ``contextlib.aclosing``.
        """
        return await self._open_monitor(level, json_logs=False)

    async def open_monitor_json(self, level: LogLevel = LogLevel.INFO) -> LogStream:
        """Open the agent's log stream with one JSON object per line."""
        return await self._open_monitor(level, json_logs=True)

    async def _open_monitor(self, level: LogLevel, json_logs: bool) -> LogStream:
        level = LogLevel(level)
        params = {"loglevel": level.value}
        if json_logs:
            params["logjson"] = "true"
        label = "monitor_json" if json_logs else "monitor"
        stream = await self._transport.stream_get(
            "/v1/agent/monitor", params, operation=label
        )
        logger.debug("Opened agent log stream", extra={"loglevel": level.value, "stream": label})
        return LogStream(stream, label=label)

    @asynccontextmanager
    async def monitor(self, level: LogLevel = LogLevel.INFO) -> AsyncIterator[LogStream]:
        """Stream the agent's log lines; the stream is released on exit."""
        async with await self.open_monitor(level) as logs:
            yield logs

    @asynccontextmanager
    async def monitor_json(self, level: LogLevel = LogLevel.INFO) -> AsyncIterator[LogStream]:
        """Stream the agent's log lines as JSON text; released on exit."""
        async with await self.open_monitor_json(level) as logs:
            yield logs

    # ──────────────────────────────────────────────────────────────
    # Local service health and version
    # ──────────────────────────────────────────────────────────────

    async def local_service_health(self, service_name: str) -> list[LocalServiceHealth]:
        """Return aggregated health for every local instance of a service."""
        data = await self._transport.get_json(
            f"/v1/agent/health/service/name/{_segment(service_name)}",
            operation="local_service_health",
            allow_status=_HEALTH_STATUSES,
        )
        return [LocalServiceHealth.model_validate(item) for item in data]

    async def worst_local_service_health(self, service_name: str) -> str:
        """Return the worst status among local instances of a service as text."""
        return await self._transport.get_text(
            f"/v1/agent/health/service/name/{_segment(service_name)}",
            {"format": "text"},
            operation="worst_local_service_health",
            allow_status=_HEALTH_STATUSES,
        )

    async def local_service_health_by_id(self, service_id: str) -> LocalServiceHealth:
        """Return aggregated health for one local service instance."""
        data = await self._transport.get_json(
            f"/v1/agent/health/service/id/{_segment(service_id)}",
            operation="local_service_health_by_id",
            allow_status=_HEALTH_STATUSES,
        )
        return LocalServiceHealth.model_validate(data)

    async def version(self) -> AgentVersion:
        data = await self._transport.get_json("/v1/agent/version", operation="version")
        return AgentVersion.model_validate(data)

    # ──────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
