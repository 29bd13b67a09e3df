"""Mock agent transport for testing without a real Consul agent.

This module provides a MockAgentTransport that implements
AgentTransportProtocol and keeps all agent state in memory, making it
ideal for unit tests.

Usage in tests:
    from consul_agent.agent.mock_transport import MockAgentTransport

    @pytest.fixture
    def mock_transport():
        return MockAgentTransport(node_name="node-A")

    async def test_ttl(mock_transport):
        agent = ConsulAgentClient(transport=mock_transport)
        await agent.service_register(
            AgentServiceRegistration(id="web-1", name="web", check=AgentServiceCheck(ttl="30s"))
        )
        await agent.pass_ttl("service:web-1")
        assert mock_transport.checks["service:web-1"].status == "passing"
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Collection, Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

from consul_agent.agent.models import (
    AgentCheck,
    AgentCheckRegistration,
    AgentMember,
    AgentService,
    AgentServiceRegistration,
    CheckUpdate,
)
from consul_agent.agent.protocols import QueryParams
from consul_agent.agent.status import TTLStatus, decode_status
from consul_agent.core.exceptions import ConsulAPIError, ConsulConnectionError

logger = logging.getLogger(__name__)

# Worst-first ordering used by the aggregated health endpoints
_STATUS_SEVERITY = {"passing": 0, "warning": 1, "critical": 2, "maintenance": 3}


@dataclass
class CallRecord:
    """Record of a transport call for assertion in tests."""

    method: str
    path: str
    params: dict[str, str]
    body: Any
    operation: str


class MemoryByteStream:
    """In-memory ByteStream that counts how often it is closed.

    Attributes:
        chunks: Byte chunks served by aiter_bytes(), in order.
        close_count: Number of aclose() calls received.
    """

    def __init__(self, chunks: Iterable[bytes] = ()) -> None:
        self.chunks = list(chunks)
        self.close_count = 0

    @classmethod
    def from_lines(cls, lines: Iterable[str], chunk_size: int = 16) -> MemoryByteStream:
        """Build a stream from text lines, split into fixed-size chunks."""
        data = "".join(f"{line}\n" for line in lines).encode()
        return cls(data[i : i + chunk_size] for i in range(0, len(data), chunk_size))

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            if self.closed:
                return
            yield chunk

    async def aclose(self) -> None:
        self.close_count += 1


@dataclass
class MockAgentTransport:
    """In-memory mock of the agent HTTP API.

    This class implements AgentTransportProtocol, allowing tests to:
    - Verify paths, params and bodies sent by ConsulAgentClient
    - Inspect registered services and checks
    - Check TTL state transitions through either vocabulary
    - Serve a canned log stream for monitor()

    Attributes:
        node_name: Node name reported by /v1/agent/self.
        datacenter: Datacenter reported by /v1/agent/self.
        services: Registered services by service ID.
        checks: Registered checks by check ID.
        members: Members returned by /v1/agent/members.
        node_maintenance: Reason string while node maintenance is enabled.
        service_maintenance: Reason strings by service ID while enabled.
        monitor_lines: Lines served by the next monitor stream.
        streams: Every stream handed out, for close assertions.
        call_history: List of all calls for assertion.
        fail_next_call: Set to True to simulate a connection failure.
        closed: Whether close() has been called.
    """

    node_name: str = "mock-node"
    datacenter: str = "dc1"
    services: dict[str, AgentService] = field(default_factory=dict)
    checks: dict[str, AgentCheck] = field(default_factory=dict)
    members: list[AgentMember] = field(default_factory=list)
    node_maintenance: str | None = None
    service_maintenance: dict[str, str] = field(default_factory=dict)
    monitor_lines: list[str] = field(default_factory=list)
    streams: list[MemoryByteStream] = field(default_factory=list)
    call_history: list[CallRecord] = field(default_factory=list)
    fail_next_call: bool = False
    closed: bool = False

    def _record(
        self,
        method: str,
        path: str,
        params: QueryParams | None,
        body: Any,
        operation: str,
    ) -> None:
        self.call_history.append(
            CallRecord(method, path, dict(params or {}), body, operation)
        )
        if self.fail_next_call:
            self.fail_next_call = False
            raise ConsulConnectionError("Simulated connection failure", operation=operation)

    def calls_to(self, operation: str) -> list[CallRecord]:
        """Return recorded calls for one logical operation."""
        return [call for call in self.call_history if call.operation == operation]

    # ──────────────────────────────────────────────────────────────
    # Transport protocol
    # ──────────────────────────────────────────────────────────────

    async def get_json(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
        allow_status: Collection[int] = (),
    ) -> Any:
        self._record("GET", path, params, None, operation)

        if path == "/v1/agent/self":
            return {
                "Config": {"NodeName": self.node_name, "Datacenter": self.datacenter},
                "Member": {"Name": self.node_name},
            }
        if path == "/v1/agent/checks":
            return {key: check.to_wire() for key, check in self.checks.items()}
        if path == "/v1/agent/services":
            return {key: service.to_wire() for key, service in self.services.items()}
        if path == "/v1/agent/members":
            return [member.to_wire() for member in self.members]
        if path == "/v1/agent/version":
            return {"SHA": "mock", "HumanVersion": "1.0.0-mock", "FIPS": ""}
        if path.startswith("/v1/agent/health/service/name/"):
            name = unquote(path.rsplit("/", 1)[1])
            return [
                self._local_health(service)
                for service in self.services.values()
                if service.service == name
            ]
        if path.startswith("/v1/agent/health/service/id/"):
            service_id = unquote(path.rsplit("/", 1)[1])
            if service_id not in self.services:
                raise ConsulAPIError(404, f"ServiceId {service_id} not found", operation=operation)
            return self._local_health(self.services[service_id])

        raise ConsulAPIError(404, f"Unexpected path: {path}", operation=operation)

    async def get_text(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
        allow_status: Collection[int] = (),
    ) -> str:
        self._record("GET", path, params, None, operation)

        if path.startswith("/v1/agent/health/service/name/"):
            name = unquote(path.rsplit("/", 1)[1])
            statuses = [
                self._local_health(service)["AggregatedStatus"]
                for service in self.services.values()
                if service.service == name
            ]
            if not statuses:
                raise ConsulAPIError(404, f"ServiceName {name} Not Found", operation=operation)
            return max(statuses, key=_STATUS_SEVERITY.__getitem__)

        raise ConsulAPIError(404, f"Unexpected path: {path}", operation=operation)

    async def put(
        self,
        path: str,
        json: Any = None,
        params: QueryParams | None = None,
        *,
        operation: str,
    ) -> None:
        self._record("PUT", path, params, json, operation)
        params = params or {}
        segments = [unquote(part) for part in path.removeprefix("/v1/agent/").split("/")]

        match segments:
            case ["service", "register"]:
                self._register_service(AgentServiceRegistration.model_validate(json))
            case ["service", "deregister", service_id]:
                self.services.pop(service_id, None)
                for check_id in [c for c, check in self.checks.items() if check.service_id == service_id]:
                    del self.checks[check_id]
            case ["check", "register"]:
                self._register_check(AgentCheckRegistration.model_validate(json))
            case ["check", "deregister", check_id]:
                self.checks.pop(check_id, None)
            case ["check", "update", check_id]:
                update = CheckUpdate.model_validate(json)
                self._set_ttl(check_id, update.status, update.output, operation)
            case ["check", legacy, check_id] if legacy in ("pass", "warn", "fail"):
                self._set_ttl(check_id, decode_status(legacy), params.get("note", ""), operation)
            case ["maintenance"]:
                enabled = params.get("enable") == "true"
                self.node_maintenance = params.get("reason", "") if enabled else None
            case ["service", "maintenance", service_id]:
                if service_id not in self.services:
                    raise ConsulAPIError(404, f"Unknown service ID {service_id!r}", operation=operation)
                if params.get("enable") == "true":
                    self.service_maintenance[service_id] = params.get("reason", "")
                else:
                    self.service_maintenance.pop(service_id, None)
            case ["join", _] | ["force-leave", _] | ["leave"] | ["reload"]:
                pass
            case _:
                raise ConsulAPIError(404, f"Unexpected path: {path}", operation=operation)

    async def stream_get(
        self,
        path: str,
        params: QueryParams | None = None,
        *,
        operation: str,
    ) -> MemoryByteStream:
        self._record("GET", path, params, None, operation)
        if path != "/v1/agent/monitor":
            raise ConsulAPIError(404, f"Unexpected path: {path}", operation=operation)
        stream = MemoryByteStream.from_lines(self.monitor_lines)
        self.streams.append(stream)
        return stream

    async def close(self) -> None:
        self.closed = True

    # ──────────────────────────────────────────────────────────────
    # State helpers
    # ──────────────────────────────────────────────────────────────

    def _register_service(self, registration: AgentServiceRegistration) -> None:
        service_id = registration.id or registration.name
        self.services[service_id] = AgentService(
            id=service_id,
            service=registration.name,
            tags=registration.tags,
            port=registration.port or 0,
            address=registration.address or "",
            meta=registration.meta,
            kind=registration.kind,
        )
        checks = list(registration.checks or [])
        if registration.check is not None:
            checks.insert(0, registration.check)
        for index, check in enumerate(checks, start=1):
            default_id = f"service:{service_id}" if len(checks) == 1 else f"service:{service_id}:{index}"
            self.checks[check.check_id or default_id] = AgentCheck(
                node=self.node_name,
                check_id=check.check_id or default_id,
                name=check.name or f"Service '{registration.name}' check",
                status=check.status or "critical",
                service_id=service_id,
                service_name=registration.name,
                type="ttl" if check.ttl else "",
            )
        logger.debug("Mock service registered", extra={"service_id": service_id})

    def _register_check(self, registration: AgentCheckRegistration) -> None:
        check_id = registration.check_id or registration.id or registration.name or ""
        service = self.services.get(registration.service_id or "")
        self.checks[check_id] = AgentCheck(
            node=self.node_name,
            check_id=check_id,
            name=registration.name or check_id,
            status=registration.status or "critical",
            notes=registration.notes or "",
            service_id=registration.service_id or "",
            service_name=service.service if service else "",
            type="ttl" if registration.ttl else "",
        )

    def _set_ttl(self, check_id: str, status: TTLStatus, output: str, operation: str) -> None:
        check = self.checks.get(check_id)
        if check is None:
            raise ConsulAPIError(404, f'Unknown check ID "{check_id}"', operation=operation)
        self.checks[check_id] = check.model_copy(update={"status": status.value, "output": output})
        logger.debug("Mock TTL updated", extra={"check_id": check_id, "status": status.value})

    def _local_health(self, service: AgentService) -> dict[str, Any]:
        checks = [check for check in self.checks.values() if check.service_id == service.id]
        aggregated = "passing"
        if service.id in self.service_maintenance or self.node_maintenance is not None:
            aggregated = "maintenance"
        elif checks:
            aggregated = max((c.status for c in checks), key=_STATUS_SEVERITY.__getitem__)
        return {
            "AggregatedStatus": aggregated,
            "Service": service.to_wire(),
            "Checks": [check.to_wire() for check in checks],
        }
