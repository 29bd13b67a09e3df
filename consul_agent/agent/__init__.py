"""Consul agent endpoint accessors.

This package provides:
- ConsulAgentClient: the /v1/agent endpoint surface
- NodeNameCache: memoized, concurrency-safe node name lookup
- LogStream: line reader over the live monitor stream
- TTLStatus and its codec for the current and legacy status vocabularies
- AgentTransport (httpx) and MockAgentTransport (in-memory) transports

Usage:
    from consul_agent.agent import ConsulAgentClient, TTLStatus

    async with ConsulAgentClient() as agent:
        node = await agent.get_node_name()
        await agent.update_ttl(f"service:{node}-web", "ok", TTLStatus.PASSING)

Configuration:
    CONSUL_HOST=127.0.0.1
    CONSUL_PORT=8500
    CONSUL_TOKEN=...

Testing:
    from consul_agent.agent import ConsulAgentClient, MockAgentTransport

    transport = MockAgentTransport(node_name="node-A")
    agent = ConsulAgentClient(transport=transport)
    assert await agent.get_node_name() == "node-A"
"""

from consul_agent.agent.client import ConsulAgentClient
from consul_agent.agent.identity import NodeNameCache
from consul_agent.agent.mock_transport import MemoryByteStream, MockAgentTransport
from consul_agent.agent.models import (
    AgentCheck,
    AgentCheckRegistration,
    AgentMember,
    AgentService,
    AgentServiceCheck,
    AgentServiceRegistration,
    AgentVersion,
    LocalServiceHealth,
    LogLevel,
    ServiceKind,
)
from consul_agent.agent.monitor import ByteStream, LogStream, StreamState
from consul_agent.agent.protocols import AgentTransportProtocol
from consul_agent.agent.status import (
    TTLStatus,
    TTLStatusField,
    decode_status,
    encode_current,
    encode_legacy,
)
from consul_agent.agent.transport import AgentTransport

__all__ = [
    # Client
    "ConsulAgentClient",
    # Core behaviors
    "NodeNameCache",
    "LogStream",
    "StreamState",
    "ByteStream",
    "TTLStatus",
    "TTLStatusField",
    "decode_status",
    "encode_current",
    "encode_legacy",
    # Transports
    "AgentTransportProtocol",
    "AgentTransport",
    "MockAgentTransport",
    "MemoryByteStream",
    # Models
    "AgentCheck",
    "AgentCheckRegistration",
    "AgentMember",
    "AgentService",
    "AgentServiceCheck",
    "AgentServiceRegistration",
    "AgentVersion",
    "LocalServiceHealth",
    "LogLevel",
    "ServiceKind",
]
