"""Data transfer objects for the Consul agent API.

The agent speaks PascalCase JSON. Fields are snake_case here and mapped with
an alias generator; acronyms the generator cannot spell (ID, HTTP, TTL, ...)
carry an explicit alias.

Serialize for the wire with ``to_wire()`` so aliases are used and unset
optional fields are omitted.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from consul_agent.agent.status import TTLStatusField


class LogLevel(str, Enum):
    """Minimum level for the agent monitor stream."""

    INFO = "info"
    TRACE = "trace"
    DEBUG = "debug"
    WARN = "warn"
    ERR = "err"


class ServiceKind(str, Enum):
    """Kind of a registered service. Typical services have no kind."""

    CONNECT_PROXY = "connect-proxy"
    MESH_GATEWAY = "mesh-gateway"
    TERMINATING_GATEWAY = "terminating-gateway"
    INGRESS_GATEWAY = "ingress-gateway"


def _empty_to_none(value: Any) -> Any:
    return None if value == "" else value


OptionalServiceKind = Annotated[ServiceKind | None, BeforeValidator(_empty_to_none)]


class AgentModel(BaseModel):
    """Base model for agent payloads.

    Accepts both wire names and field names, and ignores fields the agent
    adds in newer versions.
    """

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire names, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ──────────────────────────────────────────────────────────────
# Read models
# ──────────────────────────────────────────────────────────────


class AgentCheck(AgentModel):
    """A check known to the agent."""

    node: str = ""
    check_id: str = Field(default="", alias="CheckID")
    name: str = ""
    # Health status, which also includes "maintenance"
    status: str = ""
    notes: str = ""
    output: str = ""
    service_id: str = Field(default="", alias="ServiceID")
    service_name: str = ""
    type: str = ""


class ServiceTaggedAddress(AgentModel):
    address: str = ""
    port: int = 0


class AgentServiceProxyUpstream(AgentModel):
    destination_name: str
    local_bind_port: int


class AgentServiceProxy(AgentModel):
    destination_service_id: str | None = Field(default=None, alias="DestinationServiceID")
    destination_service_name: str | None = None
    local_service_address: str | None = None
    local_service_port: int | None = None
    upstreams: list[AgentServiceProxyUpstream] | None = None


class AgentService(AgentModel):
    """A service registered with the agent."""

    id: str = Field(default="", alias="ID")
    service: str = ""
    tags: list[str] | None = None
    port: int = 0
    address: str = ""
    tagged_addresses: dict[str, ServiceTaggedAddress] | None = None
    enable_tag_override: bool = False
    meta: dict[str, str] | None = None
    proxy: AgentServiceProxy | None = None
    connect: AgentServiceConnect | None = None
    kind: OptionalServiceKind = None


class AgentMember(AgentModel):
    """A cluster member as seen by the agent's gossip pool."""

    name: str = ""
    addr: str = ""
    port: int = 0
    tags: dict[str, str] = Field(default_factory=dict)
    status: int = 0
    protocol_min: int = 0
    protocol_max: int = 0
    protocol_cur: int = 0
    delegate_min: int = 0
    delegate_max: int = 0
    delegate_cur: int = 0


class LocalServiceHealth(AgentModel):
    """Aggregated health of a locally registered service."""

    aggregated_status: str = ""
    service: AgentService | None = None
    checks: list[AgentCheck] = Field(default_factory=list)


class AgentVersion(AgentModel):
    sha: str = Field(default="", alias="SHA")
    build_date: datetime | None = None
    human_version: str = ""
    fips: str = Field(default="", alias="FIPS")


# ──────────────────────────────────────────────────────────────
# Write models
# ──────────────────────────────────────────────────────────────


class AgentServiceCheck(AgentModel):
    """Check definition attached to a service or registered on its own.

    Durations use Consul's duration strings, e.g. "10s" or "1m".
    """

    id: str | None = Field(default=None, alias="ID")
    check_id: str | None = Field(default=None, alias="CheckID")
    name: str | None = None
    notes: str | None = None
    args: list[str] | None = None
    docker_container_id: str | None = Field(default=None, alias="DockerContainerID")
    shell: str | None = None  # Docker checks only
    interval: str | None = None
    timeout: str | None = None
    ttl: str | None = Field(default=None, alias="TTL")
    http: str | None = Field(default=None, alias="HTTP")
    header: dict[str, list[str]] | None = None
    method: str | None = None
    body: str | None = None
    tcp: str | None = Field(default=None, alias="TCP")
    status: str | None = None
    tls_skip_verify: bool | None = Field(default=None, alias="TLSSkipVerify")
    grpc: str | None = Field(default=None, alias="GRPC")
    grpc_use_tls: bool | None = Field(default=None, alias="GRPCUseTLS")
    alias_service: str | None = None
    alias_node: str | None = None
    deregister_critical_service_after: str | None = None


class AgentCheckRegistration(AgentServiceCheck):
    service_id: str | None = Field(default=None, alias="ServiceID")


class AgentServiceRegistration(AgentModel):
    """Payload for PUT /v1/agent/service/register."""

    id: str | None = Field(default=None, alias="ID")
    name: str
    tags: list[str] | None = None
    port: int | None = None
    address: str | None = None
    enable_tag_override: bool | None = None
    check: AgentServiceCheck | None = None
    checks: list[AgentServiceCheck] | None = None
    meta: dict[str, str] | None = None
    tagged_addresses: dict[str, ServiceTaggedAddress] | None = None
    connect: AgentServiceConnect | None = None
    proxy: AgentServiceProxy | None = None
    kind: OptionalServiceKind = None


class AgentServiceConnect(AgentModel):
    native: bool | None = None
    sidecar_service: AgentServiceRegistration | None = None


class CheckUpdate(AgentModel):
    """Body of PUT /v1/agent/check/update/{check_id}."""

    status: TTLStatusField
    output: str = ""


AgentService.model_rebuild()
AgentServiceRegistration.model_rebuild()
