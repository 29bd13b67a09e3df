"""Main CLI entry point for the Consul agent client."""

from __future__ import annotations

import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import click

from consul_agent import __version__
from consul_agent.agent import ConsulAgentClient, LogLevel, TTLStatus, decode_status
from consul_agent.cli.utils import coro, error, header, status_label, success, warning
from consul_agent.core.exceptions import StatusDecodeError, TransportError
from consul_agent.core.settings import get_consul_settings
from consul_agent.infra.logging.config import setup_logging


def create_client() -> ConsulAgentClient:
    """Build the client used by every command (patched in tests)."""
    return ConsulAgentClient(settings=get_consul_settings())


@asynccontextmanager
async def _agent() -> AsyncIterator[ConsulAgentClient]:
    """Open a client and turn transport failures into a non-zero exit."""
    client = create_client()
    try:
        yield client
    except TransportError as e:
        error(f"Consul agent request failed: {e.detail}")
        sys.exit(1)
    finally:
        await client.close()


def _parse_status(ctx: click.Context, param: click.Parameter, value: str) -> TTLStatus:
    try:
        return decode_status(value)
    except StatusDecodeError as e:
        raise click.BadParameter(e.detail) from e


@click.group()
@click.version_option(version=__version__, prog_name="consul-agent")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Consul agent CLI - query and update the local Consul agent.

    \b
    Connection settings come from CONSUL_* environment variables
    (CONSUL_HOST, CONSUL_PORT, CONSUL_TOKEN, ...) or conf/consul.yaml.

    \b
    Quick Start:
      consul-agent node-name               # Print the agent's node name
      consul-agent checks                  # List checks and their status
      consul-agent ttl service:web pass    # Mark a TTL check passing
      consul-agent monitor --level debug   # Tail the agent log
    """
    ctx.ensure_object(dict)
    setup_logging()


@cli.command(name="self")
@coro
async def self_info() -> None:
    """Print the agent's self description as JSON."""
    async with _agent() as agent:
        info = await agent.self_info()
    click.echo(json.dumps(info, indent=2, default=str))


@cli.command(name="node-name")
@coro
async def node_name() -> None:
    """Print the agent's node name."""
    async with _agent() as agent:
        click.echo(await agent.get_node_name())


@cli.command()
@click.option("--wan", is_flag=True, help="List WAN pool members instead of LAN")
@coro
async def members(wan: bool) -> None:
    """List cluster members known to the agent."""
    async with _agent() as agent:
        result = await agent.members(wan=wan)

    header(f"Members ({len(result)})")
    for member in result:
        click.echo(f"  {member.name:<30} {member.addr}:{member.port}  status={member.status}")


@cli.command()
@click.option("--filter", "filter_expr", default=None, help="Consul filter expression")
@coro
async def services(filter_expr: str | None) -> None:
    """List services registered with the agent."""
    async with _agent() as agent:
        result = await agent.services(filter=filter_expr)

    header(f"Services ({len(result)})")
    for service_id, service in sorted(result.items()):
        tags = ",".join(service.tags or [])
        click.echo(f"  {service_id:<30} {service.service:<20} {service.address}:{service.port} [{tags}]")


@cli.command()
@click.option("--filter", "filter_expr", default=None, help="Consul filter expression")
@coro
async def checks(filter_expr: str | None) -> None:
    """List checks registered with the agent."""
    async with _agent() as agent:
        result = await agent.checks(filter=filter_expr)

    header(f"Checks ({len(result)})")
    for check_id, check in sorted(result.items()):
        click.echo(f"  {check_id:<30} {status_label(check.status):<20} {check.output}")


@cli.command()
@click.argument("check_id")
@click.argument("status", callback=_parse_status)
@click.option("--output", "-o", default="", help="Check output (note for --legacy)")
@click.option(
    "--legacy",
    is_flag=True,
    help="Use PUT /v1/agent/check/{pass,warn,fail}/<id> instead of check/update",
)
@coro
async def ttl(check_id: str, status: TTLStatus, output: str, legacy: bool) -> None:
    """Set the status of a TTL check.

    STATUS accepts passing/warning/critical or pass/warn/fail.
    """
    async with _agent() as agent:
        if legacy:
            update = {
                TTLStatus.PASSING: agent.pass_ttl,
                TTLStatus.WARNING: agent.warn_ttl,
                TTLStatus.CRITICAL: agent.fail_ttl,
            }[status]
            await update(check_id, note=output or None)
        else:
            await agent.update_ttl(check_id, output, status)

    success(f"{check_id} is now {status.value}")


@cli.command()
@click.argument("action", type=click.Choice(["enable", "disable"]))
@click.option("--service", "service_id", default=None, help="Service ID (default: whole node)")
@click.option("--reason", default="", help="Reason recorded with maintenance mode")
@coro
async def maintenance(action: str, service_id: str | None, reason: str) -> None:
    """Enable or disable maintenance mode for the node or one service."""
    async with _agent() as agent:
        if service_id and action == "enable":
            await agent.enable_service_maintenance(service_id, reason)
        elif service_id:
            await agent.disable_service_maintenance(service_id)
        elif action == "enable":
            await agent.enable_node_maintenance(reason)
        else:
            await agent.disable_node_maintenance()

    target = f"service {service_id}" if service_id else "node"
    success(f"Maintenance {action}d for {target}")


@cli.command()
@click.option(
    "--level",
    type=click.Choice([level.value for level in LogLevel]),
    default=LogLevel.INFO.value,
    show_default=True,
    help="Minimum log level to stream",
)
@click.option("--json", "json_logs", is_flag=True, help="Stream logs as JSON lines")
@click.option(
    "--lines", "max_lines", type=click.IntRange(min=1), default=None, help="Stop after N lines"
)
@coro
async def monitor(level: str, json_logs: bool, max_lines: int | None) -> None:
    """Tail the agent's log output until it closes the stream."""
    count = 0
    async with _agent() as agent:
        stream = agent.monitor_json if json_logs else agent.monitor
        async with stream(LogLevel(level)) as logs:
            async for line in logs:
                click.echo(line)
                count += 1
                if max_lines is not None and count >= max_lines:
                    break

    if max_lines is None:
        warning(f"Agent closed the log stream after {count} lines")


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
