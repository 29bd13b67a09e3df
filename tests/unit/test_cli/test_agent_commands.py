"""Tests for the consul-agent CLI commands.

Testing approach:
- Uses Click's CliRunner for command invocation
- Patches create_client to bind commands to the in-memory agent
- Patches setup_logging so tests never touch global logging handlers
"""

import json
from unittest.mock import patch

from click.testing import CliRunner
import pytest

from consul_agent.agent.client import ConsulAgentClient
from consul_agent.agent.mock_transport import MemoryByteStream
from consul_agent.agent.models import AgentCheck, AgentMember, AgentService
from consul_agent.cli.main import cli
from consul_agent.core.exceptions import ConsulConnectionError

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner, mock_transport):
    """Invoke the CLI against the in-memory agent.

    Returns:
        Callable taking CLI arguments and returning the click Result.
    """

    def _invoke(*args):
        with (
            patch(
                "consul_agent.cli.main.create_client",
                side_effect=lambda: ConsulAgentClient(transport=mock_transport),
            ),
            patch("consul_agent.cli.main.setup_logging"),
        ):
            return cli_runner.invoke(cli, list(args), obj={})

    return _invoke


@pytest.fixture
def ttl_check(mock_transport):
    mock_transport.checks["service:web-1"] = AgentCheck(
        node="node-A",
        check_id="service:web-1",
        name="web TTL",
        status="critical",
        service_id="web-1",
        service_name="web",
        type="ttl",
    )
    return "service:web-1"


# =============================================================================
# Identity and listings
# =============================================================================


class TestQueryCommands:
    def test_node_name(self, invoke, mock_transport):
        result = invoke("node-name")

        assert result.exit_code == 0
        assert result.output.strip() == "node-A"
        assert mock_transport.closed

    def test_self_prints_json(self, invoke):
        result = invoke("self")

        assert result.exit_code == 0
        assert json.loads(result.output)["Config"]["NodeName"] == "node-A"

    def test_members(self, invoke, mock_transport):
        mock_transport.members = [AgentMember(name="node-A", addr="10.0.0.1", port=8301, status=1)]

        result = invoke("members", "--wan")

        assert result.exit_code == 0
        assert "Members (1)" in result.output
        assert "10.0.0.1:8301" in result.output
        assert mock_transport.calls_to("members")[0].params == {"wan": "1"}

    def test_services_with_filter(self, invoke, mock_transport):
        mock_transport.services["web-1"] = AgentService(
            id="web-1", service="web", address="10.0.0.5", port=8080, tags=["v1", "blue"]
        )

        result = invoke("services", "--filter", 'Service == "web"')

        assert result.exit_code == 0
        assert "web-1" in result.output
        assert "[v1,blue]" in result.output
        assert mock_transport.calls_to("services")[0].params == {"filter": 'Service == "web"'}

    def test_checks(self, invoke, ttl_check):
        result = invoke("checks")

        assert result.exit_code == 0
        assert "Checks (1)" in result.output
        assert ttl_check in result.output
        assert "critical" in result.output

    def test_transport_failure_exits_nonzero(self, invoke, mock_transport):
        mock_transport.fail_next_call = True

        result = invoke("node-name")

        assert result.exit_code == 1
        assert "Consul agent request failed" in result.output
        assert mock_transport.closed


# =============================================================================
# TTL and maintenance
# =============================================================================


class TestTTLCommand:
    @pytest.mark.parametrize(
        ("given", "state"),
        [("pass", "passing"), ("warning", "warning"), ("fail", "critical")],
    )
    def test_current_endpoint(self, invoke, mock_transport, ttl_check, given, state):
        result = invoke("ttl", ttl_check, given, "-o", "checked by cron")

        assert result.exit_code == 0
        assert f"{ttl_check} is now {state}" in result.output
        assert mock_transport.checks[ttl_check].status == state
        assert mock_transport.calls_to("ttl_update")[0].body == {
            "Status": state,
            "Output": "checked by cron",
        }

    def test_legacy_endpoint(self, invoke, mock_transport, ttl_check):
        result = invoke("ttl", ttl_check, "warning", "--legacy", "--output", "slow disk")

        assert result.exit_code == 0
        call = mock_transport.calls_to("ttl_warn")[0]
        assert call.path == "/v1/agent/check/warn/service%3Aweb-1"
        assert call.params == {"note": "slow disk"}
        assert mock_transport.checks[ttl_check].status == "warning"

    def test_invalid_status_is_usage_error(self, invoke, mock_transport, ttl_check):
        result = invoke("ttl", ttl_check, "ok")

        assert result.exit_code == 2
        assert "Invalid TTL status value: 'ok'" in result.output
        assert mock_transport.call_history == []

    def test_unknown_check_exits_nonzero(self, invoke):
        result = invoke("ttl", "service:missing", "pass")

        assert result.exit_code == 1
        assert "Consul agent request failed" in result.output


class TestMaintenanceCommand:
    def test_node_enable_and_disable(self, invoke, mock_transport):
        result = invoke("maintenance", "enable", "--reason", "patching")

        assert result.exit_code == 0
        assert "Maintenance enabled for node" in result.output
        assert mock_transport.node_maintenance == "patching"

        result = invoke("maintenance", "disable")

        assert result.exit_code == 0
        assert mock_transport.node_maintenance is None

    def test_service_enable(self, invoke, mock_transport):
        mock_transport.services["web-1"] = AgentService(id="web-1", service="web")

        result = invoke("maintenance", "enable", "--service", "web-1", "--reason", "deploy")

        assert result.exit_code == 0
        assert "Maintenance enabled for service web-1" in result.output
        assert mock_transport.service_maintenance == {"web-1": "deploy"}

    def test_invalid_action(self, invoke):
        result = invoke("maintenance", "toggle")

        assert result.exit_code == 2


# =============================================================================
# Monitor
# =============================================================================


class TestMonitorCommand:
    def test_tails_until_agent_closes(self, invoke, mock_transport):
        mock_transport.monitor_lines = ["[INFO] agent: started", "[INFO] agent: synced"]

        result = invoke("monitor")

        assert result.exit_code == 0
        assert "[INFO] agent: started" in result.output
        assert "[INFO] agent: synced" in result.output
        assert "Agent closed the log stream after 2 lines" in result.output
        assert mock_transport.streams[0].close_count == 1

    def test_stops_after_line_limit(self, invoke, mock_transport):
        mock_transport.monitor_lines = [f"line {i}" for i in range(10)]

        result = invoke("monitor", "--lines", "3", "--level", "debug")

        assert result.exit_code == 0
        assert result.output.splitlines() == ["line 0", "line 1", "line 2"]
        assert mock_transport.streams[0].close_count == 1
        assert mock_transport.calls_to("monitor")[0].params == {"loglevel": "debug"}

    def test_json_mode(self, invoke, mock_transport):
        mock_transport.monitor_lines = ['{"@message":"started"}']

        result = invoke("monitor", "--json", "--lines", "1")

        assert result.exit_code == 0
        assert mock_transport.calls_to("monitor_json")[0].params == {
            "loglevel": "info",
            "logjson": "true",
        }

    def test_stream_interrupted_exits_nonzero(self, invoke, mock_transport):
        stream = MemoryByteStream([b"[INFO] agent: started\n"])

        async def interrupted_chunks():
            for chunk in stream.chunks:
                yield chunk
            raise ConsulConnectionError("Consul agent stream interrupted", operation="monitor")

        stream.aiter_bytes = interrupted_chunks

        async def stream_get(path, params=None, *, operation):
            return stream

        mock_transport.stream_get = stream_get

        result = invoke("monitor")

        assert result.exit_code == 1
        assert "[INFO] agent: started" in result.output
        assert "Consul agent request failed: Consul agent stream interrupted" in result.output
        assert stream.close_count == 1

    @pytest.mark.parametrize("limit", ["0", "-1"])
    def test_line_limit_must_be_positive(self, invoke, mock_transport, limit):
        mock_transport.monitor_lines = ["line 0"]

        result = invoke("monitor", "--lines", limit)

        assert result.exit_code == 2
        assert "line 0" not in result.output
        assert mock_transport.streams == []

    def test_invalid_level(self, invoke):
        result = invoke("monitor", "--level", "verbose")

        assert result.exit_code == 2


def test_version_option(cli_runner):
    result = cli_runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output
