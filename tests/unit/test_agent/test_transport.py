"""Tests for the httpx-backed agent transport."""

import json

import httpx
import pytest

from consul_agent.agent.client import ConsulAgentClient
from consul_agent.agent.monitor import LogStream
from consul_agent.agent.transport import AgentTransport
from consul_agent.core.exceptions import (
    ConsulAPIError,
    ConsulConnectionError,
    ConsulTimeoutError,
    TransportError,
)
from consul_agent.core.settings.consul import ConsulSettings
from consul_agent.infra.metrics import REGISTRY


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replies from a factory."""

    def __init__(self, respond):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


class InterruptedBody(httpx.AsyncByteStream):
    """Response body that serves some chunks, then fails mid-read."""

    def __init__(self, chunks, error):
        self.chunks = chunks
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise self.error


def make_transport(respond, **settings_overrides):
    handler = RecordingHandler(respond)
    settings = ConsulSettings(**settings_overrides)
    return AgentTransport(settings, transport=httpx.MockTransport(handler)), handler


@pytest.mark.asyncio
class TestAgentTransportRequests:
    """Test request construction and success paths."""

    async def test_get_json_decodes_body(self):
        transport, handler = make_transport(
            lambda request: httpx.Response(200, json={"Config": {"NodeName": "node-A"}})
        )

        data = await transport.get_json("/v1/agent/self", operation="self")

        assert data == {"Config": {"NodeName": "node-A"}}
        assert handler.last.method == "GET"
        assert str(handler.last.url) == "http://127.0.0.1:8500/v1/agent/self"
        await transport.close()

    async def test_default_headers_include_token_and_user_agent(self):
        transport, handler = make_transport(
            lambda request: httpx.Response(200, json=[]),
            token="s3cr3t",
            user_agent="ops-tool/1.0",
        )

        await transport.get_json("/v1/agent/members", operation="members")

        assert handler.last.headers["X-Consul-Token"] == "s3cr3t"
        assert handler.last.headers["User-Agent"] == "ops-tool/1.0"
        await transport.close()

    async def test_no_token_header_without_token(self):
        transport, handler = make_transport(lambda request: httpx.Response(200, json={}))

        await transport.get_json("/v1/agent/checks", operation="checks")

        assert "X-Consul-Token" not in handler.last.headers
        await transport.close()

    async def test_base_url_from_settings(self):
        transport, handler = make_transport(
            lambda request: httpx.Response(200, json={}),
            scheme="https",
            host="consul.internal",
            port=8501,
        )

        await transport.get_json("/v1/agent/services", operation="services")

        assert transport.base_url == "https://consul.internal:8501"
        assert handler.last.url.host == "consul.internal"
        await transport.close()

    async def test_put_sends_json_body_and_params(self):
        transport, handler = make_transport(lambda request: httpx.Response(200))

        await transport.put(
            "/v1/agent/check/update/service%3Aweb",
            {"Status": "passing", "Output": "ok"},
            {"replace-existing-checks": "true"},
            operation="ttl_update",
        )

        request = handler.last
        assert request.method == "PUT"
        assert request.url.path == "/v1/agent/check/update/service:web"
        assert request.url.params["replace-existing-checks"] == "true"
        assert json.loads(request.content) == {"Status": "passing", "Output": "ok"}
        await transport.close()

    async def test_get_text_returns_body(self):
        transport, handler = make_transport(lambda request: httpx.Response(200, text="passing"))

        body = await transport.get_text(
            "/v1/agent/health/service/name/web", {"format": "text"}, operation="health"
        )

        assert body == "passing"
        assert handler.last.url.params["format"] == "text"
        await transport.close()

    async def test_allowed_status_is_not_an_error(self):
        transport, _ = make_transport(lambda request: httpx.Response(503, text="critical"))

        body = await transport.get_text(
            "/v1/agent/health/service/name/web",
            operation="health",
            allow_status=(429, 503),
        )

        assert body == "critical"
        await transport.close()


@pytest.mark.asyncio
class TestAgentTransportErrors:
    """Test error mapping."""

    async def test_http_error_status_raises_api_error(self):
        transport, _ = make_transport(
            lambda request: httpx.Response(500, text="rpc error: No cluster leader")
        )

        with pytest.raises(ConsulAPIError) as exc_info:
            await transport.get_json("/v1/agent/self", operation="self")

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "rpc error: No cluster leader"
        assert exc_info.value.operation == "self"
        assert exc_info.value.extra["status_code"] == 500
        await transport.close()

    async def test_empty_error_body_uses_reason_phrase(self):
        transport, _ = make_transport(lambda request: httpx.Response(404))

        with pytest.raises(ConsulAPIError) as exc_info:
            await transport.put("/v1/agent/check/pass/missing", operation="ttl_pass")

        assert exc_info.value.detail == "Not Found"
        await transport.close()

    async def test_timeout_raises_timeout_error(self):
        def respond(request):
            raise httpx.ReadTimeout("timed out", request=request)

        transport, _ = make_transport(respond)
        labels = {"operation": "unit_timeout", "error_type": "timeout"}
        before = REGISTRY.get_sample_value("consul_agent_errors_total", labels) or 0.0

        with pytest.raises(ConsulTimeoutError) as exc_info:
            await transport.get_json("/v1/agent/self", operation="unit_timeout")

        assert exc_info.value.type == "timeout"
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
        assert REGISTRY.get_sample_value("consul_agent_errors_total", labels) - before == 1
        await transport.close()

    async def test_connect_error_raises_connection_error(self):
        def respond(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport, _ = make_transport(respond)

        with pytest.raises(ConsulConnectionError) as exc_info:
            await transport.put("/v1/agent/leave", operation="leave")

        assert exc_info.value.type == "connection-error"
        assert isinstance(exc_info.value, TransportError)
        await transport.close()

    async def test_invalid_json_raises_transport_error(self):
        transport, _ = make_transport(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(TransportError) as exc_info:
            await transport.get_json("/v1/agent/self", operation="self")

        assert exc_info.value.type == "invalid-response"
        await transport.close()

    async def test_success_is_counted(self):
        transport, _ = make_transport(lambda request: httpx.Response(200, json={}))
        labels = {"operation": "unit_success", "status": "success"}
        before = REGISTRY.get_sample_value("consul_agent_requests_total", labels) or 0.0

        await transport.get_json("/v1/agent/self", operation="unit_success")

        assert REGISTRY.get_sample_value("consul_agent_requests_total", labels) - before == 1
        await transport.close()


@pytest.mark.asyncio
class TestAgentTransportStreaming:
    """Test the open-body GET used by the monitor."""

    async def test_stream_get_feeds_log_stream(self):
        transport, handler = make_transport(
            lambda request: httpx.Response(200, content=b"[INFO] one\n[INFO] two\n")
        )

        stream = await transport.stream_get(
            "/v1/agent/monitor", {"loglevel": "info"}, operation="monitor"
        )
        async with LogStream(stream) as logs:
            lines = [line async for line in logs]

        assert lines == ["[INFO] one", "[INFO] two"]
        assert stream.response.is_closed
        assert handler.last.url.params["loglevel"] == "info"
        await transport.close()

    async def test_stream_get_uses_unbounded_read_timeout(self):
        transport, handler = make_transport(lambda request: httpx.Response(200, content=b""))

        response = await transport.stream_get("/v1/agent/monitor", operation="monitor")
        await response.aclose()

        timeout = handler.last.extensions["timeout"]
        assert timeout["read"] is None
        assert timeout["connect"] == 5.0
        await transport.close()

    async def test_stream_get_configured_read_timeout(self):
        transport, handler = make_transport(
            lambda request: httpx.Response(200, content=b""),
            monitor_read_timeout=30.0,
        )

        response = await transport.stream_get("/v1/agent/monitor", operation="monitor")
        await response.aclose()

        assert handler.last.extensions["timeout"]["read"] == 30.0
        await transport.close()

    async def test_stream_get_error_status_raises_and_closes(self):
        transport, _ = make_transport(
            lambda request: httpx.Response(403, text="Permission denied")
        )

        with pytest.raises(ConsulAPIError) as exc_info:
            await transport.stream_get("/v1/agent/monitor", operation="monitor")

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Permission denied"
        await transport.close()

    async def test_dropped_connection_mid_stream_raises_connection_error(self):
        transport, _ = make_transport(
            lambda request: httpx.Response(
                200, stream=InterruptedBody([b"line1\n"], httpx.ReadError("connection dropped"))
            )
        )
        labels = {"operation": "unit_stream_drop", "error_type": "connection"}
        before = REGISTRY.get_sample_value("consul_agent_errors_total", labels) or 0.0

        stream = await transport.stream_get("/v1/agent/monitor", operation="unit_stream_drop")
        logs = LogStream(stream)

        assert await anext(logs) == "line1"
        with pytest.raises(ConsulConnectionError) as exc_info:
            await anext(logs)

        assert isinstance(exc_info.value.__cause__, httpx.ReadError)
        assert exc_info.value.operation == "unit_stream_drop"
        assert logs.released
        assert stream.response.is_closed
        assert REGISTRY.get_sample_value("consul_agent_errors_total", labels) - before == 1
        await transport.close()

    async def test_read_timeout_mid_stream_raises_timeout_error(self):
        transport, _ = make_transport(
            lambda request: httpx.Response(
                200, stream=InterruptedBody([b"a\n", b"b\n"], httpx.ReadTimeout("idle"))
            )
        )

        stream = await transport.stream_get("/v1/agent/monitor", operation="monitor")

        with pytest.raises(ConsulTimeoutError):
            async with LogStream(stream) as logs:
                async for _ in logs:
                    pass

        await transport.close()

    async def test_client_monitor_surfaces_transport_error(self):
        transport, _ = make_transport(
            lambda request: httpx.Response(
                200, stream=InterruptedBody([b"line1\n"], httpx.ReadError("connection dropped"))
            )
        )
        seen = []

        async with ConsulAgentClient(transport=transport) as agent:
            with pytest.raises(TransportError):
                async with agent.monitor() as logs:
                    async for line in logs:
                        seen.append(line)

        assert seen == ["line1"]
