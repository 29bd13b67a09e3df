"""Prometheus metrics for Consul agent API calls.

These metrics track request outcomes, latency, and the live log monitor so
operators can see when the local agent is slow or failing.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

from consul_agent.infra.metrics.prometheus import DEFAULT_LATENCY_BUCKETS, REGISTRY

# ──────────────────────────────────────────────────────────────
# Request metrics
# ──────────────────────────────────────────────────────────────

agent_requests_total = Counter(
    "consul_agent_requests_total",
    "Total requests sent to the Consul agent HTTP API. "
    "Tracks successful and failed calls per logical operation. "
    "Usage: Increment after each request completes or fails.",
    ["operation", "status"],  # status: success, failure
    registry=REGISTRY,
)

agent_errors_total = Counter(
    "consul_agent_errors_total",
    "Total errors during Consul agent API calls. "
    "Categorized by operation and error type for debugging.",
    [
        "operation",
        "error_type",
    ],  # error_type: timeout/connection/http_error
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Latency metrics
# ──────────────────────────────────────────────────────────────

agent_operation_duration_seconds = Histogram(
    "consul_agent_operation_duration_seconds",
    "Duration of Consul agent API calls in seconds. "
    "For streaming calls this covers opening the stream only.",
    ["operation"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Identity and monitor metrics
# ──────────────────────────────────────────────────────────────

agent_node_name_fetches_total = Counter(
    "consul_agent_node_name_fetches_total",
    "Node name lookups that reached the agent (cache misses).",
    registry=REGISTRY,
)

agent_monitor_lines_total = Counter(
    "consul_agent_monitor_lines_total",
    "Log lines read from the agent monitor stream.",
    ["stream"],  # monitor, monitor_json
    registry=REGISTRY,
)
