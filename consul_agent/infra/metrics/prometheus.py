"""Prometheus registry shared by the client's metrics."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, generate_latest

# Custom registry so the client never pollutes the host process's default one
REGISTRY = CollectorRegistry()

# Covers agent round trips from 1ms to 10s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)


def render_metrics() -> bytes:
    """Render the client registry in Prometheus text exposition format."""
    return generate_latest(REGISTRY)
