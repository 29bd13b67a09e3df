"""Prometheus metrics infrastructure."""

from consul_agent.infra.metrics.prometheus import (
    DEFAULT_LATENCY_BUCKETS,
    REGISTRY,
    render_metrics,
)

__all__ = ["DEFAULT_LATENCY_BUCKETS", "REGISTRY", "render_metrics"]
