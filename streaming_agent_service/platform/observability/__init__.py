"""Observability infrastructure module.

- Structured logging stamped with correlation, agent and session IDs
- Prometheus metrics for HTTP requests and SSE streams
- Bugsnag error reporting
"""

from streaming_agent_service.platform.observability.logging import (
    bind_turn,
    configure_logging,
    correlation_id_ctx,
)
from streaming_agent_service.platform.observability.metrics import (
    BUCKETS,
    prometheus_middleware,
    track_stream,
)

__all__ = [
    "BUCKETS",
    "bind_turn",
    "configure_logging",
    "correlation_id_ctx",
    "prometheus_middleware",
    "track_stream",
]
