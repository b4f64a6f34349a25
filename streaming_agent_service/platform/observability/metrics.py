"""Prometheus metrics for HTTP traffic and Server-Sent Event streams.

The HTTP middleware only sees a streaming response until its headers are
sent, so SSE bodies are wrapped with ``track_stream`` to measure the full
lifetime of each stream and how many frames it carried.
"""

from collections.abc import AsyncIterator
from time import monotonic
from typing import NamedTuple

import prometheus_client
from starlette.routing import Match


class HTTPLabels(NamedTuple):
    method: str
    path: str
    http_status: str


class StreamLabels(NamedTuple):
    path: str
    outcome: str


BUCKETS = (
    # log spaced, 3 per decade
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    60,  # several tool rounds against a slow provider
    120,
    float("inf"),
)

http_histogram = prometheus_client.Histogram(
    name="http_request_duration_seconds",
    documentation="Time until the response headers are sent (seconds)",
    labelnames=HTTPLabels._fields,
    buckets=BUCKETS,
)

stream_histogram = prometheus_client.Histogram(
    name="sse_stream_duration_seconds",
    documentation="Full lifetime of a Server-Sent Events response (seconds)",
    labelnames=StreamLabels._fields,
    buckets=BUCKETS,
)

stream_frames = prometheus_client.Counter(
    name="sse_frames_total",
    documentation="Frames written to Server-Sent Events responses",
    labelnames=["path"],
)

streams_open = prometheus_client.Gauge(
    name="sse_streams_open",
    documentation="Server-Sent Events responses currently being written",
)


def status_class(status: int) -> str:
    """Collapse a status code to 2XX, 4XX, ..."""
    return f"{status // 100}XX"


def route_template(request) -> str:
    """Matched route template, so path parameters do not explode label cardinality."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route.path
    return "path-not-found"


async def prometheus_middleware(request, call_next):
    """HTTP middleware recording the time until response headers are ready."""
    start = monotonic()
    response = await call_next(request)
    labels = HTTPLabels(
        method=request.method,
        path=route_template(request),
        http_status=status_class(response.status_code),
    )
    http_histogram.labels(*labels).observe(monotonic() - start)
    return response


async def track_stream(path: str, frames: AsyncIterator[str]) -> AsyncIterator[str]:
    """Pass SSE frames through while recording stream duration and frame count.

    Args:
        path: Route template the stream is served from
        frames: Encoded frames to forward

    Yields:
        The frames, unchanged
    """
    outcome = "completed"
    start = monotonic()
    streams_open.inc()
    try:
        async for frame in frames:
            stream_frames.labels(path).inc()
            yield frame
    except BaseException:
        # GeneratorExit or CancelledError when the client goes away
        outcome = "disconnected"
        raise
    finally:
        streams_open.dec()
        stream_histogram.labels(*StreamLabels(path, outcome)).observe(monotonic() - start)


def metrics() -> tuple[bytes, str]:
    """Render the default registry for the /metrics endpoint.

    Returns:
        Tuple of (body, content_type)
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
