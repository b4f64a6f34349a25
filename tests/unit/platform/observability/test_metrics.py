"""Unit tests for HTTP and SSE stream metrics."""

import prometheus_client
import pytest

from streaming_agent_service.platform.observability.metrics import status_class, track_stream


def sample(name: str, **labels) -> float:
    return prometheus_client.REGISTRY.get_sample_value(name, labels) or 0.0


async def frames(*items: str):
    for item in items:
        yield item


@pytest.mark.parametrize(("status", "expected"), [(200, "2XX"), (409, "4XX"), (503, "5XX")])
def test_status_class(status: int, expected: str):
    assert status_class(status) == expected


class TestTrackStream:
    async def test_forwards_frames_and_counts_them(self):
        before = sample("sse_frames_total", path="/unit-complete")
        count_before = sample("sse_stream_duration_seconds_count", path="/unit-complete", outcome="completed")

        received = [frame async for frame in track_stream("/unit-complete", frames("a", "b", "c"))]

        assert received == ["a", "b", "c"]
        assert sample("sse_frames_total", path="/unit-complete") == before + 3
        assert (
            sample("sse_stream_duration_seconds_count", path="/unit-complete", outcome="completed")
            == count_before + 1
        )

    async def test_early_close_is_recorded_as_disconnect(self):
        open_before = sample("sse_streams_open")
        stream = track_stream("/unit-disconnect", frames("a", "b"))

        assert await anext(stream) == "a"
        assert sample("sse_streams_open") == open_before + 1
        await stream.aclose()

        assert sample("sse_streams_open") == open_before
        assert sample("sse_stream_duration_seconds_count", path="/unit-disconnect", outcome="disconnected") == 1
