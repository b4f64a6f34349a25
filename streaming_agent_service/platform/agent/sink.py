"""Event sink between a running turn and the HTTP stream.

The turn runs as a background task and pushes events into an unbounded
queue; the response generator drains it. If the consumer stops before the
done event (client disconnect), the turn's cancellation flag is set.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeAlias

from streaming_agent_service.platform.agent.messages import StreamEvent
from streaming_agent_service.platform.agent.protocol import EventEmitter, TurnCancellation

logger = logging.getLogger(__name__)

Producer: TypeAlias = Callable[[EventEmitter], Awaitable[None]]

# Strong references to running turns; the event loop only keeps weak ones
_background_tasks: set[asyncio.Task] = set()


def format_sse(event: StreamEvent) -> str:
    """Encode one event as a Server-Sent Events frame."""
    return f"event: {event.event_type}\ndata: {json.dumps(event.data, default=str)}\n\n"


class EventStream:
    """Single-producer, single-consumer event stream for one turn.

    Example:
        stream = EventStream()
        stream.start(lambda emit: loop.run_turn(lease, message, emit, stream.cancellation))
        async for event in stream.events():
            yield format_sse(event)
    """

    def __init__(self, cancellation: TurnCancellation | None = None) -> None:
        self.cancellation = cancellation or TurnCancellation()
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._done_emitted = False
        self._task: asyncio.Task | None = None

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    async def emit(self, event: StreamEvent) -> None:
        """Enqueue an event. Events after done are dropped."""
        if self._done_emitted:
            logger.debug("Dropping %s event emitted after done", event.event_type)
            return
        if event.is_done:
            self._done_emitted = True
        self._queue.put_nowait(event)

    def start(self, producer: Producer) -> asyncio.Task:
        """Run the producer in the background, feeding this stream."""
        if self._task is not None:
            raise RuntimeError("Event stream already started")
        self._task = asyncio.create_task(self._run(producer))
        _background_tasks.add(self._task)
        self._task.add_done_callback(_background_tasks.discard)
        return self._task

    async def _run(self, producer: Producer) -> None:
        try:
            await producer(self.emit)
        except Exception as e:
            logger.exception("Turn producer failed")
            await self.emit(StreamEvent.error(str(e) or type(e).__name__))
        finally:
            if not self._done_emitted:
                await self.emit(StreamEvent.done())

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events until and including done."""
        delivered_done = False
        try:
            while True:
                event = await self._queue.get()
                yield event
                if event.is_done:
                    delivered_done = True
                    return
        finally:
            if not delivered_done:
                logger.info("Event consumer went away before done; cancelling turn")
                self.cancellation.cancel()
