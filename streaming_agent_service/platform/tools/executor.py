"""Sequential execution of a round's tool calls.

Calls run one at a time, in request order, so tool_call/tool_result events
and the messages fed back to the model are deterministic. Both loop
strategies run tools through here.
"""

import logging
from collections.abc import Sequence

from streaming_agent_service.platform.agent.messages import StreamEvent, ToolCallRequest, ToolResult
from streaming_agent_service.platform.agent.protocol import EventEmitter, TurnCancellation
from streaming_agent_service.platform.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Executes tool calls requested by the completion engine.

    For each call: emit tool_call, validate and coerce the arguments, run
    the tool, emit tool_result. Tool failures come back as results;
    arguments that cannot be coerced raise ``ToolArgumentsError``.

    Example:
        executor = ToolExecutor(registry)
        results = await executor.execute_all(calls, emit, cancellation)
        for result in results:
            messages.append(result.to_message())
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def execute_one(self, call: ToolCallRequest, emit: EventEmitter) -> ToolResult:
        await emit(StreamEvent.tool_call(call.name, call.arguments))
        arguments = self.registry.validate(call)
        result = await self.registry.execute(call, arguments)
        if not result.success:
            logger.info("Tool %s returned an error result", call.name)
        await emit(StreamEvent.tool_result(call.name, result.content))
        return result

    async def execute_all(
        self,
        calls: Sequence[ToolCallRequest],
        emit: EventEmitter,
        cancellation: TurnCancellation | None = None,
    ) -> list[ToolResult]:
        """Execute calls sequentially.

        Stops early, returning the results so far, if the turn is cancelled.

        Args:
            calls: Tool calls from one completion
            emit: Sink for tool_call and tool_result events
            cancellation: Optional cancellation flag checked before each call

        Returns:
            Results in request order
        """
        results: list[ToolResult] = []
        for call in calls:
            if cancellation is not None and cancellation.cancelled:
                logger.info("Turn cancelled; skipping %d remaining tool call(s)", len(calls) - len(results))
                break
            results.append(await self.execute_one(call, emit))
        return results
