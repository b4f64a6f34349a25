"""Graph nodes for the native tool loop."""

import logging
from typing import Protocol, runtime_checkable

from langchain_core.messages import AIMessage, ToolMessage, trim_messages
from langchain_core.runnables import RunnableConfig
from langgraph.config import get_stream_writer

from streaming_agent_service.platform.agent.completion import recover_tool_calls
from streaming_agent_service.platform.agent.config import AgentConfig
from streaming_agent_service.platform.agent.exceptions import CompletionError
from streaming_agent_service.platform.agent.llm_client import LlmClient
from streaming_agent_service.platform.agent.messages import StreamEvent
from streaming_agent_service.platform.agent.parser import LangGraphMessageParser
from streaming_agent_service.platform.agent.state import LoopState
from streaming_agent_service.platform.tools.executor import ToolExecutor

logger = logging.getLogger(__name__)


@runtime_checkable
class Node(Protocol):
    """Protocol for loop graph nodes.

    Nodes are callable objects that take LoopState and return a state update.
    """

    async def __call__(self, state: LoopState, config: RunnableConfig) -> dict: ...


class ReasonerNode(Node):
    """Node that asks the model for the next action or the final answer.

    Each call is one completion round; the round counter drives the budget
    check in the graph's routing.
    """

    def __init__(self, llm_with_tools: LlmClient, config: AgentConfig):
        """Initialize the reasoner node.

        Args:
            llm_with_tools: LLM with tool schemas bound
            config: Agent configuration
        """
        self.llm = llm_with_tools
        self.config = config
        self._trimmer = trim_messages(  # type: ignore
            max_tokens=self.config.max_context_tokens,
            strategy="last",
            token_counter=lambda msgs: sum(len(m.content) for m in msgs) // 4,  # ~4 chars per token
            include_system=True,
            allow_partial=False,
            start_on="human",
        )

    def _usage(self, response: AIMessage) -> dict:
        input_tokens, output_tokens = self.llm.extract_tokens(response)
        return {self.llm.model_name: {"input": input_tokens, "output": output_tokens}}

    async def __call__(self, state: LoopState, config: RunnableConfig) -> dict:
        messages = state["messages"]
        cancellation = config.get("configurable", {}).get("cancellation")
        if cancellation is not None and cancellation.cancelled:
            # No new round once the client is gone; routing ends the graph
            return {"rounds": state.get("rounds", 0)}
        rounds = state.get("rounds", 0) + 1
        logger.debug(f"Round {rounds}, messages count: {len(messages)}")

        chain = self._trimmer | self.llm
        try:
            result = await chain.ainvoke(messages, config=config)
        except Exception as e:
            logger.warning("Completion request to %s failed: %s", self.llm.model_name, e)
            raise CompletionError(str(e) or type(e).__name__, model=self.llm.model_name) from e
        result = recover_tool_calls(result)
        return {
            "messages": [result],
            "rounds": rounds,
            "usage": self._usage(result),
        }


class ToolRoundNode(Node):
    """Node that executes the tool calls of the latest model response.

    Calls run sequentially through the ``ToolExecutor``. Tool events are
    written to the graph's custom stream as they happen so they reach the
    client in real time, interleaved correctly with the tokens.
    """

    def __init__(self, executor: ToolExecutor, parser: LangGraphMessageParser):
        self.executor = executor
        self.parser = parser

    async def __call__(self, state: LoopState, config: RunnableConfig) -> dict:
        calls = self.parser.tool_call_requests(state["messages"][-1])
        cancellation = config.get("configurable", {}).get("cancellation")
        writer = get_stream_writer()

        async def emit(event: StreamEvent) -> None:
            writer(event)

        results = await self.executor.execute_all(calls, emit, cancellation)
        return {
            "messages": [
                ToolMessage(
                    content=result.content,
                    tool_call_id=result.tool_call_id,
                    name=result.name,
                    status="success" if result.success else "error",
                )
                for result in results
            ]
        }
