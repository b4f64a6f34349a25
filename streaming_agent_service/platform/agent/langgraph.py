"""LangGraph integration components.

This module provides the native tool loop: a LangGraph StateGraph with a
reasoner node and a tool node drives the rounds, and its streamed output
(model tokens, node updates and tool events) is re-emitted as StreamEvents.
"""

import logging

from langchain_core.messages import AIMessageChunk, BaseMessage
from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from streaming_agent_service.platform.agent.config import AgentConfig, LoopStrategy
from streaming_agent_service.platform.agent.llm_client import LlmClient
from streaming_agent_service.platform.agent.messages import Message, StreamEvent
from streaming_agent_service.platform.agent.nodes import ReasonerNode, ToolRoundNode
from streaming_agent_service.platform.agent.parser import LangGraphMessageParser
from streaming_agent_service.platform.agent.protocol import (
    EventEmitter,
    TurnCancellation,
    TurnOutcome,
)
from streaming_agent_service.platform.agent.state import LoopState
from streaming_agent_service.platform.agent.streaming import RoundText, synthesize_tokens
from streaming_agent_service.platform.tools.executor import ToolExecutor
from streaming_agent_service.platform.tools.registry import ToolRegistry

__all__ = ["LangGraphMessageParser", "NativeToolLoop"]

logger = logging.getLogger(__name__)

REASONER_NODE = "reasoner"
TOOLS_NODE = "tools"


class NativeToolLoop:
    """Tool loop driven by a LangGraph StateGraph.

    The graph alternates reasoner and tool rounds until the model answers
    without tool calls or the round budget is spent. This class only turns
    the graph's stream into StreamEvents and collects the turn outcome.

    Example:
        loop = NativeToolLoop(llm_client, registry, AgentConfig(max_rounds=5))
        outcome = await loop.run(messages, emit, TurnCancellation())
    """

    def __init__(
        self,
        llm_client: LlmClient,
        registry: ToolRegistry,
        config: AgentConfig,
        message_parser: LangGraphMessageParser | None = None,
    ) -> None:
        """Initialize the native loop.

        Args:
            llm_client: LLM client; tool schemas are bound here
            registry: Tools available to the model
            config: Agent configuration (round budget, recursion limit, trimming)
            message_parser: Optional custom message parser
        """
        self._config = config
        self._registry = registry
        self._parser = message_parser or LangGraphMessageParser()
        self._graph = self._build_graph(llm_client)

    @property
    def name(self) -> str:
        return LoopStrategy.NATIVE

    @property
    def graph(self) -> CompiledStateGraph:
        return self._graph

    def _build_graph(self, llm_client: LlmClient) -> CompiledStateGraph:
        llm_with_tools = llm_client.bind_tools(self._registry.schemas()) if len(self._registry) else llm_client

        reasoner_node = ReasonerNode(llm_with_tools, self._config)
        tool_node = ToolRoundNode(ToolExecutor(self._registry), self._parser)

        workflow = StateGraph(LoopState)  # type: ignore[bad-specialization]

        workflow.add_node(REASONER_NODE, reasoner_node)  # type: ignore
        workflow.add_node(TOOLS_NODE, tool_node)  # type: ignore

        workflow.add_edge(START, REASONER_NODE)  # type: ignore
        workflow.add_conditional_edges(REASONER_NODE, self._route, [TOOLS_NODE, END])
        workflow.add_edge(TOOLS_NODE, REASONER_NODE)  # type: ignore

        # Every round visits two nodes; keep headroom above the round budget
        recursion_limit = max(self._config.recursion_limit, 2 * self._config.max_rounds + 2)
        return workflow.compile().with_config({"recursion_limit": recursion_limit})  # type: ignore

    def _route(self, state: LoopState) -> str:
        last_message = state["messages"][-1]
        if not self._parser.tool_call_requests(last_message):
            return END
        if state.get("rounds", 0) >= self._config.max_rounds:
            return END
        return TOOLS_NODE

    async def run(
        self,
        messages: list[Message],
        emit: EventEmitter,
        cancellation: TurnCancellation,
        outcome: TurnOutcome | None = None,
    ) -> TurnOutcome:
        init_state = {
            "messages": self._parser.to_langchain(messages),
            "rounds": 0,
            "usage": {},
        }
        if outcome is None:
            outcome = TurnOutcome()
        round_text = RoundText()
        latest_text = ""
        latest_unstreamed = ""

        async for mode, payload in self._graph.astream(
            init_state,
            config={"configurable": {"cancellation": cancellation}},
            stream_mode=["messages", "custom", "updates"],
        ):
            if mode == "messages":
                chunk, metadata = payload
                # Whole messages are re-emitted from the node update instead
                if metadata.get("langgraph_node") != REASONER_NODE or not isinstance(chunk, AIMessageChunk):
                    continue
                text = self._parser.text_fragment(chunk)
                if text is not None:
                    round_text.add(text)
                    await emit(StreamEvent.token(text))

            elif mode == "custom":
                if isinstance(payload, StreamEvent):
                    await emit(payload)

            elif mode == "updates":
                for node_name, node_data in payload.items():
                    if not isinstance(node_data, dict):
                        continue
                    node_messages: list[BaseMessage] = node_data.get("messages", [])
                    if node_name == REASONER_NODE and node_messages:
                        outcome.rounds = node_data.get("rounds", outcome.rounds + 1)
                        response = node_messages[-1]
                        text = self._parser.extract_content(response)
                        if self._parser.tool_call_requests(response):
                            if text:
                                latest_text, latest_unstreamed = text, round_text.remainder(text)
                            if outcome.rounds >= self._config.max_rounds:
                                outcome.exhausted = True
                            else:
                                outcome.new_messages.append(self._parser.from_langchain(response))
                        else:
                            for token in synthesize_tokens(round_text.remainder(text)):
                                await emit(StreamEvent.token(token))
                            outcome.answer = text
                        round_text.reset()
                    elif node_name == TOOLS_NODE:
                        outcome.new_messages.extend(self._parser.convert_messages(node_messages))

                if cancellation.cancelled:
                    logger.info("Turn cancelled after round %d; stopping graph", outcome.rounds)
                    break

        if outcome.exhausted:
            logger.warning("Round budget of %d exhausted", self._config.max_rounds)
            for token in synthesize_tokens(latest_unstreamed):
                await emit(StreamEvent.token(token))
            outcome.answer = latest_text
        return outcome
