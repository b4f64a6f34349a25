"""Shared test fixtures.

This module provides scripted stand-ins for the completion provider so both
loop strategies can be driven deterministically:
- ScriptedChatModel: a LangChain chat model returning canned AIMessages
- StreamingScriptedChatModel: the same, streaming text character by character
- ScriptedCompletionEngine: a CompletionEngine returning canned Completions
"""

import json
import os
import threading
from collections.abc import Callable, Iterator, Sequence
from typing import Any

# Use litellm's bundled model cost map instead of fetching it over the network at import
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from langchain_core.tools import BaseTool, tool
from pydantic import Field, PrivateAttr

from streaming_agent_service.platform.agent.completion import (
    Completion,
    FragmentCallback,
    LlmCompletionEngine,
)
from streaming_agent_service.platform.agent.config import AgentConfig, AgentIdentity, Audience
from streaming_agent_service.platform.agent.langgraph import NativeToolLoop
from streaming_agent_service.platform.agent.llm_client import LlmClient
from streaming_agent_service.platform.agent.loop import AgentLoop
from streaming_agent_service.platform.agent.manual import ManualToolLoop
from streaming_agent_service.platform.agent.messages import Message, StreamEvent
from streaming_agent_service.platform.conversation.store import ConversationStore
from streaming_agent_service.platform.tools.registry import ToolRegistry

# =============================================================================
# Scripted providers
# =============================================================================


class ScriptedChatModel(BaseChatModel):
    """Chat model that replays canned responses in order.

    An Exception in the script is raised instead of returned. Every call's
    input messages are recorded in ``calls``.
    """

    responses: list[Exception | AIMessage]
    calls: list[list[BaseMessage]] = Field(default_factory=list)
    position: int = 0
    # LangChain runs sync generation in executor threads
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools: Sequence[Any], **kwargs: Any) -> "ScriptedChatModel":
        return self

    def _next_response(self, messages: list[BaseMessage]) -> AIMessage:
        with self._lock:
            self.calls.append(list(messages))
            if self.position >= len(self.responses):
                raise AssertionError(f"Scripted model exhausted after {self.position} call(s)")
            response = self.responses[self.position]
            self.position += 1
        if isinstance(response, Exception):
            raise response
        return response

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        return ChatResult(generations=[ChatGeneration(message=self._next_response(messages))])


class StreamingScriptedChatModel(ScriptedChatModel):
    """Scripted chat model that streams text one character per chunk."""

    def _stream(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> Iterator[ChatGenerationChunk]:
        response = self._next_response(messages)
        text = response.content if isinstance(response.content, str) else ""
        for char in text:
            yield ChatGenerationChunk(message=AIMessageChunk(content=char))
        chunks = [
            {"id": call["id"], "name": call["name"], "args": json.dumps(call["args"])}
            for call in response.tool_calls
        ]
        # Raw argument text goes out as-is, as a provider would send it
        chunks += [
            {"id": call["id"], "name": call["name"], "args": call["args"]}
            for call in response.invalid_tool_calls
        ]
        if chunks:
            yield ChatGenerationChunk(
                message=AIMessageChunk(
                    content="",
                    tool_call_chunks=[{**chunk, "index": index} for index, chunk in enumerate(chunks)],
                )
            )


class ScriptedCompletionEngine:
    """CompletionEngine replaying canned Completions.

    ``fragments`` optionally maps a round index to the text fragments
    streamed during that round.
    """

    def __init__(
        self,
        completions: Sequence[Completion | Exception],
        fragments: dict[int, list[str]] | None = None,
    ) -> None:
        self.completions = list(completions)
        self.fragments = fragments or {}
        self.calls: list[list[Message]] = []

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        on_fragment: FragmentCallback | None = None,
    ) -> Completion:
        round_index = len(self.calls)
        self.calls.append(list(messages))
        if on_fragment is not None:
            for fragment in self.fragments.get(round_index, []):
                await on_fragment(fragment)
        completion = self.completions[round_index]
        if isinstance(completion, Exception):
            raise completion
        return completion


# =============================================================================
# Tools
# =============================================================================


@tool
def lookup(key: str) -> str:
    """Look up a value by key."""
    return "X"


@tool
def explode(reason: str) -> str:
    """A tool that always fails."""
    raise ValueError(f"boom: {reason}")


@pytest.fixture
def lookup_tool() -> BaseTool:
    return lookup


@pytest.fixture
def failing_tool() -> BaseTool:
    return explode


@pytest.fixture
def scripted_engine() -> type[ScriptedCompletionEngine]:
    return ScriptedCompletionEngine


@pytest.fixture
def scripted_chat_model() -> Callable[..., ScriptedChatModel]:
    """Factory for scripted chat models; ``streaming=True`` streams per character."""

    def _make(responses: list[AIMessage | Exception], streaming: bool = False) -> ScriptedChatModel:
        model_cls = StreamingScriptedChatModel if streaming else ScriptedChatModel
        return model_cls(responses=responses)

    return _make


# =============================================================================
# Agent fixtures
# =============================================================================


@pytest.fixture
def identity() -> AgentIdentity:
    return AgentIdentity(
        name="Test Agent",
        slug="test-agent",
        description="A test agent",
        squad="test-squad",
        origin="test-origin",
        audience=Audience.INTERNAL,
    )


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


STRATEGY_VARIANTS = ["native", "native-streaming", "manual", "manual-streaming"]


@pytest.fixture(params=STRATEGY_VARIANTS)
def strategy_variant(request) -> str:
    return request.param


@pytest.fixture
def make_agent(
    strategy_variant: str,
    identity: AgentIdentity,
    store: ConversationStore,
) -> Callable[..., tuple[AgentLoop, ScriptedChatModel]]:
    """Factory building an AgentLoop over a scripted chat model.

    Parametrized over every strategy variant, so a test using it runs once
    per strategy, streaming and non-streaming.
    """

    def _make(
        responses: list[AIMessage | Exception],
        tools: Sequence[BaseTool] = (),
        max_rounds: int = 5,
        system_prompt: str | None = None,
    ) -> tuple[AgentLoop, ScriptedChatModel]:
        streaming = strategy_variant.endswith("-streaming")
        model_cls = StreamingScriptedChatModel if streaming else ScriptedChatModel
        chat_model = model_cls(responses=responses)
        llm_client = LlmClient.from_chat_model(identity.slug, chat_model)
        registry = ToolRegistry(tools, agent_slug=identity.slug)
        config = AgentConfig(max_rounds=max_rounds)

        if strategy_variant.startswith("native"):
            strategy = NativeToolLoop(llm_client, registry, config)
        else:
            strategy = ManualToolLoop(LlmCompletionEngine(llm_client, streaming=streaming), registry, config)

        agent = AgentLoop(identity, strategy, store, system_prompt=system_prompt)
        return agent, chat_model

    return _make


async def collect_events(agent: AgentLoop, message: str, session_id: str = "default") -> list[StreamEvent]:
    return [event async for event in agent.run_stream(message, session_id)]


@pytest.fixture
def collect() -> Callable:
    """Drain ``agent.run_stream`` into a list of events."""
    return collect_events
