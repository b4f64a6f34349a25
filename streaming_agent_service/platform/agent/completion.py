"""Single-shot completion engine used by the manual tool loop.

A completion is decoded at the provider boundary into exactly one of two
shapes: a ``FinalAnswer`` or a ``ToolCallBatch``. Tool-call arguments that
arrive as JSON strings are parsed here, so everything past this module
works with structured arguments.
"""

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeAlias

from langchain_core.messages import AIMessage, BaseMessageChunk
from langchain_core.messages.tool import tool_call

from streaming_agent_service.platform.agent.exceptions import CompletionError, ToolArgumentsError
from streaming_agent_service.platform.agent.llm_client import LlmClient
from streaming_agent_service.platform.agent.messages import Message, ToolCallRequest
from streaming_agent_service.platform.agent.parser import LangGraphMessageParser

logger = logging.getLogger(__name__)

FragmentCallback: TypeAlias = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class FinalAnswer:
    """The model answered without requesting tools."""

    text: str


@dataclass(frozen=True)
class ToolCallBatch:
    """The model requested one or more tool calls.

    Attributes:
        calls: Requested calls, in the order the model produced them
        text: Any text the model produced alongside the calls
    """

    calls: tuple[ToolCallRequest, ...]
    text: str = ""


Completion: TypeAlias = FinalAnswer | ToolCallBatch


class CompletionEngine(Protocol):
    """Produces one completion for a message sequence."""

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        on_fragment: FragmentCallback | None = None,
    ) -> Completion:
        """Request a single completion.

        Args:
            messages: Working sequence for this round
            tools: OpenAI-style schemas of the tools the model may call
            on_fragment: Called with each text fragment if the provider streams

        Returns:
            FinalAnswer or ToolCallBatch

        Raises:
            CompletionError: If the provider call fails
            ToolArgumentsError: If tool-call arguments cannot be decoded
        """
        ...


def coerce_arguments(raw: Any, tool_name: str | None = None) -> dict[str, Any]:
    """Decode tool-call arguments into a dict.

    Args:
        raw: Arguments as received (dict, JSON string or None)
        tool_name: Tool name for error reporting

    Returns:
        Structured arguments

    Raises:
        ToolArgumentsError: If the arguments are not a JSON object
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(f"arguments are not valid JSON ({e.msg})", tool_name=tool_name) from e
        if isinstance(decoded, dict):
            return decoded
        raise ToolArgumentsError(
            f"expected a JSON object, got {type(decoded).__name__}",
            tool_name=tool_name,
        )
    raise ToolArgumentsError(f"unsupported arguments type {type(raw).__name__}", tool_name=tool_name)


def recover_tool_calls(message: AIMessage) -> AIMessage:
    """Give calls LangChain could not parse one more attempt.

    Each entry of ``invalid_tool_calls`` is decoded with ``coerce_arguments``
    and moved to ``tool_calls``, after the calls that parsed. Both loop
    strategies pass every model response through here.

    Returns:
        ``message`` itself when nothing needed recovering, otherwise a copy

    Raises:
        ToolArgumentsError: If any call's arguments still cannot be decoded
    """
    if not message.invalid_tool_calls:
        return message
    recovered = []
    for invalid in message.invalid_tool_calls:
        name = invalid.get("name") or ""
        arguments = coerce_arguments(invalid.get("args"), tool_name=name)
        recovered.append(tool_call(name=name, args=arguments, id=invalid.get("id")))
    return message.model_copy(
        update={"tool_calls": [*message.tool_calls, *recovered], "invalid_tool_calls": []}
    )


def decode_ai_message(message: AIMessage, parser: LangGraphMessageParser | None = None) -> Completion:
    """Decode a model response into a Completion.

    Raises:
        ToolArgumentsError: If a call LangChain could not parse cannot be recovered
    """
    parser = parser or LangGraphMessageParser()
    message = recover_tool_calls(message)
    text = parser.extract_content(message)

    calls = parser.tool_call_requests(message)
    if calls:
        return ToolCallBatch(calls=tuple(calls), text=text)
    return FinalAnswer(text=text)


class LlmCompletionEngine:
    """CompletionEngine backed by an ``LlmClient``.

    With ``streaming`` enabled and a fragment callback supplied, the response
    is streamed and text fragments are forwarded as they arrive; otherwise
    the response is requested whole.
    """

    def __init__(
        self,
        llm_client: LlmClient,
        streaming: bool = False,
        message_parser: LangGraphMessageParser | None = None,
    ) -> None:
        self._llm = llm_client
        self._streaming = streaming
        self._parser = message_parser or LangGraphMessageParser()

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        on_fragment: FragmentCallback | None = None,
    ) -> Completion:
        llm = self._llm.bind_tools(tools) if tools else self._llm
        lc_messages = self._parser.to_langchain(messages)

        try:
            if self._streaming and on_fragment is not None:
                response = await self._stream(llm, lc_messages, on_fragment)
            else:
                response = await llm.ainvoke(lc_messages)
        except Exception as e:
            logger.warning("Completion request to %s failed: %s", self._llm.model_name, e)
            raise CompletionError(str(e) or type(e).__name__, model=self._llm.model_name) from e

        if not isinstance(response, AIMessage):
            raise CompletionError(
                f"unexpected response type {type(response).__name__}",
                model=self._llm.model_name,
            )
        return decode_ai_message(response, self._parser)

    async def _stream(self, llm: LlmClient, lc_messages: list, on_fragment: FragmentCallback) -> AIMessage:
        aggregate: BaseMessageChunk | None = None
        async for chunk in llm.astream(lc_messages):
            aggregate = chunk if aggregate is None else aggregate + chunk
            text = self._parser.text_fragment(chunk)
            if text is not None:
                await on_fragment(text)
        if aggregate is None:
            return AIMessage(content="")
        return aggregate  # type: ignore[return-value]
