"""Conversion between framework-agnostic messages and LangChain messages."""

import logging
from collections.abc import Sequence
from typing import Any

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from streaming_agent_service.platform.agent.messages import Message, Role, ToolCallRequest

logger = logging.getLogger(__name__)


class LangGraphMessageParser:
    """Parser that converts between LangChain messages and framework-agnostic types.

    Session history is stored as ``Message`` objects; every completion round
    converts it to LangChain messages and every response back again.
    """

    def to_langchain(self, messages: Sequence[Message]) -> list[BaseMessage]:
        """Convert framework-agnostic Messages to LangChain messages.

        Args:
            messages: Messages in conversation order

        Returns:
            LangChain messages in the same order
        """
        return [self._to_langchain_message(msg) for msg in messages]

    @staticmethod
    def _to_langchain_message(msg: Message) -> BaseMessage:
        match msg.role:
            case Role.SYSTEM:
                return SystemMessage(content=msg.content)
            case Role.USER:
                return HumanMessage(content=msg.content)
            case Role.ASSISTANT:
                return AIMessage(
                    content=msg.content,
                    tool_calls=[
                        {"id": tc["id"], "name": tc["name"], "args": tc.get("args", {})}
                        for tc in msg.tool_calls or []
                    ],
                )
            case Role.TOOL:
                return ToolMessage(
                    content=msg.content,
                    tool_call_id=msg.tool_call_id or "",
                    name=msg.name,
                )
        raise ValueError(f"Unknown message role: {msg.role!r}")

    def convert_messages(self, messages: Sequence[BaseMessage]) -> list[Message]:
        """Convert LangChain messages to framework-agnostic Messages.

        Args:
            messages: List of LangChain BaseMessage instances

        Returns:
            List of framework-agnostic Message instances
        """
        return [self.from_langchain(msg) for msg in messages]

    def from_langchain(self, msg: BaseMessage) -> Message:
        role = self._get_role(msg)
        content = self.extract_content(msg)

        tool_calls = None
        if isinstance(msg, AIMessage) and msg.tool_calls:
            tool_calls = [call.as_dict() for call in self.tool_call_requests(msg)]

        return Message(
            role=role,
            content=content,
            tool_calls=tool_calls,
            tool_call_id=getattr(msg, "tool_call_id", None),
            name=msg.name if isinstance(msg, ToolMessage) else None,
        )

    @staticmethod
    def tool_call_requests(msg: BaseMessage) -> list[ToolCallRequest]:
        """Structured tool calls carried by an AI message.

        Args:
            msg: LangChain message

        Returns:
            Tool call requests in the order the model produced them
        """
        if not isinstance(msg, AIMessage):
            return []
        return [
            ToolCallRequest(
                id=tc.get("id") or "",
                name=tc.get("name", ""),
                arguments=dict(tc.get("args") or {}),
            )
            for tc in msg.tool_calls
        ]

    @staticmethod
    def _get_role(msg: BaseMessage) -> str:
        """Get the role string for a message.

        Args:
            msg: LangChain message

        Returns:
            Role string ("system", "user", "assistant", "tool")
        """
        if isinstance(msg, SystemMessage):
            return Role.SYSTEM
        elif isinstance(msg, HumanMessage):
            return Role.USER
        elif isinstance(msg, AIMessage):
            return Role.ASSISTANT
        else:
            return Role.TOOL

    @staticmethod
    def extract_content(msg: BaseMessage) -> str:
        """Extract string content from a message.

        List content (content blocks) is flattened to its text parts; non-text
        blocks such as tool_use are skipped.

        Args:
            msg: LangChain message

        Returns:
            Message content as string
        """
        content: Any = msg.content
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            text_parts = []
            for part in content:
                if isinstance(part, str):
                    text_parts.append(part)
                elif isinstance(part, dict) and part.get("type", "text") == "text":
                    text_parts.append(part.get("text", ""))
            return "".join(text_parts)
        return str(content)

    def text_fragment(self, chunk: BaseMessage) -> str | None:
        """Text carried by a streamed chunk.

        Empty fragments are returned as "" and still count as tokens; chunks
        that only carry tool-call deltas return None.
        """
        text = self.extract_content(chunk)
        if not text and getattr(chunk, "tool_call_chunks", None):
            return None
        return text
