"""Framework-agnostic message, tool and event types.

These types are used across both loop strategies and define the common
vocabulary for agent execution and the outbound event protocol.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Conversation roles. TOOL marks a tool-result message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class Message:
    """Framework-agnostic message representation.

    Attributes:
        role: Message role ("system", "user", "assistant", "tool")
        content: Message text content
        tool_calls: List of tool call dicts (for assistant messages)
        tool_call_id: ID of the tool call this message responds to (for tool messages)
        name: Tool name (for tool messages)
    """

    role: str
    content: str
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def assistant(
        cls,
        content: str,
        tool_calls: list["ToolCallRequest"] | None = None,
    ) -> "Message":
        """Create an assistant message, optionally recording requested tool calls."""
        return cls(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=[call.as_dict() for call in tool_calls] if tool_calls else None,
        )

    @property
    def requests_tools(self) -> bool:
        return self.role == Role.ASSISTANT and bool(self.tool_calls)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict, omitting unset tool fields."""
        data: dict[str, Any] = {"role": str(self.role), "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = self.tool_calls
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        if self.name:
            data["name"] = self.name
        return data


@dataclass(frozen=True)
class ToolCallRequest:
    """A structured tool invocation requested by the completion engine.

    Attributes:
        id: Provider-assigned call ID used to pair the result
        name: Name of the tool to invoke
        arguments: Decoded keyword arguments
    """

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "args": self.arguments}


@dataclass(frozen=True)
class ToolResult:
    """Outcome of executing one tool call.

    Attributes:
        tool_call_id: The originating tool call ID
        name: The tool name
        output: Text output of a successful execution
        error: Error description when execution failed
    """

    tool_call_id: str
    name: str
    output: str = ""
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def content(self) -> str:
        """Text fed back to the model: the output, or the error text on failure."""
        if self.error is None:
            return self.output
        return f"Error: {self.error}"

    def to_message(self) -> Message:
        return Message(
            role=Role.TOOL,
            content=self.content,
            tool_call_id=self.tool_call_id,
            name=self.name,
        )


class EventType(StrEnum):
    """Kinds of frames in the outbound event protocol."""

    TOKEN = "token"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class StreamEvent:
    """Streaming execution event.

    Attributes:
        event_type: Type of event ("token", "tool_call", "tool_result", "error", "done")
        data: Event-specific data payload
    """

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def token(cls, text: str) -> "StreamEvent":
        return cls(EventType.TOKEN, {"text": text})

    @classmethod
    def tool_call(cls, name: str, arguments: dict[str, Any]) -> "StreamEvent":
        return cls(EventType.TOOL_CALL, {"tool": name, "input": arguments})

    @classmethod
    def tool_result(cls, name: str, output: str) -> "StreamEvent":
        return cls(EventType.TOOL_RESULT, {"tool": name, "output": output})

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(EventType.ERROR, {"error": message})

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(EventType.DONE, {})

    @property
    def is_done(self) -> bool:
        return self.event_type == EventType.DONE


@dataclass(frozen=True)
class ExecutionResult:
    """Result of one completed turn.

    Attributes:
        response: Committed assistant answer ("" when the turn failed)
        messages: Session history after the turn
        rounds: Number of completion rounds performed
        session_id: Conversation session identifier
        error: Error message when the turn failed
        metadata: Additional strategy-specific metadata
    """

    response: str
    messages: list[Message]
    rounds: int
    session_id: str
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
