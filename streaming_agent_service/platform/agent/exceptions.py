"""Custom exception hierarchy for the agent loop.

Tool execution failures are deliberately absent: they are absorbed by the
tool registry and fed back to the model as ordinary tool results.
"""


class AgentError(Exception):
    """Base exception for all agent loop errors."""


class CompletionError(AgentError):
    """Raised when the completion provider is unreachable or returns garbage."""

    def __init__(self, message: str, model: str | None = None):
        self.model = model
        model_info = f" [{model}]" if model else ""
        super().__init__(f"Completion failed{model_info}: {message}")


class ToolArgumentsError(AgentError):
    """Raised when tool call arguments cannot be coerced to the tool's schema."""

    def __init__(self, message: str, tool_name: str | None = None):
        self.tool_name = tool_name
        tool_info = f" for '{tool_name}'" if tool_name else ""
        super().__init__(f"Invalid tool arguments{tool_info}: {message}")


class SessionBusyError(AgentError):
    """Raised when a session already has a turn in flight."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' already has a turn in progress")


class SessionNotFoundError(AgentError):
    """Raised when a requested session does not exist."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
