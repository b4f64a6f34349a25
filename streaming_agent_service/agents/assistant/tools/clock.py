"""Current time tool."""

from collections.abc import Callable
from datetime import UTC, datetime

from langchain_core.tools import BaseTool, tool


def create_current_time_tool(now: Callable[[], datetime] | None = None) -> BaseTool:
    """Create the current_time tool.

    Args:
        now: Optional clock returning an aware datetime; defaults to UTC now

    Returns:
        StructuredTool returning the current UTC time
    """
    clock = now or (lambda: datetime.now(UTC))

    @tool
    def current_time() -> str:
        """Returns the current date and time in UTC as an ISO 8601 timestamp."""
        return clock().astimezone(UTC).isoformat()

    return current_time
