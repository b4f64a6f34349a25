"""Tool registration and execution."""

from streaming_agent_service.platform.tools.executor import ToolExecutor
from streaming_agent_service.platform.tools.registry import ToolRegistry

__all__ = ["ToolExecutor", "ToolRegistry"]
