"""Tools available to the assistant agent."""

from langchain_core.tools import BaseTool

from streaming_agent_service.agents.assistant.tools.calculator import create_calculator_tool
from streaming_agent_service.agents.assistant.tools.clock import create_current_time_tool
from streaming_agent_service.agents.assistant.tools.example import create_example_tool


def default_tools() -> list[BaseTool]:
    """The assistant's built-in tools, in registration order."""
    return [
        create_calculator_tool(),
        create_example_tool(),
        create_current_time_tool(),
    ]


__all__ = [
    "create_calculator_tool",
    "create_current_time_tool",
    "create_example_tool",
    "default_tools",
]
