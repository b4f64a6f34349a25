"""Agent platform infrastructure module.

This module provides the core infrastructure for the streaming agent service:
- Agent protocol and turn orchestration
- Native (LangGraph) and manual tool loops
- Tool registry and conversation store
- FastAPI server configuration
- Observability utilities
"""

from streaming_agent_service.platform.agent import (
    Agent,
    AgentConfig,
    AgentIdentity,
    AgentLoop,
    ExecutionResult,
    LlmConfig,
    Message,
    StreamEvent,
)
from streaming_agent_service.platform.conversation import ConversationStore
from streaming_agent_service.platform.settings import Settings
from streaming_agent_service.platform.tools import ToolRegistry

__all__ = [
    # Core protocols
    "Agent",
    "AgentLoop",
    # Configuration
    "AgentConfig",
    "AgentIdentity",
    "LlmConfig",
    "Settings",
    # Runtime components
    "ConversationStore",
    "ToolRegistry",
    # Message types
    "ExecutionResult",
    "Message",
    "StreamEvent",
]
