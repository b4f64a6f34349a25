"""Agent infrastructure module.

This module provides the core abstractions for running conversational turns:
- Agent and TurnStrategy protocol definitions
- Configuration dataclasses
- Native (LangGraph) and manual tool loop strategies
- Turn orchestration and event streaming
- Agent-specific metrics
"""

from streaming_agent_service.platform.agent.completion import (
    Completion,
    CompletionEngine,
    FinalAnswer,
    LlmCompletionEngine,
    ToolCallBatch,
)
from streaming_agent_service.platform.agent.config import (
    AgentConfig,
    AgentIdentity,
    LlmConfig,
    LoopStrategy,
)
from streaming_agent_service.platform.agent.langgraph import NativeToolLoop
from streaming_agent_service.platform.agent.loop import AgentLoop
from streaming_agent_service.platform.agent.manual import ManualToolLoop
from streaming_agent_service.platform.agent.messages import (
    ExecutionResult,
    Message,
    StreamEvent,
    ToolCallRequest,
    ToolResult,
)
from streaming_agent_service.platform.agent.protocol import Agent, TurnCancellation, TurnStrategy

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentIdentity",
    "AgentLoop",
    "Completion",
    "CompletionEngine",
    "ExecutionResult",
    "FinalAnswer",
    "LlmCompletionEngine",
    "LlmConfig",
    "LoopStrategy",
    "ManualToolLoop",
    "Message",
    "NativeToolLoop",
    "StreamEvent",
    "ToolCallBatch",
    "ToolCallRequest",
    "ToolResult",
    "TurnCancellation",
    "TurnStrategy",
]
