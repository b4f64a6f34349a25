"""Conversation history storage."""

from streaming_agent_service.platform.conversation.store import (
    ConversationStore,
    Session,
    SessionLease,
    SessionSummary,
)

__all__ = [
    "ConversationStore",
    "Session",
    "SessionLease",
    "SessionSummary",
]
