"""Assistant chat HTTP endpoints.

This module provides the streaming chat endpoint (Server-Sent Events), a
synchronous variant, and session history inspection.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from streaming_agent_service.agents.assistant.agent import AssistantAgentBuilder
from streaming_agent_service.platform.agent.exceptions import SessionBusyError, SessionNotFoundError
from streaming_agent_service.platform.agent.loop import AgentLoop
from streaming_agent_service.platform.agent.sink import format_sse
from streaming_agent_service.platform.observability.metrics import track_stream
from streaming_agent_service.platform.server.dependencies.agents import get_agent
from streaming_agent_service.platform.server.dependencies.settings import get_settings
from streaming_agent_service.platform.settings import Settings

logger = logging.getLogger(__name__)

chat_router = APIRouter(
    prefix="/chat",
    tags=["agents"],
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
    "Access-Control-Allow-Origin": "*",  # CORS support
}


class ChatRequest(BaseModel):
    """Request payload for chat endpoints.

    Attributes:
        message: The user's message (1-10000 characters)
        session_id: Conversation session to continue; the configured default
            session is used when omitted. Also accepted as ``sessionId``.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(
        min_length=1,
        max_length=10000,
        description="The user's message for the agent",
    )
    session_id: str | None = Field(
        default=None,
        alias="sessionId",
        min_length=1,
        max_length=200,
        description="Conversation session identifier",
    )


class SessionListItem(BaseModel):
    """Summary item for session listing."""

    session_id: str
    message_count: int
    created_at: datetime
    updated_at: datetime
    busy: bool


class SessionListResponse(BaseModel):
    items: list[SessionListItem]
    total: int


class SessionResponse(BaseModel):
    """Full session history."""

    session_id: str
    messages: list[dict[str, Any]]
    busy: bool


def _session_id(payload: ChatRequest, settings: Settings) -> str:
    return payload.session_id or settings.agent.default_session_id


@chat_router.post("")
async def chat_handler(
    payload: ChatRequest,
    agent: AgentLoop = Depends(get_agent(AssistantAgentBuilder)),
    settings: Settings = Depends(get_settings),
):
    """Run one chat turn with Server-Sent Events streaming.

    Frames are ``event: <kind>`` / ``data: <json>`` pairs: token, tool_call,
    tool_result and error, always followed by exactly one done frame.

    Every data payload is a JSON object, including token (``{"text": ...}``)
    and tool_result (``{"tool": ..., "output": ...}``). Clients expecting bare
    text must read the ``text`` or ``output`` field; wrapping keeps newlines
    in tokens and tool output from breaking SSE framing.

    Args:
        payload: Request containing the message and optional session_id
        agent: Cached agent instance (injected)
        settings: Application settings (injected)

    Returns:
        StreamingResponse with SSE frames

    Raises:
        HTTPException: 409 if a turn for the session is already running
    """
    session_id = _session_id(payload, settings)
    try:
        lease = await agent.store.acquire(session_id)
    except SessionBusyError as e:
        logger.info("Rejected turn for busy session %s", session_id)
        raise HTTPException(status_code=409, detail=str(e)) from e

    stream = agent.stream_turn(lease, payload.message)

    async def stream_generator():
        async for event in stream.events():
            yield format_sse(event)

    return StreamingResponse(
        track_stream(chat_router.prefix, stream_generator()),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@chat_router.post("/invoke")
async def invoke_handler(
    payload: ChatRequest,
    agent: AgentLoop = Depends(get_agent(AssistantAgentBuilder)),
    settings: Settings = Depends(get_settings),
):
    """Run one chat turn synchronously and return the complete result.

    Raises:
        HTTPException: 409 if a turn for the session is already running
    """
    try:
        return await agent.run(payload.message, session_id=_session_id(payload, settings))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@chat_router.get("/sessions")
async def list_sessions(
    agent: AgentLoop = Depends(get_agent(AssistantAgentBuilder)),
) -> SessionListResponse:
    """List known sessions, most recently updated first."""
    summaries = agent.store.list_sessions()
    return SessionListResponse(
        items=[
            SessionListItem(
                **asdict(summary),
                busy=agent.store.is_busy(summary.session_id),
            )
            for summary in summaries
        ],
        total=len(summaries),
    )


@chat_router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    agent: AgentLoop = Depends(get_agent(AssistantAgentBuilder)),
) -> SessionResponse:
    """Retrieve the ordered history of a session.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    try:
        history = agent.store.get_history(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    return SessionResponse(
        session_id=session_id,
        messages=[message.as_dict() for message in history],
        busy=agent.store.is_busy(session_id),
    )
