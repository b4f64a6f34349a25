"""In-process conversation store.

Sessions are ordered, append-only message logs keyed by session ID. Each
session owns an asyncio lock that serializes turns: a turn acquires a
``SessionLease`` for its whole duration and appends only through it, so two
turns for one session never interleave their messages. Turns for distinct
sessions proceed concurrently.

A second turn for a session that is already busy is rejected with
``SessionBusyError`` rather than queued.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from streaming_agent_service.platform.agent.exceptions import (
    SessionBusyError,
    SessionNotFoundError,
)
from streaming_agent_service.platform.agent.messages import Message

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A conversation session.

    Attributes:
        session_id: Unique session identifier
        messages: Ordered message history
        created_at: Creation timestamp
        updated_at: Timestamp of the last append
    """

    session_id: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    message_count: int
    created_at: datetime
    updated_at: datetime


class SessionLease:
    """Exclusive right to append to one session for the duration of a turn.

    Use as an async context manager; the lock is released on every exit path.
    Releasing twice is a no-op.
    """

    def __init__(self, session: Session, lock: asyncio.Lock) -> None:
        self._session = session
        self._lock = lock
        self._released = False

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def active(self) -> bool:
        return not self._released

    def history(self) -> list[Message]:
        """Snapshot of the session's messages."""
        return list(self._session.messages)

    def append(self, message: Message) -> None:
        self.extend([message])

    def extend(self, messages: Iterable[Message]) -> None:
        if self._released:
            raise RuntimeError(f"Lease for session '{self.session_id}' was already released")
        self._session.messages.extend(messages)
        self._session.updated_at = datetime.now(UTC)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._lock.release()
        logger.debug("Released session %s", self.session_id)

    async def __aenter__(self) -> "SessionLease":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


class ConversationStore:
    """Per-session message logs with turn-scoped serialization."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def acquire(self, session_id: str) -> SessionLease:
        """Acquire the session for one turn, creating it on first use.

        Args:
            session_id: Session to lease

        Returns:
            A lease that must be released when the turn ends

        Raises:
            SessionBusyError: If another turn currently holds the session
        """
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        # acquire() on an unlocked lock completes without suspending, so the
        # check and the acquisition cannot be split by another task.
        if lock.locked():
            raise SessionBusyError(session_id)
        await lock.acquire()

        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            logger.info("Created session %s", session_id)
        return SessionLease(session, lock)

    def is_busy(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    @property
    def active_turns(self) -> int:
        """Number of sessions with a turn in flight."""
        return sum(1 for lock in self._locks.values() if lock.locked())

    def get_history(self, session_id: str) -> list[Message]:
        """Return a snapshot of a session's history.

        Raises:
            SessionNotFoundError: If the session was never created
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return list(session.messages)

    def list_sessions(self) -> list[SessionSummary]:
        return [
            SessionSummary(
                session_id=session.session_id,
                message_count=len(session.messages),
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
            for session in sorted(
                self._sessions.values(), key=lambda s: s.updated_at, reverse=True
            )
        ]

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
