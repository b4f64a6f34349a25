"""Agent and loop-strategy protocol definitions.

This module defines the framework-agnostic Agent protocol and the
``TurnStrategy`` seam behind which the native and manual tool loops sit,
so both are interchangeable at construction time.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, TypeAlias

from streaming_agent_service.platform.agent.config import AgentIdentity
from streaming_agent_service.platform.agent.messages import ExecutionResult, Message, StreamEvent

EventEmitter: TypeAlias = Callable[[StreamEvent], Awaitable[None]]


class TurnCancellation:
    """Cooperative cancellation flag for one turn.

    Set when the client disconnects. The loop checks it between steps; work
    already in flight finishes and its result is discarded.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class TurnOutcome:
    """What a strategy produced for one turn.

    Attributes:
        answer: Final answer text ("" if none was produced)
        new_messages: Assistant tool-call records and tool results, in order
        rounds: Completion rounds that returned a response
        exhausted: True when the round budget ended the turn
    """

    answer: str = ""
    new_messages: list[Message] = field(default_factory=list)
    rounds: int = 0
    exhausted: bool = False


class TurnStrategy(Protocol):
    """Drives the completion/tool rounds of one turn."""

    @property
    def name(self) -> str:
        """Short strategy name used in logs and metadata."""
        ...

    async def run(
        self,
        messages: list[Message],
        emit: EventEmitter,
        cancellation: TurnCancellation,
        outcome: TurnOutcome | None = None,
    ) -> TurnOutcome:
        """Run rounds until a final answer or the round budget is reached.

        Args:
            messages: Working sequence (system prompt, history, new user message)
            emit: Sink for token, tool_call and tool_result events
            cancellation: Flag observed between rounds and tool executions
            outcome: Filled in as rounds complete; pass one in to read the
                progress made before a failure

        Returns:
            The turn outcome

        Raises:
            AgentError: On unrecoverable completion or argument failures
        """
        ...


class Agent(Protocol):
    """Protocol for an agent."""

    @property
    def identity(self) -> AgentIdentity:
        """The identity of the agent."""
        ...

    @property
    def name(self) -> str:
        """The name of the agent."""
        ...

    @property
    def slug(self) -> str:
        """The slug of the agent."""
        ...

    async def run(self, message: str, session_id: str) -> ExecutionResult:
        """Execute one turn and return the execution result.

        Args:
            message: User's input message
            session_id: Session whose history the turn continues
        """
        ...

    def run_stream(
        self,
        message: str,
        session_id: str,
        cancellation: TurnCancellation | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Execute one turn and return the stream of events.

        Args:
            message: User's input message
            session_id: Session whose history the turn continues
            cancellation: Optional flag set when the consumer goes away
        Yields:
            StreamEvent objects, ending with exactly one done event
        """
        ...
