"""Conversational turn orchestration.

``AgentLoop`` owns the turn lifecycle around a ``TurnStrategy``: it commits
the user message, builds the working sequence, runs the strategy, commits
the outcome and guarantees that every turn ends with exactly one done event.
"""

import logging
from collections.abc import AsyncIterator

from opentelemetry import trace

from streaming_agent_service.platform.agent.config import AgentIdentity
from streaming_agent_service.platform.agent.exceptions import AgentError
from streaming_agent_service.platform.agent.messages import ExecutionResult, Message, StreamEvent
from streaming_agent_service.platform.agent.metrics import (
    AgentMetricsLabels,
    collect_agent_metrics,
    record_turn,
)
from streaming_agent_service.platform.agent.protocol import (
    Agent,
    EventEmitter,
    TurnCancellation,
    TurnOutcome,
    TurnStrategy,
)
from streaming_agent_service.platform.agent.sink import EventStream
from streaming_agent_service.platform.agent.streaming import synthesize_tokens
from streaming_agent_service.platform.constants import FALLBACK_RESPONSE
from streaming_agent_service.platform.conversation.store import ConversationStore, SessionLease
from streaming_agent_service.platform.observability.logging import bind_turn

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def _discard(event: StreamEvent) -> None:
    return None


class AgentLoop(Agent):
    """A configured, runnable conversational agent.

    Turn lifecycle:
        1. The user message is appended to the session first, so it is
           committed even if the turn fails.
        2. The strategy runs over system prompt + history + user message.
        3. On success the strategy's tool-call records and results are
           committed, followed by the final answer (or the fallback text).
        4. On failure an error event is emitted and nothing else is committed.
        5. The session is released, then done is emitted.

    A cancelled turn (client went away) commits nothing beyond the user
    message and emits no further events.
    """

    def __init__(
        self,
        identity: AgentIdentity,
        strategy: TurnStrategy,
        store: ConversationStore,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize the agent.

        Args:
            identity: Agent identity information
            strategy: Tool loop strategy driving the rounds
            store: Conversation store holding session histories
            system_prompt: Optional system prompt prepended to every turn
        """
        self._identity = identity
        self._strategy = strategy
        self._store = store
        self._system_prompt = system_prompt

    @property
    def identity(self) -> AgentIdentity:
        return self._identity

    @property
    def name(self) -> str:
        return self._identity.name

    @property
    def description(self) -> str:
        return self._identity.description

    @property
    def slug(self) -> str:
        return self._identity.slug

    @property
    def strategy(self) -> TurnStrategy:
        return self._strategy

    @property
    def store(self) -> ConversationStore:
        return self._store

    def _working_sequence(self, history: list[Message], user_message: Message) -> list[Message]:
        prefix = [Message.system(self._system_prompt)] if self._system_prompt else []
        return [*prefix, *history, user_message]

    async def run_turn(
        self,
        lease: SessionLease,
        message: str,
        emit: EventEmitter,
        cancellation: TurnCancellation | None = None,
    ) -> ExecutionResult:
        """Run one turn on a leased session.

        The lease is released when the turn ends, before done is emitted.
        Failures are reported as an error event, never raised.

        Args:
            lease: Session lease; ownership passes to this call
            message: User's input message
            emit: Sink for the turn's events
            cancellation: Optional flag set when the consumer goes away

        Returns:
            The turn's execution result
        """
        cancellation = cancellation or TurnCancellation()
        labels = AgentMetricsLabels(self.slug)
        unbind = bind_turn(self.slug, lease.session_id)

        async def forward(event: StreamEvent) -> None:
            if not cancellation.cancelled:
                await emit(event)

        answer = ""
        error: str | None = None
        progress = TurnOutcome()

        try:
            async with lease:
                user_message = Message.user(message)
                working = self._working_sequence(lease.history(), user_message)
                lease.append(user_message)

                try:
                    with tracer.start_as_current_span(self.name):
                        async with collect_agent_metrics(labels):
                            outcome = await self._strategy.run(
                                working, forward, cancellation, outcome=progress
                            )
                except AgentError as e:
                    logger.warning("Turn failed: %s", e)
                    error = str(e)
                    await forward(StreamEvent.error(error))
                    record_turn(labels, "error", progress.rounds)
                except Exception as e:
                    logger.exception("Unexpected failure while running turn")
                    error = str(e) or type(e).__name__
                    await forward(StreamEvent.error(error))
                    record_turn(labels, "error", progress.rounds)
                else:
                    progress = outcome
                    if cancellation.cancelled:
                        logger.info("Turn cancelled; discarding outcome")
                        record_turn(labels, "cancelled", outcome.rounds)
                    else:
                        answer = outcome.answer
                        if answer:
                            status = "exhausted" if outcome.exhausted else "answered"
                            record_turn(labels, status, outcome.rounds)
                        else:
                            answer = FALLBACK_RESPONSE
                            for token in synthesize_tokens(answer):
                                await forward(StreamEvent.token(token))
                            record_turn(labels, "fallback", outcome.rounds)
                        lease.extend([*outcome.new_messages, Message.assistant(answer)])

                history = lease.history()
        finally:
            await forward(StreamEvent.done())
            unbind()

        return ExecutionResult(
            response=answer,
            messages=history,
            rounds=progress.rounds,
            session_id=lease.session_id,
            error=error,
            metadata={"strategy": self._strategy.name, "exhausted": progress.exhausted},
        )

    def stream_turn(
        self,
        lease: SessionLease,
        message: str,
        cancellation: TurnCancellation | None = None,
    ) -> EventStream:
        """Start a turn in the background and return its event stream.

        Args:
            lease: Session lease; ownership passes to the turn
            message: User's input message
            cancellation: Optional flag; set automatically if the stream's
                consumer stops early

        Returns:
            Event stream ending with done
        """
        stream = EventStream(cancellation)
        stream.start(lambda emit: self.run_turn(lease, message, emit, stream.cancellation))
        return stream

    async def run(self, message: str, session_id: str) -> ExecutionResult:
        """Run one turn and return the execution result.

        Raises:
            SessionBusyError: If a turn for the session is already running
        """
        lease = await self._store.acquire(session_id)
        return await self.run_turn(lease, message, _discard)

    async def run_stream(
        self,
        message: str,
        session_id: str,
        cancellation: TurnCancellation | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run one turn with streaming output.

        Raises:
            SessionBusyError: If a turn for the session is already running
        """
        lease = await self._store.acquire(session_id)
        stream = self.stream_turn(lease, message, cancellation)
        async for event in stream.events():
            yield event
