"""Manual tool loop.

Used when the completion engine cannot drive tools itself: every round is a
single completion request, and the loop executes requested tools and feeds
their results back until the model answers or the round budget runs out.
"""

import logging

from streaming_agent_service.platform.agent.completion import (
    CompletionEngine,
    FinalAnswer,
    ToolCallBatch,
)
from streaming_agent_service.platform.agent.config import AgentConfig, LoopStrategy
from streaming_agent_service.platform.agent.messages import Message, StreamEvent
from streaming_agent_service.platform.agent.protocol import (
    EventEmitter,
    TurnCancellation,
    TurnOutcome,
)
from streaming_agent_service.platform.agent.streaming import RoundText, synthesize_tokens
from streaming_agent_service.platform.tools.executor import ToolExecutor
from streaming_agent_service.platform.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ManualToolLoop:
    """Tool loop driven round by round over a single-shot completion engine.

    A round that requests tools is recorded as an assistant message carrying
    the calls, followed by one tool message per result, so the model sees
    every result paired with its call in the next round. The final round
    never executes tools; if the model still asks for them the turn ends
    with the latest text it produced.
    """

    def __init__(self, engine: CompletionEngine, registry: ToolRegistry, config: AgentConfig) -> None:
        self._engine = engine
        self._registry = registry
        self._executor = ToolExecutor(registry)
        self._config = config

    @property
    def name(self) -> str:
        return LoopStrategy.MANUAL

    async def run(
        self,
        messages: list[Message],
        emit: EventEmitter,
        cancellation: TurnCancellation,
        outcome: TurnOutcome | None = None,
    ) -> TurnOutcome:
        working = list(messages)
        tool_schemas = self._registry.schemas()
        if outcome is None:
            outcome = TurnOutcome()
        latest_text = ""
        latest_unstreamed = ""

        for round_number in range(1, self._config.max_rounds + 1):
            round_text = RoundText()

            async def on_fragment(fragment: str) -> None:
                round_text.add(fragment)
                await emit(StreamEvent.token(fragment))

            completion = await self._engine.complete(working, tool_schemas, on_fragment)
            outcome.rounds = round_number
            if cancellation.cancelled:
                logger.info("Turn cancelled during round %d", round_number)
                return outcome

            match completion:
                case FinalAnswer(text=text):
                    for token in synthesize_tokens(round_text.remainder(text)):
                        await emit(StreamEvent.token(token))
                    outcome.answer = text
                    return outcome

                case ToolCallBatch(calls=calls, text=text):
                    if text:
                        latest_text, latest_unstreamed = text, round_text.remainder(text)
                    if round_number == self._config.max_rounds:
                        break

                    record = Message.assistant(text, tool_calls=list(calls))
                    working.append(record)
                    outcome.new_messages.append(record)

                    results = await self._executor.execute_all(calls, emit, cancellation)
                    for result in results:
                        message = result.to_message()
                        working.append(message)
                        outcome.new_messages.append(message)
                    if cancellation.cancelled:
                        return outcome

        logger.warning("Round budget of %d exhausted", self._config.max_rounds)
        for token in synthesize_tokens(latest_unstreamed):
            await emit(StreamEvent.token(token))
        outcome.exhausted = True
        outcome.answer = latest_text
        return outcome
