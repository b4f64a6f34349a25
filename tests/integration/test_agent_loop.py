"""Behavioral tests for AgentLoop, run against every loop strategy.

Each test requests ``make_agent``, which is parametrized over the native
and manual strategies in streaming and non-streaming flavours; the same
observable behaviour is expected from all of them.
"""

import asyncio

import pytest
from langchain_core.messages import AIMessage
from langchain_core.messages.tool import invalid_tool_call

from streaming_agent_service.platform.agent.exceptions import SessionBusyError
from streaming_agent_service.platform.agent.messages import EventType, Role, StreamEvent
from streaming_agent_service.platform.constants import FALLBACK_RESPONSE


def tool_call_response(name: str, args: dict, call_id: str = "call_1", text: str = "") -> AIMessage:
    return AIMessage(content=text, tool_calls=[{"id": call_id, "name": name, "args": args}])


def kinds(events: list[StreamEvent]) -> list[str]:
    """Event kinds, with consecutive tokens collapsed and empty tokens ignored."""
    result: list[str] = []
    for event in events:
        if event.event_type == EventType.TOKEN:
            if not event.data["text"]:
                continue
            if result and result[-1] == EventType.TOKEN:
                continue
        result.append(event.event_type)
    return result


def token_text(events: list[StreamEvent]) -> str:
    return "".join(e.data["text"] for e in events if e.event_type == EventType.TOKEN)


class TestFinalAnswer:
    """A turn answered without tools."""

    async def test_answer_is_streamed_then_done(self, make_agent, collect):
        agent, _ = make_agent([AIMessage(content="4")])

        events = await collect(agent, "2 + 2", "s1")

        assert kinds(events) == ["token", "done"]
        assert token_text(events) == "4"

    async def test_history_holds_user_and_answer(self, make_agent, collect, store):
        agent, _ = make_agent([AIMessage(content="4")])

        await collect(agent, "2 + 2", "s1")

        history = store.get_history("s1")
        assert [(m.role, m.content) for m in history] == [
            (Role.USER, "2 + 2"),
            (Role.ASSISTANT, "4"),
        ]

    async def test_system_prompt_is_sent_but_not_stored(self, make_agent, collect, store):
        agent, model = make_agent([AIMessage(content="Hi")], system_prompt="Be brief.")

        await collect(agent, "Hello", "s1")

        sent = model.calls[0]
        assert sent[0].type == "system"
        assert sent[0].content == "Be brief."
        assert sent[-1].content == "Hello"
        assert all(m.role != Role.SYSTEM for m in store.get_history("s1"))

    async def test_run_returns_execution_result(self, make_agent):
        agent, _ = make_agent([AIMessage(content="4")])

        result = await agent.run("2 + 2", "s1")

        assert result.response == "4"
        assert result.error is None
        assert result.rounds == 1
        assert result.session_id == "s1"
        assert len(result.messages) == 2
        assert result.metadata["exhausted"] is False


class TestToolRound:
    """A turn with one tool round before the answer."""

    async def test_event_order(self, make_agent, collect, lookup_tool):
        agent, _ = make_agent(
            [
                tool_call_response("lookup", {"key": "a"}),
                AIMessage(content="Answer based on X"),
            ],
            tools=[lookup_tool],
        )

        events = await collect(agent, "What is a?", "s1")

        assert kinds(events) == ["tool_call", "tool_result", "token", "done"]
        tool_call = next(e for e in events if e.event_type == EventType.TOOL_CALL)
        tool_result = next(e for e in events if e.event_type == EventType.TOOL_RESULT)
        assert tool_call.data == {"tool": "lookup", "input": {"key": "a"}}
        assert tool_result.data == {"tool": "lookup", "output": "X"}
        assert token_text(events) == "Answer based on X"

    async def test_history_records_call_and_result(self, make_agent, collect, store, lookup_tool):
        agent, _ = make_agent(
            [
                tool_call_response("lookup", {"key": "a"}, call_id="call_42"),
                AIMessage(content="Answer based on X"),
            ],
            tools=[lookup_tool],
        )

        await collect(agent, "What is a?", "s1")

        history = store.get_history("s1")
        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
        assert history[1].tool_calls == [{"id": "call_42", "name": "lookup", "args": {"key": "a"}}]
        assert history[2].tool_call_id == "call_42"
        assert history[2].content == "X"
        assert history[3].content == "Answer based on X"

    async def test_tool_result_is_sent_back_to_model(self, make_agent, collect, lookup_tool):
        agent, model = make_agent(
            [
                tool_call_response("lookup", {"key": "a"}),
                AIMessage(content="Answer based on X"),
            ],
            tools=[lookup_tool],
        )

        await collect(agent, "What is a?", "s1")

        assert len(model.calls) == 2
        second_round = model.calls[1]
        assert second_round[-2].type == "ai"
        assert second_round[-1].type == "tool"
        assert second_round[-1].content == "X"

    async def test_failing_tool_is_fed_back_and_recovered(self, make_agent, collect, failing_tool):
        agent, model = make_agent(
            [
                tool_call_response("explode", {"reason": "test"}),
                AIMessage(content="The tool failed"),
            ],
            tools=[failing_tool],
        )

        events = await collect(agent, "Try it", "s1")

        assert kinds(events) == ["tool_call", "tool_result", "token", "done"]
        tool_result = next(e for e in events if e.event_type == EventType.TOOL_RESULT)
        assert tool_result.data["output"] == "Error: boom: test"
        assert "boom: test" in model.calls[1][-1].content

    async def test_unknown_tool_is_fed_back(self, make_agent, collect, lookup_tool):
        agent, _ = make_agent(
            [
                tool_call_response("missing", {}),
                AIMessage(content="Sorry"),
            ],
            tools=[lookup_tool],
        )

        events = await collect(agent, "Use a tool", "s1")

        tool_result = next(e for e in events if e.event_type == EventType.TOOL_RESULT)
        assert "Unknown tool 'missing'" in tool_result.data["output"]
        assert token_text(events) == "Sorry"

    async def test_every_tool_call_is_followed_by_its_result(self, make_agent, collect, lookup_tool):
        agent, _ = make_agent(
            [
                AIMessage(
                    content="",
                    tool_calls=[
                        {"id": "c1", "name": "lookup", "args": {"key": "a"}},
                        {"id": "c2", "name": "lookup", "args": {"key": "b"}},
                    ],
                ),
                AIMessage(content="Both are X"),
            ],
            tools=[lookup_tool],
        )

        events = await collect(agent, "a and b?", "s1")

        tool_events = [e for e in events if e.event_type in (EventType.TOOL_CALL, EventType.TOOL_RESULT)]
        assert [e.event_type for e in tool_events] == ["tool_call", "tool_result", "tool_call", "tool_result"]
        assert [e.data["input"]["key"] for e in tool_events if e.event_type == EventType.TOOL_CALL] == ["a", "b"]


class TestFailures:
    async def test_completion_failure_emits_error_then_done(self, make_agent, collect, store):
        agent, _ = make_agent([RuntimeError("provider down")])

        events = await collect(agent, "Hello", "s1")

        assert [e.event_type for e in events] == ["error", "done"]
        assert "provider down" in events[0].data["error"]
        assert [m.role for m in store.get_history("s1")] == [Role.USER]

    async def test_invalid_tool_arguments_end_the_turn(self, make_agent, collect, store, lookup_tool):
        agent, model = make_agent(
            [
                tool_call_response("lookup", {"wrong": "a"}),
                AIMessage(content="unreachable"),
            ],
            tools=[lookup_tool],
        )

        events = await collect(agent, "What is a?", "s1")

        assert kinds(events)[-2:] == ["error", "done"]
        assert "tool_result" not in kinds(events)
        assert "lookup" in events[-2].data["error"]
        assert len(model.calls) == 1
        assert [m.role for m in store.get_history("s1")] == [Role.USER]

    async def test_unparseable_tool_arguments_end_the_turn(self, make_agent, collect, store, lookup_tool):
        agent, model = make_agent(
            [
                AIMessage(
                    content="",
                    invalid_tool_calls=[invalid_tool_call(name="lookup", args="not json", id="c1", error="bad")],
                ),
                AIMessage(content="unreachable"),
            ],
            tools=[lookup_tool],
        )

        events = await collect(agent, "What is a?", "s1")

        assert kinds(events) == ["error", "done"]
        assert "lookup" in events[0].data["error"]
        assert len(model.calls) == 1
        assert [m.role for m in store.get_history("s1")] == [Role.USER]

    async def test_recoverable_tool_arguments_are_executed(self, make_agent, collect, store, lookup_tool):
        agent, _ = make_agent(
            [
                AIMessage(
                    content="",
                    invalid_tool_calls=[invalid_tool_call(name="lookup", args='{"key": "a"}', id="c1", error="bad")],
                ),
                AIMessage(content="done"),
            ],
            tools=[lookup_tool],
        )

        events = await collect(agent, "What is a?", "s1")

        assert kinds(events) == ["tool_call", "tool_result", "token", "done"]
        tool_call = next(e for e in events if e.event_type == EventType.TOOL_CALL)
        assert tool_call.data == {"tool": "lookup", "input": {"key": "a"}}
        history = store.get_history("s1")
        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
        assert history[2].tool_call_id == "c1"

    async def test_failed_turn_result_carries_error(self, make_agent):
        agent, _ = make_agent([RuntimeError("provider down")])

        result = await agent.run("Hello", "s1")

        assert result.response == ""
        assert "provider down" in result.error

    async def test_failed_turn_reports_completed_rounds(self, make_agent, lookup_tool):
        agent, _ = make_agent(
            [tool_call_response("lookup", {"key": "a"}), RuntimeError("provider down")],
            tools=[lookup_tool],
        )

        result = await agent.run("What is a?", "s1")

        assert result.error is not None
        assert result.rounds == 1


class TestRoundBudget:
    async def test_exhausted_budget_answers_with_latest_text(self, make_agent, collect, store, lookup_tool):
        agent, model = make_agent(
            [
                tool_call_response("lookup", {"key": "a"}, call_id="c1", text="thinking"),
                tool_call_response("lookup", {"key": "b"}, call_id="c2", text="still thinking"),
            ],
            tools=[lookup_tool],
            max_rounds=2,
        )

        events = await collect(agent, "Loop forever", "s1")

        assert len(model.calls) == 2
        assert [e.event_type for e in events].count(EventType.TOOL_CALL) == 1
        assert token_text(events).endswith("still thinking")
        assert events[-1].is_done
        history = store.get_history("s1")
        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
        assert history[-1].content == "still thinking"
        assert not history[-1].tool_calls

    async def test_exhausted_budget_without_text_falls_back(self, make_agent, collect, store, lookup_tool):
        agent, _ = make_agent([tool_call_response("lookup", {"key": "a"})], tools=[lookup_tool], max_rounds=1)

        events = await collect(agent, "Loop", "s1")

        assert token_text(events) == FALLBACK_RESPONSE
        assert not any(e.event_type == EventType.TOOL_CALL for e in events)
        assert store.get_history("s1")[-1].content == FALLBACK_RESPONSE

    async def test_exhausted_budget_is_reported_in_metadata(self, make_agent, lookup_tool):
        agent, _ = make_agent(
            [tool_call_response("lookup", {"key": "a"}, text="partial")],
            tools=[lookup_tool],
            max_rounds=1,
        )

        result = await agent.run("Loop", "s1")

        assert result.response == "partial"
        assert result.metadata["exhausted"] is True


class TestFallback:
    async def test_empty_answer_is_replaced(self, make_agent, collect, store):
        agent, _ = make_agent([AIMessage(content="")])

        events = await collect(agent, "Hello", "s1")

        assert kinds(events) == ["token", "done"]
        assert token_text(events) == FALLBACK_RESPONSE
        assert store.get_history("s1")[-1].content == FALLBACK_RESPONSE

    async def test_whitespace_answer_is_kept(self, make_agent, collect, store):
        agent, _ = make_agent([AIMessage(content=" ")])

        events = await collect(agent, "Hello", "s1")

        assert token_text(events) == " "
        assert store.get_history("s1")[-1].content == " "


class TestEventProtocol:
    async def test_done_is_last_and_unique(self, make_agent, collect, lookup_tool):
        agent, _ = make_agent(
            [tool_call_response("lookup", {"key": "a"}), AIMessage(content="ok")],
            tools=[lookup_tool],
        )

        events = await collect(agent, "Go", "s1")

        assert [e.is_done for e in events].count(True) == 1
        assert events[-1].is_done

    async def test_identical_turns_emit_identical_events(self, make_agent, collect, lookup_tool):
        script = [tool_call_response("lookup", {"key": "a"}), AIMessage(content="Answer based on X")]
        first_agent, _ = make_agent(list(script), tools=[lookup_tool])
        second_agent, _ = make_agent(list(script), tools=[lookup_tool])

        first = await collect(first_agent, "What is a?", "s1")
        second = await collect(second_agent, "What is a?", "s2")

        assert first == second


class TestSessions:
    async def test_second_turn_sees_first_turn(self, make_agent, collect):
        agent, model = make_agent([AIMessage(content="Hi Ada"), AIMessage(content="Ada")])

        await collect(agent, "I am Ada", "s1")
        await collect(agent, "Who am I?", "s1")

        contents = [m.content for m in model.calls[1]]
        assert contents[-3:] == ["I am Ada", "Hi Ada", "Who am I?"]

    async def test_sessions_are_isolated(self, make_agent, collect, store):
        agent, model = make_agent([AIMessage(content="one"), AIMessage(content="two")])

        await collect(agent, "first", "s1")
        await collect(agent, "second", "s2")

        assert [m.content for m in model.calls[1]] == ["second"]
        assert len(store.get_history("s1")) == 2
        assert len(store.get_history("s2")) == 2

    async def test_busy_session_is_rejected(self, make_agent, store):
        agent, model = make_agent([AIMessage(content="never")])
        lease = await store.acquire("s1")

        with pytest.raises(SessionBusyError):
            await agent.run("Hello", "s1")

        lease.release()
        assert model.calls == []

    async def test_distinct_sessions_run_concurrently(self, make_agent, collect):
        agent, _ = make_agent([AIMessage(content="a"), AIMessage(content="b")])

        first, second = await asyncio.gather(
            collect(agent, "one", "s1"),
            collect(agent, "two", "s2"),
        )

        assert first[-1].is_done
        assert second[-1].is_done

    async def test_session_is_released_after_turn(self, make_agent, collect, store):
        agent, _ = make_agent([RuntimeError("provider down")])

        await collect(agent, "Hello", "s1")

        assert not store.is_busy("s1")
        assert store.active_turns == 0
