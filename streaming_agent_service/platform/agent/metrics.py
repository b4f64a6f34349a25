"""Prometheus metrics for agent turns, completion rounds, tools and tokens."""

from time import monotonic
from typing import NamedTuple

import prometheus_client

from streaming_agent_service.platform.observability.metrics import BUCKETS


class AgentMetricsLabels(NamedTuple):
    agent: str


class ToolMetricsLabels(NamedTuple):
    agent: str
    tool_name: str


agent_turns_total = prometheus_client.Counter(
    name="agent_turns_total",
    documentation="Agent turns by outcome",
    labelnames=("agent", "outcome"),
)

agent_turn_duration = prometheus_client.Histogram(
    name="agent_turn_duration_seconds",
    documentation="Agent turn duration (seconds)",
    labelnames=("agent", "status"),
    buckets=BUCKETS,
)

agent_rounds = prometheus_client.Histogram(
    name="agent_turn_rounds",
    documentation="Completion rounds used per agent turn",
    labelnames=("agent",),
    buckets=(1, 2, 3, 4, 5, 8, 10, 15, 20, 50, float("inf")),
)

agent_tool_calls_total = prometheus_client.Counter(
    name="agent_tool_calls_total",
    documentation="Tool executions by tool and status",
    labelnames=("agent", "tool_name", "status"),
)

agent_tool_duration = prometheus_client.Histogram(
    name="agent_tool_duration_seconds",
    documentation="Tool execution duration (seconds)",
    labelnames=("agent", "tool_name"),
    buckets=BUCKETS,
)

agent_llm_tokens_total = prometheus_client.Counter(
    name="agent_llm_tokens_total",
    documentation="LLM tokens consumed by direction",
    labelnames=("agent", "model", "direction"),
)


def record_tool_call(labels: ToolMetricsLabels, duration: float, error: bool = False) -> None:
    """Record a single tool execution.

    Args:
        labels: Agent and tool labels
        duration: Execution time in seconds
        error: Whether the tool reported a failure
    """
    status = "error" if error else "success"
    agent_tool_calls_total.labels(labels.agent, labels.tool_name, status).inc()
    agent_tool_duration.labels(labels.agent, labels.tool_name).observe(duration)


def record_agent_tokens(agent: str, model: str, input_tokens: int, output_tokens: int) -> None:
    """Record token usage for one LLM call; zero counts are skipped."""
    if input_tokens > 0:
        agent_llm_tokens_total.labels(agent, model, "input").inc(input_tokens)
    if output_tokens > 0:
        agent_llm_tokens_total.labels(agent, model, "output").inc(output_tokens)


def record_turn(labels: AgentMetricsLabels, outcome: str, rounds: int) -> None:
    """Record how a turn ended and how many rounds it used.

    Args:
        labels: Agent labels
        outcome: One of "answered", "fallback", "exhausted", "error", "cancelled"
        rounds: Completion rounds performed
    """
    agent_turns_total.labels(labels.agent, outcome).inc()
    agent_rounds.labels(labels.agent).observe(rounds)


class collect_agent_metrics:  # noqa: N801
    """Async context manager timing an agent turn.

    Exceptions are recorded with status "error" and re-raised.
    """

    def __init__(self, labels: AgentMetricsLabels) -> None:
        self.labels = labels
        self._start = 0.0

    async def __aenter__(self) -> "collect_agent_metrics":
        self._start = monotonic()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        status = "error" if exc_type is not None else "success"
        agent_turn_duration.labels(self.labels.agent, status).observe(monotonic() - self._start)
        return False
