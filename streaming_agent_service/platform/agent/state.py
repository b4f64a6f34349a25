"""LangGraph state for the native tool loop."""

from typing import Annotated, TypedDict

from langchain_core.messages import AnyMessage
from langgraph.graph.message import add_messages

# model -> {"input": n, "output": m}
Usage = dict[str, dict[str, int]]


def merge_usage(existing: Usage | None, new: Usage | None) -> Usage:
    """Reducer summing per-model input/output token counts across rounds."""
    merged = {model: dict(counts) for model, counts in (existing or {}).items()}
    for model, counts in (new or {}).items():
        totals = merged.setdefault(model, {})
        for direction, tokens in counts.items():
            totals[direction] = totals.get(direction, 0) + tokens
    return merged


class LoopState(TypedDict):
    """State carried through one turn of the native loop.

    ``messages`` starts as system prompt + history + user message and grows
    by one assistant message per round plus one tool message per call.
    ``rounds`` counts completion requests; routing stops at the budget.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    rounds: int
    usage: Annotated[Usage, merge_usage]
