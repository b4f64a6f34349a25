"""Bugsnag error reporting.

ERROR-level log entries are reported automatically once configured. Each
report carries the correlation, agent and session IDs that were active when
the entry was logged, so a failed turn can be matched to its SSE stream.
"""

import logging

import bugsnag
from bugsnag.handlers import BugsnagHandler

from streaming_agent_service.platform.observability.logging import (
    agent_ctx,
    correlation_id_ctx,
    session_id_ctx,
)

REPORTED_STAGES = ("production", "development")


def add_turn_context(event) -> None:
    """Bugsnag callback adding a ``turn`` tab with the active identifiers."""
    context = {
        "correlation_id": correlation_id_ctx.get(),
        "agent": agent_ctx.get(),
        "session_id": session_id_ctx.get(),
    }
    context = {key: value for key, value in context.items() if value}
    if context:
        event.add_tab("turn", context)


def initialize_bugsnag(api_key: str, release_stage: str) -> bool:
    """Configure Bugsnag and attach it to the root logger.

    Args:
        api_key: Bugsnag project API key
        release_stage: One of "production", "development" or "local"

    Returns:
        True when reporting was enabled; local runs and missing keys are skipped
    """
    if release_stage not in REPORTED_STAGES or not api_key:
        return False

    bugsnag.configure(api_key=api_key, release_stage=release_stage, auto_notify=True)
    bugsnag.before_notify(add_turn_context)

    handler = BugsnagHandler()
    handler.setLevel(logging.ERROR)
    logging.getLogger().addHandler(handler)
    return True
