"""Structured logging configuration using structlog.

JSON output for deployed stages, colored console output for local runs.
Every entry is stamped with the request's correlation ID and, while a turn
is running, the agent slug and session ID of that turn.
"""

import logging
import sys
from collections.abc import Callable
from contextvars import ContextVar

import structlog

# Request correlation ID, set by CorrelationIdMiddleware
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Agent and session of the turn currently executing, set by the agent loop
agent_ctx: ContextVar[str | None] = ContextVar("agent", default=None)
session_id_ctx: ContextVar[str | None] = ContextVar("session_id", default=None)

_CONTEXT_FIELDS: tuple[tuple[str, ContextVar[str | None]], ...] = (
    ("correlation_id", correlation_id_ctx),
    ("agent", agent_ctx),
    ("session_id", session_id_ctx),
)

# Libraries that log every HTTP call or provider chunk at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "openai", "uvicorn.access")


def add_request_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Processor that copies the request and turn identifiers into each entry."""
    for key, var in _CONTEXT_FIELDS:
        value = var.get()
        if value:
            event_dict.setdefault(key, value)
    return event_dict


def bind_turn(agent: str, session_id: str) -> Callable[[], None]:
    """Tag log entries with the running turn until the returned callable is invoked."""
    agent_token = agent_ctx.set(agent)
    session_token = session_id_ctx.set(session_id)

    def unbind() -> None:
        session_id_ctx.reset(session_token)
        agent_ctx.reset(agent_token)

    return unbind


def configure_logging(log_level: str, json_output: bool = True) -> None:
    """Route stdlib and structlog records through one structlog formatter.

    Args:
        log_level: Root logging level (INFO, DEBUG, etc.)
        json_output: True for JSON lines, False for the console renderer
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_request_context,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
