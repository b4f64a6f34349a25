"""FastAPI application factory.

The lifespan builds the process-wide singletons (conversation store, the
assistant agent) and registers shutdown handling that drains running turns
before the server stops.
"""

import asyncio
import logging
import os
import signal
from contextlib import asynccontextmanager

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from streaming_agent_service.agents.assistant.agent import AssistantAgentBuilder
from streaming_agent_service.agents.assistant.routes import chat_router
from streaming_agent_service.platform.conversation.store import ConversationStore
from streaming_agent_service.platform.observability.errors import initialize_bugsnag
from streaming_agent_service.platform.observability.logging import configure_logging
from streaming_agent_service.platform.observability.metrics import prometheus_middleware
from streaming_agent_service.platform.server.health import HealthCheck, drain_turns, service_info
from streaming_agent_service.platform.server.middlewares import CorrelationIdMiddleware
from streaming_agent_service.platform.server.routes import root as root_router
from streaming_agent_service.platform.settings import Settings

logger = logging.getLogger(__name__)

# Seconds to wait for in-flight turns before exiting on SIGTERM
DRAIN_TIMEOUT = 20


def _json_logs(settings: Settings) -> bool:
    if settings.app_http.log_json is not None:
        return settings.app_http.log_json
    return settings.bugsnag.release_stage != "local"


def lifespan_closure(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.app_http.log_level, json_output=_json_logs(settings))
        initialize_bugsnag(settings.bugsnag.api_key, settings.bugsnag.release_stage)
        if settings.bugsnag.release_stage in ("production", "development"):
            register_drain_on_signal(app)

        app.state.settings = settings
        # History lives in process memory for the lifetime of the app
        app.state.store = ConversationStore()

        builder = AssistantAgentBuilder.from_settings(settings, app.state.store)
        app.state.agents = {AssistantAgentBuilder: builder.build()}
        service_info.describe(
            slug=builder.identity.slug,
            strategy=settings.agent.strategy,
            model=settings.llm.model,
            max_rounds=settings.agent.max_rounds,
        )
        logger.info(
            "Agent %s ready (strategy=%s, model=%s)",
            builder.identity.slug,
            settings.agent.strategy,
            settings.llm.model,
        )

        HealthCheck.enable()
        yield
        HealthCheck.disable()

    return lifespan


def register_drain_on_signal(app: FastAPI) -> None:
    """Drain running turns on SIGINT/SIGTERM, then let uvicorn exit.

    The lifespan shutdown only runs after uvicorn has stopped accepting
    connections and cancelled open streams, which is too late to let SSE
    turns finish. The signal is intercepted instead and re-raised as SIGUSR1
    once the store has no turns in flight.
    """

    async def drain_and_exit() -> None:
        remaining = await drain_turns(getattr(app.state, "store", None), DRAIN_TIMEOUT)
        if remaining:
            logger.warning("Exiting with %d turn(s) still running", remaining)
        os.kill(os.getpid(), signal.SIGUSR1)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(drain_and_exit()))


def create_app(settings: Settings) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title="Streaming Agent Service", lifespan=lifespan_closure(settings))
    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)
    if settings.opentelemetry.enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=settings.opentelemetry.excluded_urls)

    app.include_router(root_router)
    app.include_router(chat_router)
    return app
