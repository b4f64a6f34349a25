"""Integration test fixtures.

This module provides shared fixtures for integration tests including:
- Route/handler tests over a real AgentLoop with a scripted completion engine
- A shallow FastAPI app (no middleware, no lifespan)
"""

from collections.abc import Callable, Generator, Sequence

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from langchain_core.tools import BaseTool

from streaming_agent_service.agents.assistant.agent import AssistantAgentBuilder
from streaming_agent_service.agents.assistant.routes import chat_router
from streaming_agent_service.platform.agent.completion import Completion, FinalAnswer
from streaming_agent_service.platform.agent.config import AgentConfig, AgentIdentity
from streaming_agent_service.platform.agent.loop import AgentLoop
from streaming_agent_service.platform.agent.manual import ManualToolLoop
from streaming_agent_service.platform.conversation.store import ConversationStore
from streaming_agent_service.platform.server.health import HealthCheck
from streaming_agent_service.platform.server.routes import root as root_router
from streaming_agent_service.platform.settings import Settings
from streaming_agent_service.platform.tools.registry import ToolRegistry

# =============================================================================
# Agent Fixtures
# =============================================================================


@pytest.fixture
def make_chat_agent(
    identity: AgentIdentity,
    store: ConversationStore,
    lookup_tool: BaseTool,
    scripted_engine,
) -> Callable[..., AgentLoop]:
    """Factory for a manual-strategy AgentLoop over scripted completions."""

    def _make(completions: Sequence[Completion | Exception], max_rounds: int = 5) -> AgentLoop:
        registry = ToolRegistry([lookup_tool], agent_slug=identity.slug)
        strategy = ManualToolLoop(scripted_engine(completions), registry, AgentConfig(max_rounds=max_rounds))
        return AgentLoop(identity, strategy, store, system_prompt="You are a test assistant.")

    return _make


# =============================================================================
# FastAPI App Fixtures (Shallow - no middleware, minimal lifespan)
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_app(
    settings: Settings,
    store: ConversationStore,
    make_chat_agent: Callable[..., AgentLoop],
) -> Callable[..., FastAPI]:
    """Create a minimal test FastAPI app for integration tests.

    This is intentionally SHALLOW - no middleware, no full lifespan.
    Tests route handlers and their interaction with dependencies.
    """

    def _make(completions: Sequence[Completion | Exception] = (FinalAnswer("Hello!"),), **kwargs) -> FastAPI:
        app = FastAPI()

        app.state.settings = settings
        app.state.store = store
        app.state.agents = {AssistantAgentBuilder: make_chat_agent(completions, **kwargs)}

        app.include_router(root_router)
        app.include_router(chat_router)
        return app

    return _make


@pytest.fixture
def make_client(make_app: Callable[..., FastAPI]) -> Callable[..., TestClient]:
    """Create a test client over an app with the given scripted completions.

    No context manager needed since we're not using lifespan.
    """

    def _make(*args, **kwargs) -> TestClient:
        return TestClient(make_app(*args, **kwargs))

    return _make


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


@pytest.fixture
def client_with_health_enabled(client: TestClient) -> Generator[TestClient]:
    """Create a test client with health checks enabled."""
    HealthCheck.enable()
    yield client
    HealthCheck.disable()


@pytest.fixture
def client_with_health_disabled(client: TestClient) -> Generator[TestClient]:
    """Create a test client with health checks disabled."""
    HealthCheck.disable()
    yield client
