"""Configuration dataclasses for agent components.

This module provides immutable configuration objects for LLM clients
and agent behavior settings.
"""

from dataclasses import dataclass
from enum import StrEnum


class Audience(StrEnum):
    """Target audience for the agent."""

    CUSTOMER = "customer"
    INTERNAL = "internal"
    PUBLIC = "public"


class LoopStrategy(StrEnum):
    """How multi-round tool use is driven."""

    NATIVE = "native"
    MANUAL = "manual"


@dataclass(frozen=True)
class LlmConfig:
    """Configuration for language model clients.

    Attributes:
        model: Model identifier (e.g., "openai/gpt-4o-mini")
        api_key: API key for the LLM provider
        base_url: Base URL for the API (e.g., LiteLLM proxy URL)
        temperature: Sampling temperature (0.0 to 1.0)
        streaming: Request incremental tokens from the provider
    """

    model: str
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.7
    streaming: bool = False


@dataclass(frozen=True)
class AgentConfig:
    """Configuration for agent behavior.

    Attributes:
        max_rounds: Maximum completion rounds per turn before the loop finishes
        strategy: Which tool loop strategy drives the turn
        recursion_limit: LangGraph recursion limit (native strategy only)
        max_context_tokens: Maximum tokens before trimming old messages
    """

    max_rounds: int = 5
    strategy: LoopStrategy = LoopStrategy.NATIVE
    recursion_limit: int = 50
    max_context_tokens: int = 150000

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {self.max_rounds}")


@dataclass(frozen=True)
class AgentIdentity:
    """Identity information for an agent.

    Attributes:
        name: Human-readable display name for the agent
        description: Brief description of the agent's capabilities
        slug: URL-safe identifier used in API routes and metrics
        squad: Group identifier for the agent
        origin: Name of the service hosting the agent
        audience: Target audience for the agent
    """

    name: str
    description: str
    slug: str
    squad: str
    origin: str
    audience: Audience = Audience.INTERNAL

    @property
    def unique_id(self) -> str:
        """Generate a unique identifier from squad, origin, and slug."""
        return f"{self.squad}:{self.origin}:{self.slug}"
