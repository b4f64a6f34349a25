"""Assistant agent builder module.

This module provides the builder class for constructing the assistant agent:
tool registry, completion engine, loop strategy and turn orchestration.
"""

from collections.abc import Sequence
from typing import Self

from langchain_core.tools import BaseTool

from streaming_agent_service.agents.assistant.prompt import build_system_prompt
from streaming_agent_service.agents.assistant.tools import default_tools
from streaming_agent_service.platform.agent.completion import CompletionEngine, LlmCompletionEngine
from streaming_agent_service.platform.agent.config import (
    AgentConfig,
    AgentIdentity,
    Audience,
    LlmConfig,
    LoopStrategy,
)
from streaming_agent_service.platform.agent.langgraph import NativeToolLoop
from streaming_agent_service.platform.agent.llm_client import LlmClient
from streaming_agent_service.platform.agent.loop import AgentLoop
from streaming_agent_service.platform.agent.manual import ManualToolLoop
from streaming_agent_service.platform.agent.protocol import TurnStrategy
from streaming_agent_service.platform.constants import SERVICE_NAME, SQUAD_NAME
from streaming_agent_service.platform.conversation.store import ConversationStore
from streaming_agent_service.platform.settings import Settings
from streaming_agent_service.platform.tools.registry import ToolRegistry


class AssistantAgentBuilder:
    """Builder for the tool-using assistant agent.

    This builder assembles all components needed for a turn:
    - Tool registry over the assistant's tools
    - LLM client (native strategy) or completion engine (manual strategy)
    - The loop strategy chosen by ``AgentConfig.strategy``
    - The AgentLoop bound to the shared conversation store
    """

    SLUG = "assistant"

    def __init__(
        self,
        agent_config: AgentConfig,
        llm_config: LlmConfig,
        identity: AgentIdentity,
        store: ConversationStore,
        tools: Sequence[BaseTool] | None = None,
        custom_instructions: str | None = None,
        llm_client: LlmClient | None = None,
        completion_engine: CompletionEngine | None = None,
    ) -> None:
        """Initialize the builder with configuration.

        Args:
            agent_config: Configuration for agent behavior (strategy, round budget, etc.)
            llm_config: Configuration for the LLM client
            identity: Agent identity (name, description, slug, squad)
            store: Conversation store shared by all turns
            tools: Optional tools; defaults to the assistant's built-in tools
            custom_instructions: Optional text appended to the system prompt
            llm_client: Optional pre-built LLM client. Inject for testing.
            completion_engine: Optional completion engine for the manual strategy.
                Defaults to an LlmCompletionEngine. Inject for testing.
        """
        self.agent_config = agent_config
        self.llm_config = llm_config
        self.identity = identity
        self.store = store
        self.tools = list(tools) if tools is not None else default_tools()
        self.custom_instructions = custom_instructions
        self._llm_client = llm_client
        self._completion_engine = completion_engine

    def build(self) -> AgentLoop:
        """Build and return a configured AgentLoop.

        Returns:
            An AgentLoop ready for execution.
        """
        registry = ToolRegistry(self.tools, agent_slug=self.identity.slug)
        return AgentLoop(
            identity=self.identity,
            strategy=self._build_strategy(registry),
            store=self.store,
            system_prompt=build_system_prompt(self.custom_instructions),
        )

    def _build_strategy(self, registry: ToolRegistry) -> TurnStrategy:
        match self.agent_config.strategy:
            case LoopStrategy.NATIVE:
                return NativeToolLoop(self._get_llm_client(), registry, self.agent_config)
            case LoopStrategy.MANUAL:
                engine = self._completion_engine or LlmCompletionEngine(
                    self._get_llm_client(),
                    streaming=self.llm_config.streaming,
                )
                return ManualToolLoop(engine, registry, self.agent_config)
        raise ValueError(f"Unknown loop strategy: {self.agent_config.strategy!r}")

    def _get_llm_client(self) -> LlmClient:
        return self._llm_client or LlmClient.from_config(self.identity.slug, self.llm_config)

    @classmethod
    def default_identity(cls) -> AgentIdentity:
        return AgentIdentity(
            name="Assistant",
            description="A conversational assistant that can use tools to answer questions",
            slug=cls.SLUG,
            squad=SQUAD_NAME,
            origin=SERVICE_NAME,
            audience=Audience.PUBLIC,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ConversationStore,
        identity: AgentIdentity | None = None,
    ) -> Self:
        """Create a builder configured from application settings.

        Args:
            settings: Application settings
            store: Conversation store shared by all turns
            identity: Optional agent identity. Defaults to the assistant identity.

        Returns:
            A configured AssistantAgentBuilder instance.
        """
        return cls(
            agent_config=AgentConfig(
                max_rounds=settings.agent.max_rounds,
                strategy=LoopStrategy(settings.agent.strategy),
                recursion_limit=settings.agent.recursion_limit,
                max_context_tokens=settings.agent.max_context_tokens,
            ),
            llm_config=LlmConfig(
                model=settings.llm.model,
                api_key=settings.llm.api_key,
                base_url=settings.llm.api_base,
                temperature=settings.llm.temperature,
                streaming=settings.llm.streaming,
            ),
            identity=identity or cls.default_identity(),
            store=store,
            custom_instructions=settings.agent.system_prompt,
        )
