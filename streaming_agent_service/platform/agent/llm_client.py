"""LLM client implementation using LiteLLM."""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Self

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessageChunk
from langchain_core.runnables import Runnable, RunnableConfig
from langchain_core.tools import BaseTool
from langchain_litellm import ChatLiteLLM

from streaming_agent_service.platform.agent.config import LlmConfig
from streaming_agent_service.platform.agent.metrics import record_agent_tokens


class LlmClient(Runnable):
    """ChatLiteLLM behind a Runnable that records token usage per agent.

    Composes with LCEL (the native loop pipes its trimmer into it), keeps its
    own settings across ``bind_tools`` and supports incremental streaming.
    """

    def __init__(
        self,
        agent_slug: str,
        model_name: str,
        api_key: str | None,
        api_base: str | None,
        temperature: float,
        streaming: bool = False,
        llm: Runnable | None = None,
    ):
        """Initialize the LLM client.

        Args:
            agent_slug: Agent slug used to label token metrics
            model_name: LiteLLM model identifier
            api_key: API key for authentication
            api_base: Optional base URL (e.g. LiteLLM proxy)
            temperature: Sampling temperature
            streaming: Let the provider stream tokens; when False, streaming
                requests fall back to a single response
            llm: Optional pre-configured chat model (for bind_tools and tests)
        """
        self._agent_slug = agent_slug
        self._model_name = model_name
        self._api_key = api_key
        self._api_base = api_base
        self._temperature = temperature
        self._streaming = streaming
        self._llm = llm or ChatLiteLLM(
            model_name=model_name,
            api_key=api_key,
            api_base=api_base,
            temperature=temperature,
            disable_streaming=not streaming,
        )

    @classmethod
    def from_config(cls, agent_slug: str, config: LlmConfig) -> Self:
        return cls(
            agent_slug=agent_slug,
            model_name=config.model,
            api_key=config.api_key,
            api_base=config.base_url,
            temperature=config.temperature,
            streaming=config.streaming,
        )

    @classmethod
    def from_chat_model(cls, agent_slug: str, chat_model: BaseChatModel) -> Self:
        """Wrap an already constructed chat model."""
        return cls(
            agent_slug=agent_slug,
            model_name=getattr(chat_model, "model_name", None) or chat_model._llm_type,
            api_key=None,
            api_base=None,
            temperature=getattr(chat_model, "temperature", 0.0) or 0.0,
            llm=chat_model,
        )

    @property
    def model_name(self) -> str:
        """The model name/identifier."""
        return self._model_name

    def bind_tools(self, tools: Sequence[BaseTool | dict[str, Any]]) -> Self:
        """Return a new client with tools bound.

        Args:
            tools: LangChain tools or OpenAI-style function schemas

        Returns:
            New LlmClient instance with tools bound
        """
        return type(self)(
            agent_slug=self._agent_slug,
            model_name=self._model_name,
            api_key=self._api_key,
            api_base=self._api_base,
            temperature=self._temperature,
            streaming=self._streaming,
            llm=self._llm.bind_tools(list(tools)),  # type: ignore[attr-defined]
        )

    @staticmethod
    def extract_tokens(message: AIMessage) -> tuple[int, int]:
        """Extract token counts from an AIMessage's usage metadata.

        Args:
            message: AIMessage from LLM response

        Returns:
            Tuple of (input_tokens, output_tokens), defaults to (0, 0) if unavailable
        """
        usage = getattr(message, "usage_metadata", None)
        if not usage:
            return 0, 0
        return usage.get("input_tokens", 0), usage.get("output_tokens", 0)

    def _record(self, message: AIMessage) -> None:
        input_tokens, output_tokens = self.extract_tokens(message)
        record_agent_tokens(self._agent_slug, self._model_name, input_tokens, output_tokens)

    def invoke(self, input, config: RunnableConfig | None = None, **kwargs):
        response = self._llm.invoke(input, config=config, **kwargs)
        self._record(response)
        return response

    async def ainvoke(self, input, config: RunnableConfig | None = None, **kwargs):
        """Request one complete response; token usage is recorded against the agent."""
        response = await self._llm.ainvoke(input, config=config, **kwargs)
        self._record(response)
        return response

    async def astream(
        self, input, config: RunnableConfig | None = None, **kwargs
    ) -> AsyncIterator[BaseMessageChunk]:
        """Stream response chunks from the LLM.

        Token usage is recorded once from the aggregated message.

        Yields:
            Message chunks in arrival order
        """
        aggregate: BaseMessageChunk | None = None
        async for chunk in self._llm.astream(input, config=config, **kwargs):
            aggregate = chunk if aggregate is None else aggregate + chunk
            yield chunk
        if isinstance(aggregate, AIMessage):
            self._record(aggregate)
