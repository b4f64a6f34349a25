"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration.
"""

import logging
from typing import Literal

import pydantic_settings
from pydantic import BaseModel, Field, field_validator


class AppHTTPSettings(BaseModel):
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
    log_level: str = Field("INFO")
    log_json: bool | None = Field(
        None, description="Override log format: True=JSON, False=console, None=auto"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class OpenTelemetrySettings(BaseModel):
    enabled: bool = Field(False)
    excluded_urls: str = Field("metrics,health,info")


class BugsnagSettings(BaseModel):
    api_key: str = Field("")
    release_stage: str = Field("local")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in ["development", "production", "local"]:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class LlmSettings(BaseModel):
    """Completion provider configuration.

    Attributes:
        model: LiteLLM model identifier (e.g. "openai/gpt-4o", "gemini/gemini-2.5-flash")
        api_key: Provider or proxy API key
        api_base: Optional base URL (e.g. a LiteLLM proxy)
        temperature: Sampling temperature
        streaming: Ask the provider for incremental tokens in manual mode
    """

    model: str = Field("openai/gpt-4o-mini")
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    streaming: bool = Field(False)


class AgentSettings(BaseModel):
    """Agent loop configuration.

    Attributes:
        strategy: "native" delegates the tool loop to LangGraph, "manual" drives it in-process
        max_rounds: Maximum completion rounds per turn
        default_session_id: Session used when a request does not name one
        recursion_limit: LangGraph recursion limit for the native strategy
        max_context_tokens: Approximate token budget before old messages are trimmed
        system_prompt: Optional instructions appended to the built-in system prompt
    """

    strategy: Literal["native", "manual"] = Field("native")
    max_rounds: int = Field(5, ge=1, le=50)
    default_session_id: str = Field("default", min_length=1)
    recursion_limit: int = Field(50, ge=3)
    max_context_tokens: int = Field(150000, ge=1000)
    system_prompt: str | None = None


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    app_http: AppHTTPSettings = AppHTTPSettings()
    opentelemetry: OpenTelemetrySettings = OpenTelemetrySettings()
    bugsnag: BugsnagSettings = BugsnagSettings()

    # Completion provider configuration
    llm: LlmSettings = LlmSettings()

    # Agent loop configuration
    agent: AgentSettings = AgentSettings()
