"""Core configuration for the orchestrator.

Configuration is loaded from environment variables and a local `.env` file.
Nested sections use their own prefixes, e.g. `ORCHESTRATOR_CACHE_SWEEP_INTERVAL_SECONDS`.
"""

from datetime import timedelta
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from card_agent_orchestrator.orchestrator.logging import configure_logging


class LLMConfig(BaseSettings):
    """Configuration for the optional LLM provider used by agent steps."""

    provider: Literal["none", "openai"] = Field(
        default="none",
        description="LLM provider to use ('none' keeps agent steps templated)",
    )

    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model to use",
    )
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Temperature for OpenAI model",
    )
    max_tokens: int = Field(
        default=800,
        gt=0,
        description="Completion budget per agent step",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_LLM_",
        env_file=".env",
        extra="ignore",
    )


class CacheConfig(BaseSettings):
    """Configuration for the workflow result cache."""

    default_ttl_seconds: float = Field(
        default=900.0,
        gt=0,
        description="TTL for workflows missing from the TTL table",
    )
    ttl_overrides: dict[str, float] = Field(
        default_factory=dict,
        description="Per-workflow TTL in seconds, merged over the built-in table (JSON in env)",
    )
    sweep_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Interval between background sweeps of expired entries",
    )
    degraded_expired_ratio: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Expired/total ratio above which the cache reports 'degraded'",
    )
    max_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Size above which the cache reports 'degraded' (reporting only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_CACHE_",
        env_file=".env",
        extra="ignore",
    )

    def ttl_override_deltas(self) -> dict[str, timedelta]:
        return {k: timedelta(seconds=v) for k, v in self.ttl_overrides.items()}


class EngineConfig(BaseSettings):
    """Configuration for workflow execution and polling."""

    poll_interval_seconds: float = Field(
        default=0.25,
        gt=0,
        description="Interval between status polls while waiting for a run",
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Wall-clock budget for a single run before it is cancelled",
    )
    run_retention_hours: float = Field(
        default=24.0,
        gt=0,
        description="Default age after which finished runs are cleaned up",
    )
    fetch_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="HTTP timeout used when scraping source articles",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_ENGINE_",
        env_file=".env",
        extra="ignore",
    )


class OrchestratorConfig(BaseSettings):
    """Main configuration for the orchestrator."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="LLM configuration",
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Result cache configuration",
    )
    engine: EngineConfig = Field(
        default_factory=EngineConfig,
        description="Workflow engine configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure structured logging based on settings."""
        configure_logging("DEBUG" if self.debug else self.log_level)
