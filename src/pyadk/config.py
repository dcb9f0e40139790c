"""
Configuration management for pyadk

Uses pydantic-settings for environment variable parsing and validation.
"""

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from .agents.run_config import RunConfig
    from .compaction.base import BaseEventSummarizer


class LLMConfig(BaseSettings):
    """Configuration for a single LLM provider."""

    model_config = SettingsConfigDict(extra="ignore")

    provider: Literal["anthropic", "openai", "openrouter"] = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    base_url: str | None = None
    max_tokens: int = 4096
    temperature: float = 0.7


class Settings(BaseSettings):
    """Main engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application
    app_name: str = "pyadk"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = Field(default=False, description="Render logs as JSON instead of console output")

    # Session persistence
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/sessions.db",
        description="Database connection URL for DatabaseSessionService",
    )

    # Run configuration
    max_llm_calls: int = Field(default=500, description="Max model calls per invocation (<=0 disables the limit)")
    streaming_mode: Literal["none", "sse", "bidi"] = "none"

    # Compaction
    compaction_enabled: bool = False
    compaction_interval: int = Field(default=10, description="New invocations needed before compacting")
    compaction_overlap_size: int = Field(default=2, description="Invocations re-included from the previous window")

    # LLM Providers (API Keys)
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")

    # Default model settings
    default_provider: Literal["anthropic", "openai", "openrouter"] = "anthropic"
    default_model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.7

    @field_validator("streaming_mode", mode="before")
    @classmethod
    def normalize_streaming_mode(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    def get_llm_config(self, provider: str | None = None) -> LLMConfig:
        """Get LLM configuration for a provider."""
        provider = provider or self.default_provider

        api_key_map = {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "openrouter": self.openrouter_api_key,
        }

        model_map = {
            "anthropic": "claude-sonnet-4-20250514",
            "openai": "gpt-4o",
            "openrouter": "anthropic/claude-sonnet-4",
        }

        base_url_map = {
            "anthropic": None,
            "openai": None,
            "openrouter": "https://openrouter.ai/api/v1",
        }

        model = self.default_model if provider == self.default_provider else model_map.get(provider, self.default_model)

        return LLMConfig(
            provider=provider,  # type: ignore
            model=model,
            api_key=api_key_map.get(provider, ""),
            base_url=base_url_map.get(provider),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    def get_run_config(self, summarizer: "BaseEventSummarizer | None" = None) -> "RunConfig":
        """Build a RunConfig from the configured limits and compaction settings."""
        from .agents.run_config import RunConfig, StreamingMode
        from .compaction.base import EventsCompactionConfig

        compaction = None
        if self.compaction_enabled:
            compaction = EventsCompactionConfig(
                compaction_interval=self.compaction_interval,
                overlap_size=self.compaction_overlap_size,
                summarizer=summarizer,
                enabled=True,
            )

        return RunConfig(
            max_llm_calls=self.max_llm_calls,
            streaming_mode=StreamingMode(self.streaming_mode),
            events_compaction_config=compaction,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
