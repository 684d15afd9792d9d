"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Every component receives a Settings value explicitly; nothing reads
credentials from module-level globals.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scout.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional credentials (a missing key degrades the matching stage):
        ANTHROPIC_API_KEY: Language model provider key (required to run a thesis)
        CRUNCHBASE_API_KEY: Structured company database key
        BRAVE_API_KEY: Web search key

    Tuning:
        FIT_SCORE_THRESHOLD: Minimum fit score to reach deep analysis
        MAX_ANALYZED_COMPANIES: How many candidates get deep analysis
        QUERIES_PER_SOURCE: Queries taken from each plan list during discovery
        ENRICHMENT_BATCH_SIZE: Concurrent enrichment lookups per batch
        ANALYSIS_THINKING_BUDGET: Extended thinking tokens for analysis (0 = off)
        WEB_SIGNAL_QUERIES: Startup-signal query templates per web search
        PROGRESS_HEARTBEAT_SECONDS: Interval for progress events during long stages
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider credentials
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    CRUNCHBASE_API_KEY: str | None = Field(default=None, description="Crunchbase v4 API key")
    BRAVE_API_KEY: str | None = Field(default=None, description="Brave Search API key")

    # Storage
    DATABASE_PATH: Path = Field(default=Path("scout.db"), description="SQLite database file")

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="Optional JSON log file")

    # Models per stage
    MODEL_PLANNER: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model for thesis keyword expansion",
    )
    MODEL_FILTER: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model for the batched fit filter",
    )
    MODEL_ANALYST: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model for deep analysis",
    )

    # Pipeline tuning
    FIT_SCORE_THRESHOLD: int = Field(
        default=5, ge=1, le=10, description="Minimum fit score kept after filtering"
    )
    MAX_ANALYZED_COMPANIES: int = Field(
        default=8, ge=1, le=25, description="Top-N candidates sent to deep analysis"
    )
    QUERIES_PER_SOURCE: int = Field(
        default=3, ge=1, le=10, description="Queries taken from each plan list"
    )
    RESULTS_PER_QUERY: int = Field(
        default=8, ge=1, le=20, description="Result cap per adapter call"
    )
    ENRICHMENT_BATCH_SIZE: int = Field(
        default=5, ge=1, le=20, description="Concurrent enrichment lookups"
    )
    ANALYSIS_THINKING_BUDGET: int = Field(
        default=0, ge=0, description="Extended thinking budget for analysis (0 disables)"
    )
    WEB_FRESHNESS: str = Field(
        default="py", description="Brave freshness window (pd, pw, pm, py)"
    )
    WEB_SIGNAL_QUERIES: int = Field(
        default=3, ge=0, le=10, description="Startup-signal query templates per web search (0 sends the raw query only)"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=20.0, gt=0.0, description="Timeout for provider HTTP calls"
    )
    PROGRESS_HEARTBEAT_SECONDS: float = Field(
        default=10.0, gt=0.0, description="Seconds between progress events while a stage is running"
    )

    @field_validator("ANTHROPIC_API_KEY", "CRUNCHBASE_API_KEY", "BRAVE_API_KEY")
    @classmethod
    def blank_key_is_missing(cls, v: str | None) -> str | None:
        """Treat empty strings as unset keys."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("WEB_FRESHNESS")
    @classmethod
    def validate_freshness(cls, v: str) -> str:
        """Brave accepts pd/pw/pm/py or an explicit date range."""
        if v in ("pd", "pw", "pm", "py") or "to" in v:
            return v
        raise ValueError("WEB_FRESHNESS must be one of pd, pw, pm, py or a YYYY-MM-DDtoYYYY-MM-DD range")

    @property
    def llm_provider_key(self) -> str | None:
        """Get the language model key (lowercase alias)."""
        return self.ANTHROPIC_API_KEY

    @property
    def search_provider_key(self) -> str | None:
        """Get the company database key (lowercase alias)."""
        return self.CRUNCHBASE_API_KEY

    @property
    def web_search_key(self) -> str | None:
        """Get the web search key (lowercase alias)."""
        return self.BRAVE_API_KEY

    @property
    def db_connection(self) -> Path:
        """Get the database location (lowercase alias)."""
        return self.DATABASE_PATH

    @property
    def available_providers(self) -> list[str]:
        """Return list of configured providers."""
        providers: list[str] = []
        if self.ANTHROPIC_API_KEY:
            providers.append("anthropic")
        if self.CRUNCHBASE_API_KEY:
            providers.append("crunchbase")
        if self.BRAVE_API_KEY:
            providers.append("brave")
        return providers

    def require_llm(self) -> str:
        """Return the LLM key or raise if it is missing.

        Raises:
            ConfigurationError: If ANTHROPIC_API_KEY is not configured.
        """
        if not self.ANTHROPIC_API_KEY:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY must be configured to run a thesis",
                context={"providers": self.available_providers},
            )
        return self.ANTHROPIC_API_KEY

    def redacted_display(self) -> dict[str, str | int | float | None]:
        """Return settings with API keys redacted for display."""
        def redact(value: str | None) -> str | None:
            if value is None:
                return None
            return f"{value[:6]}...{value[-4:]}" if len(value) > 12 else "***"

        return {
            "ANTHROPIC_API_KEY": redact(self.ANTHROPIC_API_KEY),
            "CRUNCHBASE_API_KEY": redact(self.CRUNCHBASE_API_KEY),
            "BRAVE_API_KEY": redact(self.BRAVE_API_KEY),
            "DATABASE_PATH": str(self.DATABASE_PATH),
            "LOG_LEVEL": self.LOG_LEVEL,
            "MODEL_PLANNER": self.MODEL_PLANNER,
            "MODEL_FILTER": self.MODEL_FILTER,
            "MODEL_ANALYST": self.MODEL_ANALYST,
            "FIT_SCORE_THRESHOLD": self.FIT_SCORE_THRESHOLD,
            "MAX_ANALYZED_COMPANIES": self.MAX_ANALYZED_COMPANIES,
            "QUERIES_PER_SOURCE": self.QUERIES_PER_SOURCE,
            "ENRICHMENT_BATCH_SIZE": self.ENRICHMENT_BATCH_SIZE,
            "ANALYSIS_THINKING_BUDGET": self.ANALYSIS_THINKING_BUDGET,
            "WEB_FRESHNESS": self.WEB_FRESHNESS,
            "WEB_SIGNAL_QUERIES": self.WEB_SIGNAL_QUERIES,
            "PROGRESS_HEARTBEAT_SECONDS": self.PROGRESS_HEARTBEAT_SECONDS,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
