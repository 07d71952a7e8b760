"""
Application settings.

One `Settings` instance, `settings`, is read at import time from the
environment and an optional `.env` file (names are case-insensitive).
List settings accept a JSON array or a comma-separated string so they fit
on one line of a `.env` file.
"""

import json
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DATABASE_SCHEMES = ("sqlite", "sqlite+aiosqlite", "postgresql", "postgresql+asyncpg")
MIN_SECRET_KEY_LENGTH = 32
PLACEHOLDER_SECRET_KEYS = frozenset({
    "",
    "generate-with-openssl-rand-hex-32",
    "CHANGE_ME_32_CHARS_MIN",
    "your-secret-key-here",
})


def _parse_list(v: str | List[str]) -> List[str]:
    if not isinstance(v, str):
        return v
    text = v.strip()
    if text.startswith("["):
        return json.loads(text)
    return [item.strip() for item in text.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Runtime configuration.

    Every field can be set through the environment variable of the same
    name in upper case. SECRET_KEY has no default and must be provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_prefix: str = Field(
        default="/api",
        description="Prefix for all REST endpoints"
    )
    project_name: str = Field(
        default="InsightFlow",
        description="Project name displayed in API docs"
    )
    version: str = Field(
        default="1.0.0",
        description="Service version reported by the health endpoint"
    )

    # Database Configuration (SQLite)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/insightflow.db",
        description="Database connection URL (SQLite by default, PostgreSQL-ready format)"
    )
    db_create_all: bool = Field(
        default=True,
        description="Create missing tables at startup"
    )

    # LLM Configuration (OpenAI-compatible endpoint, Ollama by default)
    llm_base_url: str = Field(
        default="http://localhost:11434/v1",
        description="OpenAI-compatible base URL of the language model server"
    )
    llm_api_key: str = Field(
        default="ollama",
        description="API key for the model server (Ollama ignores it)"
    )
    llm_model: str = Field(
        default="llama3.2:latest",
        description="Chat model used for every analysis prompt"
    )
    llm_embedding_model: str = Field(
        default="nomic-embed-text",
        description="Embedding model used for document retrieval"
    )
    llm_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for analysis prompts"
    )
    llm_timeout_seconds: float = Field(
        default=120.0,
        description="Request timeout for a single model call"
    )
    llm_max_retries: int = Field(
        default=3,
        description="Retries for transient model errors"
    )
    llm_extended_timeout_seconds: float = Field(
        default=300.0,
        description="Timeout used for long-running analyses (investment recommendations)"
    )
    llm_extended_max_retries: int = Field(
        default=5,
        description="Retries used for long-running analyses"
    )

    # Web Search (Tavily)
    tavily_api_key: str = Field(
        default="",
        description="Tavily API key for web search"
    )
    tavily_base_url: str = Field(
        default="https://api.tavily.com",
        description="Tavily API base URL"
    )

    # Sentiment Sources
    news_api_key: str = Field(
        default="",
        description="NewsAPI key for news sentiment"
    )
    news_api_base_url: str = Field(
        default="https://newsapi.org/v2",
        description="NewsAPI base URL"
    )
    google_search_api_key: str = Field(
        default="",
        description="Google Custom Search API key for social sentiment"
    )
    google_search_engine_id: str = Field(
        default="",
        description="Google Custom Search engine ID (cx)"
    )
    google_search_base_url: str = Field(
        default="https://www.googleapis.com/customsearch/v1",
        description="Google Custom Search endpoint"
    )

    # Security Configuration
    secret_key: str = Field(
        ...,
        description="Secret key for JWT token signing (generate with: openssl rand -hex 32)"
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        description="JWT access token expiration time in minutes"
    )

    # CORS Configuration
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins (frontend URLs)"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow cookies/credentials in CORS requests"
    )

    # Sentiment Scheduler
    sentiment_scheduler_enabled: bool = Field(
        default=True,
        description="Run periodic sentiment collection in the background"
    )
    sentiment_interval_seconds: int = Field(
        default=120,
        description="Seconds between sentiment collection runs"
    )
    sentiment_dedupe_hours: int = Field(
        default=24,
        description="Window in which a source identifier is not stored twice"
    )
    default_monitored_companies: Annotated[List[str], NoDecode] = Field(
        default=["Tesla", "Ford", "Apple", "Microsoft", "Amazon", "Google", "Meta", "Netflix"],
        description="Companies seeded into monitoring when the table is empty"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    log_json: bool = Field(
        default=True,
        description="Emit logs as single-line JSON"
    )

    @field_validator("cors_origins", "default_monitored_companies", mode="before")
    @classmethod
    def parse_list_fields(cls, v: str | List[str]) -> List[str]:
        return _parse_list(v)

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """JWT signing key: at least 32 characters and not a sample value."""
        key = (v or "").strip()
        if key in PLACEHOLDER_SECRET_KEYS:
            raise ValueError("SECRET_KEY is still a placeholder; set a random value (openssl rand -hex 32)")
        if len(key) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(
                f"SECRET_KEY needs at least {MIN_SECRET_KEY_LENGTH} characters, got {len(key)}"
            )
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only the async-capable SQLite and PostgreSQL drivers are supported."""
        scheme = (v or "").split(":", 1)[0]
        if scheme not in DATABASE_SCHEMES or "//" not in v:
            raise ValueError(
                f"Unsupported DATABASE_URL scheme '{scheme}'; use one of {', '.join(DATABASE_SCHEMES)}"
            )
        return v

    @field_validator("tavily_base_url", "llm_base_url", "news_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()
