"""Application settings loaded from environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_postgres_uri_from_env() -> str:
    """Build Postgres URI from component env vars if POSTGRES_URI is not set.

    Keeps a single source of truth for DB name via .env variables
    (POSTGRES_USER/PASSWORD/HOST/PORT/DB). If POSTGRES_URI is provided, it
    will override this default.
    """
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    host = os.getenv("POSTGRES_HOST", "postgres")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("POSTGRES_DB", "mindvault")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{db}"


def _default_prompts_path() -> Path:
    # libs/core/settings.py -> project_root/config/prompts.yaml
    return Path(__file__).resolve().parents[2] / "config" / "prompts.yaml"


class Settings(BaseSettings):
    """Runtime settings for the application."""

    replicate_api_token: str = Field(default="")
    # Oracle (LLM) configuration
    llm_model: str = Field(default="openai/gpt-5-nano")
    llm_timeout: float = Field(default=8.0)
    llm_log_payloads: bool = Field(default=False)
    llm_max_completion_tokens: int = Field(default=1024)
    prompts_path: Path = Field(default_factory=_default_prompts_path)
    # Embeddings configuration
    embeddings_model: str = Field(default="nomic-ai/nomic-embed-text-v1.5")
    embedding_dim: int = Field(default=768)
    embedding_timeout: float = Field(default=8.0)
    # Optional direct URI override (env: POSTGRES_URI). If not set, a default
    # is assembled from POSTGRES_USER/PASSWORD/HOST/PORT/DB.
    postgres_uri: str = Field(default_factory=_default_postgres_uri_from_env)
    # HMAC secret used to verify owner tokens on the API
    auth_secret: str = Field(default="")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    # Search tuning
    search_candidate_cap: int = Field(default=1000)
    search_min_relevance: float = Field(default=0.1)
    search_default_limit: int = Field(default=20)
    log_level: str = Field(default="INFO")
    service_name: str = Field(default="mindvault-api")
    environment: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Be lenient with env var names (e.g., POSTGRES_URI vs postgres_uri)
        case_sensitive=False,
        # Allow environment variables that don't have a matching field.
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return application settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
