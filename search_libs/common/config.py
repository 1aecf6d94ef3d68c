"""Configuration management for search components.

This module centralizes environment-driven configuration for the hybrid
search engine and the provider clients it consumes. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover commonly used environment variables
- Field names match their environment variables (case-insensitive)

Usage
- Inject the appropriate config in your entrypoint:
  ``config = SearchConfig()``
- Or select dynamically: ``config = get_config("search")``
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class shared by search components.

    Parameters are read from the process environment with the given names.
    Defaults keep local development convenient while still being explicit.

    Notes
    - Add new shared settings here so downstream configs inherit them.
    - Prefer declaring a field over reading ``os.environ`` directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    search_env: str = Field(default="local", description="Deployment environment name")

    # Index backend
    search_redis_url: str = Field(default="redis://localhost:6379", description="RediSearch connection URL")

    # Logging
    search_log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING or ERROR")
    search_log_format: str = Field(default="json", description="json for machines, console for humans")

    # Providers
    openai_api_key: Optional[str] = Field(default=None, description="API key for OpenAI providers")
    openai_base_url: Optional[str] = Field(default=None, description="Override for OpenAI-compatible endpoints")
    search_provider_timeout: float = Field(default=30.0, description="Per-call provider timeout in seconds")


class SearchConfig(BaseConfig):
    """Configuration for the hybrid search engine.

    Adds index names, provider selection, and ranking knobs consumed by the
    search managers.
    """

    search_docs_index: str = Field(default="idx:docs")
    search_chunks_index: str = Field(default="idx:chunks")
    search_urls_index: str = Field(default="idx:urls")

    search_embedding_backend: str = Field(default="openai", description="openai or service")
    search_embedding_model: str = Field(default="text-embedding-3-small")
    search_embedding_service_url: str = Field(default="http://localhost:9006")
    search_completion_model: str = Field(default="gpt-4o-mini")

    search_timeout_seconds: Optional[float] = Field(
        default=None, description="Caller-level timeout wrapping a whole search call"
    )
    search_rerank_content_chars: int = Field(default=200, ge=1)


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific component.

    Parameters
    - service_name: Literal name: ``search`` or anything else for the base.

    Returns
    - A concrete ``BaseConfig`` subclass pre-wired to read the right env vars.
    """
    config_map = {
        "search": SearchConfig,
    }

    # Default to ``BaseConfig`` to avoid surprising crashes for unknown names.
    config_class = config_map.get(service_name, BaseConfig)
    return config_class()
