"""
Configuration management for the candidate search service.

This module provides centralized configuration management supporting:
- Environment variables and .env files
- OpenAI-compatible embedding providers (direct or Azure)
- Global scoring defaults used when a tenant has no stored configuration
- Indexing worker and retry tuning
"""

from functools import lru_cache
from typing import Any, Dict, Optional

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


GLOBAL_TENANT_ID = "GLOBAL"


class Settings(BaseSettings):
    """
    Application settings with defaults suitable for local development.
    """

    # Environment Detection
    ENVIRONMENT: str = Field(
        default="local",
        description="Environment (local/development/staging/production)"
    )
    DEBUG: bool = Field(
        default=False,
        description="Debug mode"
    )

    # Core Application Settings
    APP_NAME: str = Field(
        default="Candidate Search Service",
        description="Application name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FORMAT: str = Field(
        default="console",
        description="Log format (json/console)"
    )

    # PostgreSQL Configuration
    POSTGRES_URL: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection URL"
    )
    POSTGRES_HOST: str = Field(
        default="localhost",
        description="PostgreSQL host"
    )
    POSTGRES_PORT: int = Field(
        default=5432,
        description="PostgreSQL port"
    )
    POSTGRES_USER: str = Field(
        default="recruiter",
        description="PostgreSQL user"
    )
    POSTGRES_PASSWORD: str = Field(
        default="recruiter",
        description="PostgreSQL password"
    )
    POSTGRES_DB: str = Field(
        default="recruiter",
        description="PostgreSQL database name"
    )
    POSTGRES_POOL_SIZE: int = Field(
        default=10,
        description="Connection pool size"
    )

    # Queue Configuration (Redis or Memory)
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis URL for the durable indexing queue (memory queue if not set)"
    )
    USE_IN_MEMORY_BACKENDS: bool = Field(
        default=False,
        description="Use in-memory index/config stores instead of PostgreSQL"
    )

    # OpenAI Configuration
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="OpenAI API key (direct or Azure)"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL (can be an Azure endpoint)"
    )
    OPENAI_EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model name"
    )
    OPENAI_API_VERSION: Optional[str] = Field(
        default=None,
        description="API version (for Azure OpenAI compatibility)"
    )
    REQUEST_TIMEOUT: int = Field(
        default=30,
        description="Embedding request timeout in seconds"
    )

    # Embedding Configuration
    EMBEDDING_DIMENSION: int = Field(
        default=1536,
        description="Embedding vector dimension"
    )
    EMBEDDING_CACHE_TTL: int = Field(
        default=3600,
        description="Query embedding cache TTL in seconds"
    )
    EMBEDDING_CACHE_MAX_SIZE: int = Field(
        default=10000,
        description="Maximum cached query embeddings"
    )

    # Search Configuration
    SEARCH_DEFAULT_SEMANTIC_WEIGHT: float = Field(
        default=0.6,
        description="Global default semantic weight for hybrid fusion"
    )
    SEARCH_DEFAULT_KEYWORD_WEIGHT: float = Field(
        default=0.4,
        description="Global default keyword weight for hybrid fusion"
    )
    SEARCH_DEFAULT_SIMILARITY_THRESHOLD: float = Field(
        default=0.3,
        description="Global default minimum cosine similarity"
    )
    SEARCH_DEFAULT_FUSION_STRATEGY: str = Field(
        default="weighted_sum",
        description="Global default fusion strategy tag"
    )
    SEARCH_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Per-request search timeout in seconds"
    )
    SEARCH_MAX_PAGE_SIZE: int = Field(
        default=100,
        description="Maximum page size accepted by the API"
    )

    # Indexing Pipeline Configuration
    INDEXING_QUEUE_NAME: str = Field(
        default="candidate-indexing",
        description="Queue carrying indexing jobs"
    )
    INDEXING_WORKERS_ENABLED: bool = Field(
        default=True,
        description="Run the indexing worker pool inside the API process"
    )
    INDEXING_WORKER_COUNT: int = Field(
        default=4,
        description="Number of concurrent indexing workers"
    )
    INDEXING_MAX_ATTEMPTS: int = Field(
        default=4,
        description="Attempts per indexing job before it is marked failed"
    )
    INDEXING_BACKOFF_BASE_SECONDS: float = Field(
        default=2.0,
        description="Base delay for exponential retry backoff"
    )
    INDEXING_BACKOFF_MAX_SECONDS: float = Field(
        default=60.0,
        description="Upper bound for a single retry delay"
    )
    INDEXING_POLL_INTERVAL_SECONDS: float = Field(
        default=1.0,
        description="Idle wait between queue polls"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment name."""
        v = v.lower()
        if v not in ('local', 'development', 'staging', 'production'):
            logger.warning(f"Unknown environment: {v}, defaulting to 'local'")
            return 'local'
        return v

    @field_validator('SEARCH_DEFAULT_SEMANTIC_WEIGHT', 'SEARCH_DEFAULT_KEYWORD_WEIGHT')
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Search weights must be non-negative")
        return v

    @field_validator('SEARCH_DEFAULT_SIMILARITY_THRESHOLD')
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Similarity threshold must be between 0 and 1")
        return v

    @field_validator('INDEXING_MAX_ATTEMPTS', 'INDEXING_WORKER_COUNT')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == 'production'

    def get_postgres_url(self) -> str:
        """Get PostgreSQL connection URL."""
        if self.POSTGRES_URL:
            return self.POSTGRES_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    def is_openai_configured(self) -> bool:
        """Check if an embedding provider is configured."""
        return bool(self.OPENAI_API_KEY)

    def is_semantic_search_enabled(self) -> bool:
        """Semantic and hybrid strategies need an embedding provider."""
        return self.is_openai_configured()

    def get_openai_config(self) -> Dict[str, Any]:
        """Get OpenAI client configuration."""
        if not self.OPENAI_API_KEY:
            raise ValueError("No OpenAI configuration found. Set OPENAI_API_KEY.")

        config = {
            "api_key": self.OPENAI_API_KEY,
            "base_url": self.OPENAI_BASE_URL,
            "embedding_model": self.OPENAI_EMBEDDING_MODEL,
            "timeout": self.REQUEST_TIMEOUT,
            "provider": "openai",
        }
        if self.OPENAI_API_VERSION:
            config["api_version"] = self.OPENAI_API_VERSION
            config["provider"] = "azure"
        return config


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and the .env file and logs the
    resulting configuration state.
    """
    settings = Settings()

    logger.info(
        "Configuration ready",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        redis_configured=bool(settings.REDIS_URL),
        openai_configured=settings.is_openai_configured(),
        semantic_search_enabled=settings.is_semantic_search_enabled(),
        in_memory_backends=settings.USE_IN_MEMORY_BACKENDS,
    )

    return settings
