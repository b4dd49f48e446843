"""
OpenAI Embedding Service

Embedding generation for indexing and search, supporting direct OpenAI and
Azure OpenAI endpoints through the unified SDK:
- Document embeddings for the indexing workers (never cached)
- Query embeddings cached by normalized text and model
- Provider errors surfaced as EmbeddingGenerationError so indexing retries them
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Optional

import structlog
from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI, RateLimitError

from candidate_search.core.config import Settings, get_settings
from candidate_search.domain.exceptions import EmbeddingGenerationError
from candidate_search.domain.interfaces import IEmbeddingService
from candidate_search.infrastructure.ai.embedding_cache import EmbeddingCache

logger = structlog.get_logger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAIEmbeddingService(IEmbeddingService):
    """Embedding service backed by ``AsyncOpenAI``."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
        cache: Optional[EmbeddingCache] = None,
    ):
        self.settings = settings or get_settings()
        self._config = self.settings.get_openai_config()
        self._client = client
        self.cache = cache or EmbeddingCache(
            max_size=self.settings.EMBEDDING_CACHE_MAX_SIZE,
            ttl_seconds=self.settings.EMBEDDING_CACHE_TTL,
        )
        self._metrics = {"embeddings": 0, "errors": 0}

    @property
    def model_name(self) -> str:
        return self._config["embedding_model"]

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI client"""
        if self._client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": self._config["api_key"],
                "timeout": self._config["timeout"],
                "max_retries": 0,
            }
            if self._config["provider"] == "azure":
                client_kwargs.update({
                    "base_url": self._config["base_url"],
                    "default_headers": {"api-version": self._config["api_version"]},
                })
            elif self._config["base_url"] and self._config["base_url"] != DEFAULT_OPENAI_BASE_URL:
                client_kwargs["base_url"] = self._config["base_url"]

            self._client = AsyncOpenAI(**client_kwargs)
            logger.info(
                "OpenAI client initialized",
                provider=self._config["provider"],
                embedding_model=self.model_name,
            )
        return self._client

    async def generate_embedding(self, text: str) -> List[float]:
        """Generate an embedding for document text.

        Raises:
            EmbeddingGenerationError: on empty input, provider failure or a
                vector of unexpected dimension.
        """
        if not text or not text.strip():
            raise EmbeddingGenerationError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(
                model=self.model_name,
                input=text,
            )
        except (APIConnectionError, APITimeoutError, RateLimitError, APIError) as e:
            self._metrics["errors"] += 1
            logger.error("Embedding request failed", model=self.model_name, error=str(e))
            raise EmbeddingGenerationError(f"Embedding generation failed: {e}") from e

        embedding = list(response.data[0].embedding)
        if len(embedding) != self.settings.EMBEDDING_DIMENSION:
            self._metrics["errors"] += 1
            raise EmbeddingGenerationError(
                f"Expected {self.settings.EMBEDDING_DIMENSION} dimensions, got {len(embedding)}"
            )

        self._metrics["embeddings"] += 1
        logger.debug("Generated embedding", model=self.model_name, dimensions=len(embedding))
        return embedding

    def _cache_key(self, text: str) -> str:
        normalized = " ".join(text.lower().split())
        digest = hashlib.sha256(f"{self.model_name}:{normalized}".encode("utf-8")).hexdigest()
        return f"query_embedding:{digest}"

    async def embed_query(self, text: str) -> List[float]:
        key = self._cache_key(text)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        embedding = await self.generate_embedding(text)
        await self.cache.set(key, embedding)
        return embedding

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "provider": self._config["provider"],
            "embedding_model": self.model_name,
            "metrics": dict(self._metrics),
            "cache": self.cache.get_stats(),
        }


__all__ = ["OpenAIEmbeddingService"]
