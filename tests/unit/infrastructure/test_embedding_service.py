"""
Tests for the OpenAI embedding service and query cache.

Testing:
- Document embeddings and dimension checks
- Provider errors surfaced as EmbeddingGenerationError
- Query embedding caching by normalized text
- Cache statistics and eviction
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from candidate_search.core.config import Settings
from candidate_search.domain.exceptions import EmbeddingGenerationError
from candidate_search.infrastructure.ai.embedding_cache import EmbeddingCache
from candidate_search.infrastructure.ai.embedding_service import OpenAIEmbeddingService


def _embedding_response(vector):
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


@pytest.fixture
def openai_settings():
    return Settings(OPENAI_API_KEY="sk-test", EMBEDDING_DIMENSION=3)


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1, 0.2, 0.3]))
    return client


@pytest.fixture
def service(openai_settings, mock_client):
    return OpenAIEmbeddingService(settings=openai_settings, client=mock_client)


class TestOpenAIEmbeddingService:
    """Test embedding generation against a mocked client."""

    @pytest.mark.asyncio
    async def test_generate_embedding(self, service, mock_client):
        embedding = await service.generate_embedding("Senior Python developer")

        assert embedding == [0.1, 0.2, 0.3]
        mock_client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small",
            input="Senior Python developer",
        )

    @pytest.mark.asyncio
    async def test_empty_text_is_rejected(self, service, mock_client):
        with pytest.raises(EmbeddingGenerationError):
            await service.generate_embedding("   ")
        mock_client.embeddings.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, service, mock_client):
        mock_client.embeddings.create.return_value = _embedding_response([0.1, 0.2])

        with pytest.raises(EmbeddingGenerationError, match="Expected 3 dimensions"):
            await service.generate_embedding("python")

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self, service, mock_client):
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        mock_client.embeddings.create.side_effect = APIConnectionError(request=request)

        with pytest.raises(EmbeddingGenerationError) as exc_info:
            await service.generate_embedding("python")

        assert isinstance(exc_info.value.__cause__, APIConnectionError)
        health = await service.check_health()
        assert health["metrics"]["errors"] == 1

    @pytest.mark.asyncio
    async def test_query_embeddings_are_cached_by_normalized_text(self, service, mock_client):
        first = await service.embed_query("Python  Developer")
        second = await service.embed_query("python developer")

        assert first == second
        mock_client.embeddings.create.assert_awaited_once()
        assert service.cache.get_stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_document_embeddings_are_not_cached(self, service, mock_client):
        await service.generate_embedding("python")
        await service.generate_embedding("python")

        assert mock_client.embeddings.create.await_count == 2
        assert service.cache.get_stats()["sets"] == 0

    def test_azure_configuration(self):
        settings = Settings(
            OPENAI_API_KEY="azure-key",
            OPENAI_BASE_URL="https://example.openai.azure.com/openai/deployments/embed",
            OPENAI_API_VERSION="2024-02-01",
        )

        service = OpenAIEmbeddingService(settings=settings)

        assert service._config["provider"] == "azure"
        assert str(service.client.base_url).startswith("https://example.openai.azure.com")


class TestEmbeddingCache:
    """Test the TTL cache."""

    @pytest.mark.asyncio
    async def test_hit_and_miss_stats(self):
        cache = EmbeddingCache(max_size=10, ttl_seconds=60)

        assert await cache.get("missing") is None
        await cache.set("key", [1.0])
        assert await cache.get("key") == [1.0]

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    @pytest.mark.asyncio
    async def test_oldest_entry_is_evicted(self):
        cache = EmbeddingCache(max_size=2, ttl_seconds=60)

        await cache.set("a", [1.0])
        await cache.set("b", [2.0])
        await cache.set("c", [3.0])

        assert await cache.get("a") is None
        assert await cache.get("c") == [3.0]
        assert cache.get_stats()["evictions"] == 1

    @pytest.mark.asyncio
    async def test_expired_entries_miss(self):
        cache = EmbeddingCache(max_size=2, ttl_seconds=-1)

        await cache.set("a", [1.0])

        assert await cache.get("a") is None

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = EmbeddingCache()
        await cache.set("a", [1.0])

        assert await cache.clear() == 1
        assert cache.get_stats()["cache_size"] == 0

    @pytest.mark.asyncio
    async def test_reads_refresh_recency_but_not_expiry(self):
        now = [0.0]
        cache = EmbeddingCache(max_size=2, ttl_seconds=10, clock=lambda: now[0])

        await cache.set("a", [1.0])
        await cache.set("b", [2.0])
        assert await cache.get("a") == [1.0]
        await cache.set("c", [3.0])

        assert await cache.get("b") is None
        now[0] = 10.0
        assert await cache.get("a") is None
        assert cache.get_stats()["expired"] == 1
