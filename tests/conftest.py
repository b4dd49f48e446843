"""Pytest fixtures for provider-based architecture."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest

from candidate_search.core.config import Settings, get_settings
from candidate_search.infrastructure.persistence.scoring_config_repository import (
    InMemoryScoringConfigStore,
)
from candidate_search.infrastructure.persistence.search_index_repository import (
    InMemorySearchIndexRepository,
)
from candidate_search.infrastructure.providers import reset_all_providers
from tests.mocks.mock_services import (
    HashingEmbeddingService,
    KeywordSkillExtractor,
    KnownValueSanitizer,
)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch) -> Iterator[Settings]:
    """Run every test against in-memory backends with no external providers."""
    monkeypatch.setenv("ENVIRONMENT", "local")
    monkeypatch.setenv("USE_IN_MEMORY_BACKENDS", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("INDEXING_WORKERS_ENABLED", "false")
    monkeypatch.setenv("SEARCH_TIMEOUT_SECONDS", "5")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
async def reset_provider_state(test_settings) -> AsyncIterator[None]:
    """Ensure each test starts with clean provider singletons."""
    await reset_all_providers()
    yield
    await reset_all_providers()


@pytest.fixture
def embedding_service() -> HashingEmbeddingService:
    return HashingEmbeddingService()


@pytest.fixture
def skill_extractor() -> KeywordSkillExtractor:
    return KeywordSkillExtractor()


@pytest.fixture
def pii_sanitizer() -> KnownValueSanitizer:
    return KnownValueSanitizer()


@pytest.fixture
def index_repository() -> InMemorySearchIndexRepository:
    return InMemorySearchIndexRepository()


@pytest.fixture
def config_store() -> InMemoryScoringConfigStore:
    return InMemoryScoringConfigStore()
