"""Providers for the Postgres adapter, search index and scoring config store."""

from __future__ import annotations

import asyncio
from typing import Optional

from candidate_search.core.config import get_settings
from candidate_search.domain.interfaces import IScoringConfigStore, ISearchIndexRepository
from candidate_search.infrastructure.persistence.postgres_adapter import PostgresAdapter
from candidate_search.infrastructure.persistence.scoring_config_repository import (
    InMemoryScoringConfigStore,
    PostgresScoringConfigStore,
)
from candidate_search.infrastructure.persistence.search_index_repository import (
    InMemorySearchIndexRepository,
    PostgresSearchIndexRepository,
)

_postgres_adapter: Optional[PostgresAdapter] = None
_index_repository: Optional[ISearchIndexRepository] = None
_config_store: Optional[IScoringConfigStore] = None

_adapter_lock = asyncio.Lock()
_index_lock = asyncio.Lock()
_config_lock = asyncio.Lock()


async def get_postgres_adapter() -> PostgresAdapter:
    global _postgres_adapter

    if _postgres_adapter is not None:
        return _postgres_adapter

    async with _adapter_lock:
        if _postgres_adapter is not None:
            return _postgres_adapter

        _postgres_adapter = PostgresAdapter(settings=get_settings())
        return _postgres_adapter


async def get_search_index_repository() -> ISearchIndexRepository:
    """Return singleton search index repository (Postgres unless in-memory is configured)."""
    global _index_repository

    if _index_repository is not None:
        return _index_repository

    async with _index_lock:
        if _index_repository is not None:
            return _index_repository

        if get_settings().USE_IN_MEMORY_BACKENDS:
            _index_repository = InMemorySearchIndexRepository()
        else:
            _index_repository = PostgresSearchIndexRepository(await get_postgres_adapter())
        return _index_repository


async def get_scoring_config_store() -> IScoringConfigStore:
    """Return singleton scoring configuration store."""
    global _config_store

    if _config_store is not None:
        return _config_store

    async with _config_lock:
        if _config_store is not None:
            return _config_store

        if get_settings().USE_IN_MEMORY_BACKENDS:
            _config_store = InMemoryScoringConfigStore()
        else:
            _config_store = PostgresScoringConfigStore(await get_postgres_adapter())
        return _config_store


async def reset_persistence() -> None:
    global _postgres_adapter, _index_repository, _config_store

    async with _adapter_lock:
        if _postgres_adapter is not None:
            await _postgres_adapter.close()
        _postgres_adapter = None
    async with _index_lock:
        _index_repository = None
    async with _config_lock:
        _config_store = None
