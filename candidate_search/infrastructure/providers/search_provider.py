"""Providers for the scoring configuration provider and the search dispatcher."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import structlog

from candidate_search.application.scoring_config import ScoringConfigProvider
from candidate_search.application.search.dispatcher import SearchDispatcher, StrategyRegistration
from candidate_search.application.search.query_classifier import QueryClassifier
from candidate_search.application.search.strategies.hybrid import HybridStrategy
from candidate_search.application.search.strategies.name_match import NameMatchStrategy
from candidate_search.application.search.strategies.semantic import SemanticStrategy
from candidate_search.core.config import get_settings
from candidate_search.infrastructure.providers.ai_provider import get_embedding_service
from candidate_search.infrastructure.providers.persistence_provider import (
    get_scoring_config_store,
    get_search_index_repository,
)

logger = structlog.get_logger(__name__)

_scoring_config_provider: Optional[ScoringConfigProvider] = None
_search_dispatcher: Optional[SearchDispatcher] = None

_config_lock = asyncio.Lock()
_dispatcher_lock = asyncio.Lock()


async def get_scoring_config_provider() -> ScoringConfigProvider:
    """Return singleton scoring configuration provider."""
    global _scoring_config_provider

    if _scoring_config_provider is not None:
        return _scoring_config_provider

    async with _config_lock:
        if _scoring_config_provider is not None:
            return _scoring_config_provider

        _scoring_config_provider = ScoringConfigProvider(
            store=await get_scoring_config_store(),
            settings=get_settings(),
        )
        return _scoring_config_provider


async def get_search_dispatcher() -> SearchDispatcher:
    """Return singleton dispatcher with its strategy registry built once."""
    global _search_dispatcher

    if _search_dispatcher is not None:
        return _search_dispatcher

    async with _dispatcher_lock:
        if _search_dispatcher is not None:
            return _search_dispatcher

        settings = get_settings()
        index_repository = await get_search_index_repository()
        embedding_service = await get_embedding_service()

        registrations: List[StrategyRegistration] = [
            StrategyRegistration.of(NameMatchStrategy(index_repository)),
        ]
        if embedding_service is not None:
            scoring_config_provider = await get_scoring_config_provider()
            registrations.append(StrategyRegistration.of(
                SemanticStrategy(index_repository, embedding_service, scoring_config_provider)
            ))
            registrations.append(StrategyRegistration.of(
                HybridStrategy(index_repository, embedding_service, scoring_config_provider)
            ))

        _search_dispatcher = SearchDispatcher(
            registrations=registrations,
            classifier=QueryClassifier(),
            timeout_seconds=settings.SEARCH_TIMEOUT_SECONDS,
        )
        logger.info(
            "Search dispatcher ready",
            strategies=[registration.name for registration in registrations],
        )
        return _search_dispatcher


async def reset_search_services() -> None:
    global _scoring_config_provider, _search_dispatcher
    async with _dispatcher_lock:
        _search_dispatcher = None
    async with _config_lock:
        _scoring_config_provider = None
