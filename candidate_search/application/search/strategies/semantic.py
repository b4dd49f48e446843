"""
Semantic Strategy

Embeds the query and ranks candidates by cosine similarity, discarding those
below the tenant's similarity threshold.
"""

from __future__ import annotations

import structlog

from candidate_search.application.scoring_config import ScoringConfigProvider
from candidate_search.application.search.strategies.base import (
    SearchStrategy,
    clamp_score,
    gather_or_cancel,
)
from candidate_search.domain.entities.search import (
    SearchMode,
    SearchRequest,
    SearchResponse,
    SearchResult,
    apply_sponsorship_filter,
    rank_results,
)
from candidate_search.domain.interfaces import IEmbeddingService, ISearchIndexRepository

logger = structlog.get_logger(__name__)


class SemanticStrategy(SearchStrategy):
    """Vector similarity search over candidate embeddings."""

    name = "semantic"
    default_modes = (SearchMode.SEMANTIC,)
    default_priority = 2

    def __init__(
        self,
        index_repository: ISearchIndexRepository,
        embedding_service: IEmbeddingService,
        scoring_config_provider: ScoringConfigProvider,
    ):
        self.index_repository = index_repository
        self.embedding_service = embedding_service
        self.scoring_config_provider = scoring_config_provider

    async def search(self, request: SearchRequest) -> SearchResponse:
        if not request.term.strip():
            return SearchResponse.empty(request, self.name)

        config = await self.scoring_config_provider.get_scoring_config(
            request.effective_tenant_id
        )
        embedding = await self.embedding_service.embed_query(request.term)

        matches, total_count = await gather_or_cancel(
            self.index_repository.search_vector(
                embedding,
                threshold=config.similarity_threshold,
                limit=request.page_size,
                offset=request.offset,
            ),
            self.index_repository.count_vector(embedding, config.similarity_threshold),
        )

        results = rank_results([
            SearchResult(
                candidate=match.candidate,
                score=clamp_score(match.similarity),
                strategy=self.name,
            )
            for match in matches
        ])
        results = apply_sponsorship_filter(results, request.sponsorship_filter)

        logger.info(
            "Semantic search completed",
            tenant_id=config.tenant_id,
            threshold=config.similarity_threshold,
            page=request.page,
            returned=len(results),
            total_count=total_count,
        )
        return SearchResponse.for_request(request, results, total_count, self.name)


__all__ = ["SemanticStrategy"]
