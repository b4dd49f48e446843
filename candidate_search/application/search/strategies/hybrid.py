"""
Hybrid Strategy

Runs the full-text prefix query and the semantic similarity query for the
whole candidate set, fuses both signals with the tenant's weights and fusion
strategy, then ranks and paginates in memory.
"""

from __future__ import annotations

from typing import List

import structlog

from candidate_search.application.scoring_config import ScoringConfigProvider
from candidate_search.application.search.fusion import fuse
from candidate_search.application.search.strategies.base import (
    SearchStrategy,
    gather_or_cancel,
    page_slice,
)
from candidate_search.domain.entities.search import (
    SearchMode,
    SearchRequest,
    SearchResponse,
    SearchResult,
    apply_sponsorship_filter,
    rank_results,
)
from candidate_search.domain.interfaces import (
    IEmbeddingService,
    ISearchIndexRepository,
    TextMatch,
)
from candidate_search.domain.value_objects import PrefixQuery

logger = structlog.get_logger(__name__)


class HybridStrategy(SearchStrategy):
    """Weighted fusion of name-match rank and semantic similarity."""

    name = "hybrid"
    default_modes = (SearchMode.HYBRID,)
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

    async def _text_matches(self, query: PrefixQuery) -> List[TextMatch]:
        if query.is_empty:
            return []
        return await self.index_repository.search_text(query, limit=None)

    async def search(self, request: SearchRequest) -> SearchResponse:
        if not request.term.strip():
            return SearchResponse.empty(request, self.name)

        query = PrefixQuery.from_term(request.term)
        config = await self.scoring_config_provider.get_scoring_config(
            request.effective_tenant_id
        )
        embedding = await self.embedding_service.embed_query(request.term)

        text_matches, vector_matches = await gather_or_cancel(
            self._text_matches(query),
            self.index_repository.search_vector(
                embedding,
                threshold=config.similarity_threshold,
                limit=None,
            ),
        )

        fused = fuse(text_matches, vector_matches, config)
        ranked = rank_results([
            SearchResult(
                candidate=item.candidate,
                score=item.score,
                strategy=self.name,
                matched_terms=item.matched_terms,
            )
            for item in fused
        ])
        page = apply_sponsorship_filter(page_slice(ranked, request), request.sponsorship_filter)

        logger.info(
            "Hybrid search completed",
            tenant_id=config.tenant_id,
            fusion_strategy=config.fusion_strategy.value,
            text_hits=len(text_matches),
            vector_hits=len(vector_matches),
            fused=len(ranked),
            returned=len(page),
        )
        return SearchResponse.for_request(request, page, len(ranked), self.name)


__all__ = ["HybridStrategy"]
