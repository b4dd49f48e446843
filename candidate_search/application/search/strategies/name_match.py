"""
Name-Match Strategy

Ranked prefix search over the full-text index:
- Each whitespace token of the term becomes a prefix unit, units are AND-ed
- Scores come from the engine's native rank, already in [0, 1)
- Sponsorship filtering is applied to the fetched page after ranking; the
  total count ignores it and is therefore reported as an upper bound
"""

from __future__ import annotations

import structlog

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
from candidate_search.domain.interfaces import ISearchIndexRepository
from candidate_search.domain.value_objects import PrefixQuery

logger = structlog.get_logger(__name__)


class NameMatchStrategy(SearchStrategy):
    """Exact and prefix name lookup against the full-text index."""

    name = "name_match"
    default_modes = (SearchMode.NAME_MATCH,)
    default_priority = 1

    def __init__(self, index_repository: ISearchIndexRepository):
        self.index_repository = index_repository

    async def search(self, request: SearchRequest) -> SearchResponse:
        query = PrefixQuery.from_term(request.term)
        if query.is_empty:
            logger.debug("Name match skipped for empty term")
            return SearchResponse.empty(request, self.name)

        matches, total_count = await gather_or_cancel(
            self.index_repository.search_text(
                query,
                limit=request.page_size,
                offset=request.offset,
            ),
            self.index_repository.count_text(query),
        )

        results = rank_results([
            SearchResult(
                candidate=match.candidate,
                score=clamp_score(match.rank),
                strategy=self.name,
                matched_terms=list(match.matched_terms),
            )
            for match in matches
        ])
        results = apply_sponsorship_filter(results, request.sponsorship_filter)

        logger.info(
            "Name match search completed",
            tsquery=query.to_tsquery(),
            page=request.page,
            returned=len(results),
            total_count=total_count,
        )
        return SearchResponse.for_request(request, results, total_count, self.name)


__all__ = ["NameMatchStrategy"]
