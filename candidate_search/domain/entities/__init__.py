"""Domain entities exposed for application layer use."""

from .candidate import CandidateRecord, CandidateSnapshot
from .indexing import IndexingJob, IndexingJobState, SearchIndexEntry, TextWeight
from .scoring import FusionStrategy, ScoringConfig
from .search import (
    SearchMode,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SponsorshipFilter,
    apply_sponsorship_filter,
    rank_results,
)

__all__ = [
    # Candidate
    "CandidateRecord",
    "CandidateSnapshot",
    # Indexing
    "IndexingJob",
    "IndexingJobState",
    "SearchIndexEntry",
    "TextWeight",
    # Scoring
    "FusionStrategy",
    "ScoringConfig",
    # Search
    "SearchMode",
    "SearchRequest",
    "SearchResponse",
    "SearchResult",
    "SponsorshipFilter",
    "apply_sponsorship_filter",
    "rank_results",
]
