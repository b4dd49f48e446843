"""
Result fusion for hybrid search.

Combines full-text rank and semantic similarity per candidate. The fusion tag
only changes how the two components are normalized and weighted; both inputs
are always the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from candidate_search.application.search.strategies.base import clamp_score
from candidate_search.domain.entities.candidate import CandidateSnapshot
from candidate_search.domain.entities.scoring import FusionStrategy, ScoringConfig
from candidate_search.domain.interfaces import TextMatch, VectorMatch

RRF_K = 60
TIERED_FULL_MATCH_FLOOR = 0.85
TIERED_PARTIAL_FACTOR = 0.8


@dataclass
class FusionCandidate:
    """Per-candidate inputs and output of a fusion pass."""

    candidate: CandidateSnapshot
    text_score: float = 0.0
    similarity: float = 0.0
    text_position: Optional[int] = None
    vector_position: Optional[int] = None
    matched_terms: List[str] = field(default_factory=list)
    score: float = 0.0

    @property
    def full_keyword_match(self) -> bool:
        # The text predicate is conjunctive, so any text hit matched every token.
        return self.text_position is not None

    @property
    def has_signal(self) -> bool:
        return self.text_score > 0.0 or self.similarity > 0.0


def _reciprocal_rank(position: Optional[int], k: int = RRF_K) -> float:
    """Rank-position score ``(k + 1) / (k + position)``, 1.0 at the top."""
    if position is None:
        return 0.0
    return (k + 1) / (k + position)


def _blend(config: ScoringConfig, similarity: float, text_score: float) -> float:
    total = config.semantic_weight * similarity + config.keyword_weight * text_score
    return total / max(1.0, config.weight_total)


def _weighted_sum(item: FusionCandidate, config: ScoringConfig) -> float:
    return _blend(config, item.similarity, item.text_score)


def _reciprocal_rank_fusion(item: FusionCandidate, config: ScoringConfig) -> float:
    return _blend(
        config,
        _reciprocal_rank(item.vector_position),
        _reciprocal_rank(item.text_position),
    )


def _all_or_nothing(item: FusionCandidate, config: ScoringConfig) -> float:
    if item.full_keyword_match:
        return 1.0
    return item.similarity


def _tiered(item: FusionCandidate, config: ScoringConfig) -> float:
    if item.full_keyword_match:
        return max(TIERED_FULL_MATCH_FLOOR, _blend(config, item.similarity, item.text_score))
    return TIERED_PARTIAL_FACTOR * item.similarity


_FORMULAS: Dict[FusionStrategy, Callable[[FusionCandidate, ScoringConfig], float]] = {
    FusionStrategy.WEIGHTED_SUM: _weighted_sum,
    FusionStrategy.RECIPROCAL_RANK: _reciprocal_rank_fusion,
    FusionStrategy.ALL_OR_NOTHING: _all_or_nothing,
    FusionStrategy.TIERED: _tiered,
}


def fuse(
    text_matches: Sequence[TextMatch],
    vector_matches: Sequence[VectorMatch],
    config: ScoringConfig,
) -> List[FusionCandidate]:
    """Fuse both result lists into scored candidates.

    Text ranks are max-normalized into [0, 1]. Positions are 1-based in the
    order each list was returned. Candidates with zero on both components are
    excluded. The output is unsorted.
    """
    max_rank = max((match.rank for match in text_matches), default=0.0)
    combined: Dict[str, FusionCandidate] = {}

    for position, match in enumerate(text_matches, start=1):
        item = combined.setdefault(
            match.candidate.candidate_id, FusionCandidate(candidate=match.candidate)
        )
        item.text_score = clamp_score(match.rank / max_rank) if max_rank > 0 else 0.0
        item.text_position = position
        item.matched_terms = list(match.matched_terms)

    for position, match in enumerate(vector_matches, start=1):
        item = combined.setdefault(
            match.candidate.candidate_id, FusionCandidate(candidate=match.candidate)
        )
        item.similarity = clamp_score(match.similarity)
        item.vector_position = position

    formula = _FORMULAS[config.fusion_strategy]
    fused = []
    for item in combined.values():
        if not item.has_signal:
            continue
        item.score = clamp_score(formula(item, config))
        fused.append(item)
    return fused


__all__ = ["FusionCandidate", "fuse", "RRF_K"]
