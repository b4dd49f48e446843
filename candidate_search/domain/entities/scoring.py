"""Per-tenant scoring configuration for hybrid and semantic search."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from candidate_search.domain.exceptions import ValidationError


class FusionStrategy(str, Enum):
    """Named formulas for combining keyword rank and semantic similarity."""

    WEIGHTED_SUM = "weighted_sum"
    RECIPROCAL_RANK = "reciprocal_rank"
    ALL_OR_NOTHING = "all_or_nothing"
    TIERED = "tiered"

    @classmethod
    def parse(cls, value: "str | FusionStrategy") -> "FusionStrategy":
        if isinstance(value, FusionStrategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(strategy.value for strategy in cls)
            raise ValidationError(
                f"Unknown fusion strategy {value!r}; expected one of: {allowed}"
            ) from exc


# Keys used by the key/value configuration store.
SEMANTIC_WEIGHT_KEY = "search.semantic_weight"
KEYWORD_WEIGHT_KEY = "search.keyword_weight"
SIMILARITY_THRESHOLD_KEY = "search.similarity_threshold"
FUSION_STRATEGY_KEY = "search.fusion_strategy"

SCORING_KEYS = (
    SEMANTIC_WEIGHT_KEY,
    KEYWORD_WEIGHT_KEY,
    SIMILARITY_THRESHOLD_KEY,
    FUSION_STRATEGY_KEY,
)


@dataclass(frozen=True)
class ScoringConfig:
    """Resolved scoring configuration for one tenant."""

    tenant_id: str
    fusion_strategy: FusionStrategy
    semantic_weight: float
    keyword_weight: float
    similarity_threshold: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "fusion_strategy", FusionStrategy.parse(self.fusion_strategy))
        if not (self.semantic_weight >= 0 and self.keyword_weight >= 0):
            raise ValidationError("Scoring weights must be non-negative")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValidationError("similarity_threshold must be between 0 and 1")

    @property
    def weight_total(self) -> float:
        return self.semantic_weight + self.keyword_weight

    def to_store_values(self) -> dict:
        """Flatten into the key/value form persisted per tenant."""
        return {
            SEMANTIC_WEIGHT_KEY: repr(float(self.semantic_weight)),
            KEYWORD_WEIGHT_KEY: repr(float(self.keyword_weight)),
            SIMILARITY_THRESHOLD_KEY: repr(float(self.similarity_threshold)),
            FUSION_STRATEGY_KEY: self.fusion_strategy.value,
        }


__all__ = [
    "FusionStrategy",
    "ScoringConfig",
    "SCORING_KEYS",
    "SEMANTIC_WEIGHT_KEY",
    "KEYWORD_WEIGHT_KEY",
    "SIMILARITY_THRESHOLD_KEY",
    "FUSION_STRATEGY_KEY",
]
