"""Pure domain representation of search requests, results and responses."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence

from candidate_search.core.config import GLOBAL_TENANT_ID
from candidate_search.domain.entities.candidate import CandidateSnapshot
from candidate_search.domain.exceptions import ValidationError


class SearchMode(str, Enum):
    """Search strategy selector."""

    NAME_MATCH = "nameMatch"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: "str | SearchMode | None") -> "SearchMode":
        """Parse a mode case-insensitively; ``None`` means auto."""
        if value is None:
            return cls.AUTO
        if isinstance(value, SearchMode):
            return value
        normalized = str(value).strip().lower()
        for mode in cls:
            if mode.value.lower() == normalized:
                return mode
        raise ValidationError(f"Unknown search mode: {value!r}")

    @property
    def is_concrete(self) -> bool:
        return self is not SearchMode.AUTO


class SponsorshipFilter(str, Enum):
    """Post-search predicate on the candidate's sponsorship flag."""

    ALL = "all"
    YES = "yes"
    NO = "no"

    @classmethod
    def parse(cls, value: "str | SponsorshipFilter | None") -> Optional["SponsorshipFilter"]:
        if value is None:
            return None
        if isinstance(value, SponsorshipFilter):
            return value
        normalized = str(value).strip().lower()
        if not normalized:
            return None
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValidationError(f"Unknown sponsorship filter: {value!r}") from exc

    @property
    def is_restrictive(self) -> bool:
        return self is not SponsorshipFilter.ALL

    def matches(self, needs_sponsorship: bool) -> bool:
        if self is SponsorshipFilter.YES:
            return needs_sponsorship
        if self is SponsorshipFilter.NO:
            return not needs_sponsorship
        return True


@dataclass(frozen=True)
class SearchRequest:
    """A single search request.

    Validation happens on construction so every layer below the API can rely
    on page >= 1, page_size > 0 and a known mode.
    """

    term: str
    page: int = 1
    page_size: int = 20
    mode: SearchMode = SearchMode.AUTO
    sponsorship_filter: Optional[SponsorshipFilter] = None
    tenant_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.term is None:
            object.__setattr__(self, "term", "")
        if not isinstance(self.page, int) or self.page < 1:
            raise ValidationError("page must be an integer >= 1")
        if not isinstance(self.page_size, int) or self.page_size < 1:
            raise ValidationError("page_size must be an integer > 0")
        object.__setattr__(self, "mode", SearchMode.parse(self.mode))
        object.__setattr__(
            self, "sponsorship_filter", SponsorshipFilter.parse(self.sponsorship_filter)
        )

    @property
    def effective_tenant_id(self) -> str:
        return self.tenant_id or GLOBAL_TENANT_ID

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def has_restrictive_filter(self) -> bool:
        return self.sponsorship_filter is not None and self.sponsorship_filter.is_restrictive

    def with_mode(self, mode: SearchMode) -> "SearchRequest":
        """Copy of this request with a concrete mode, all other fields kept."""
        return replace(self, mode=mode)


@dataclass(frozen=True)
class SearchResult:
    """One ranked candidate."""

    candidate: CandidateSnapshot
    score: float
    strategy: str
    matched_terms: List[str] = field(default_factory=list)

    @property
    def candidate_id(self) -> str:
        return self.candidate.candidate_id

    @property
    def ranking_key(self) -> tuple:
        """Score descending, then last name, first name, candidate id."""
        return (-self.score,) + self.candidate.sort_key


def rank_results(results: Sequence[SearchResult]) -> List[SearchResult]:
    return sorted(results, key=lambda result: result.ranking_key)


def apply_sponsorship_filter(
    results: Sequence[SearchResult],
    sponsorship_filter: Optional[SponsorshipFilter],
) -> List[SearchResult]:
    """Keep results whose sponsorship flag satisfies the filter."""
    if sponsorship_filter is None or not sponsorship_filter.is_restrictive:
        return list(results)
    return [
        result for result in results
        if sponsorship_filter.matches(result.candidate.needs_sponsorship)
    ]


@dataclass
class SearchResponse:
    """A page of ranked results with pagination metadata."""

    results: List[SearchResult]
    total_count: int
    page: int
    page_size: int
    strategy: str
    resolved_mode: SearchMode
    total_is_upper_bound: bool = False

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0 or self.total_count <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @classmethod
    def for_request(
        cls,
        request: SearchRequest,
        results: List[SearchResult],
        total_count: int,
        strategy: str,
    ) -> "SearchResponse":
        """Build a response, flagging the total as an upper bound when a
        restrictive sponsorship filter was applied after counting."""
        return cls(
            results=results,
            total_count=total_count,
            page=request.page,
            page_size=request.page_size,
            strategy=strategy,
            resolved_mode=request.mode,
            total_is_upper_bound=request.has_restrictive_filter,
        )

    @classmethod
    def empty(cls, request: SearchRequest, strategy: str) -> "SearchResponse":
        return cls.for_request(request, [], 0, strategy)


__all__ = [
    "SearchMode",
    "SponsorshipFilter",
    "SearchRequest",
    "SearchResult",
    "SearchResponse",
    "rank_results",
    "apply_sponsorship_filter",
]
