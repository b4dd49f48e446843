"""
API request/response DTOs.

These are HTTP-layer shapes only. Conversion to and from domain entities lives
here so routers stay thin; domain validation (page bounds, mode names, filter
values) is left to the domain constructors so that it maps to HTTP 400.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from candidate_search.domain.entities.candidate import CandidateRecord
from candidate_search.domain.entities.indexing import IndexingJob
from candidate_search.domain.entities.scoring import ScoringConfig
from candidate_search.domain.entities.search import (
    SearchRequest,
    SearchResponse,
    SearchResult,
)


class SearchRequestSchema(BaseModel):
    """Search request body for ``POST /api/v1/search``."""

    model_config = ConfigDict(populate_by_name=True)

    term: str = Field(default="", description="Free-text query")
    page: int = Field(default=1, description="1-based page number")
    page_size: int = Field(default=20, alias="pageSize", description="Results per page")
    mode: Optional[str] = Field(
        default="auto",
        description="nameMatch, semantic, hybrid or auto",
    )
    sponsorship_filter: Optional[str] = Field(
        default=None,
        alias="sponsorshipFilter",
        description="all, yes or no",
    )
    tenant_id: Optional[str] = Field(
        default=None,
        alias="tenantId",
        description="Tenant whose scoring configuration applies",
    )

    def to_domain(self) -> SearchRequest:
        return SearchRequest(
            term=self.term,
            page=self.page,
            page_size=self.page_size,
            mode=self.mode,
            sponsorship_filter=self.sponsorship_filter,
            tenant_id=self.tenant_id,
        )


class SearchResultSchema(BaseModel):
    candidate_id: str
    candidate_code: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    current_title: Optional[str] = None
    requisition_name: Optional[str] = None
    current_status: str = "New"
    total_years_experience: Optional[int] = None
    needs_sponsorship: bool = False
    is_authorized_to_work: bool = False
    score: float = Field(ge=0.0, le=1.0)
    matched_terms: List[str] = Field(default_factory=list)
    strategy: str

    @classmethod
    def from_domain(cls, result: SearchResult) -> "SearchResultSchema":
        candidate = result.candidate
        return cls(
            candidate_id=candidate.candidate_id,
            candidate_code=candidate.candidate_code,
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            full_name=candidate.full_name,
            current_title=candidate.current_title,
            requisition_name=candidate.requisition_name,
            current_status=candidate.current_status,
            total_years_experience=candidate.total_years_experience,
            needs_sponsorship=candidate.needs_sponsorship,
            is_authorized_to_work=candidate.is_authorized_to_work,
            score=result.score,
            matched_terms=list(result.matched_terms),
            strategy=result.strategy,
        )


class SearchResponseSchema(BaseModel):
    """
    Paginated search response.

    ``total_is_upper_bound`` is true when a yes/no sponsorship filter was
    applied to the page after counting, so ``total_count`` may overstate the
    number of matching candidates.
    """

    results: List[SearchResultSchema] = Field(default_factory=list)
    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total_pages: int = Field(ge=0)
    has_next_page: bool
    has_previous_page: bool
    strategy: str
    resolved_mode: str
    total_is_upper_bound: bool = False

    @classmethod
    def from_domain(cls, response: SearchResponse) -> "SearchResponseSchema":
        return cls(
            results=[SearchResultSchema.from_domain(result) for result in response.results],
            total_count=response.total_count,
            page=response.page,
            page_size=response.page_size,
            total_pages=response.total_pages,
            has_next_page=response.has_next_page,
            has_previous_page=response.has_previous_page,
            strategy=response.strategy,
            resolved_mode=response.resolved_mode.value,
            total_is_upper_bound=response.total_is_upper_bound,
        )


class ScoringConfigSchema(BaseModel):
    tenant_id: str
    fusion_strategy: str
    semantic_weight: float
    keyword_weight: float
    similarity_threshold: float

    @classmethod
    def from_domain(cls, config: ScoringConfig) -> "ScoringConfigSchema":
        return cls(
            tenant_id=config.tenant_id,
            fusion_strategy=config.fusion_strategy.value,
            semantic_weight=config.semantic_weight,
            keyword_weight=config.keyword_weight,
            similarity_threshold=config.similarity_threshold,
        )


class ScoringConfigUpdateSchema(BaseModel):
    """Body for ``PUT /api/v1/search/config/scoring``; range checks happen in the domain."""

    tenant_id: Optional[str] = Field(default=None, description="Defaults to the global tenant")
    fusion_strategy: str = Field(description="weighted_sum, reciprocal_rank, all_or_nothing or tiered")
    semantic_weight: float
    keyword_weight: float
    similarity_threshold: float


class CandidateChangedSchema(BaseModel):
    """Candidate-changed event emitted by the candidate CRUD system."""

    candidate_id: str = Field(min_length=1)
    updated_at: datetime = Field(description="Version of the candidate record")
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    candidate_code: Optional[str] = None
    current_title: Optional[str] = None
    requisition_name: Optional[str] = None
    current_status: str = "New"
    total_years_experience: Optional[int] = None
    needs_sponsorship: bool = False
    is_authorized_to_work: bool = False
    is_active: bool = True
    summary: Optional[str] = None
    resume_text: Optional[str] = None

    def to_domain(self) -> CandidateRecord:
        return CandidateRecord(**self.model_dump())


class IndexingJobAcceptedSchema(BaseModel):
    job_id: str
    candidate_id: str
    state: str
    skills: List[str] = Field(default_factory=list)
    enqueued_at: datetime

    @classmethod
    def from_domain(cls, job: IndexingJob) -> "IndexingJobAcceptedSchema":
        return cls(
            job_id=job.job_id,
            candidate_id=job.candidate_id,
            state=job.state.value,
            skills=list(job.skills),
            enqueued_at=job.enqueued_at,
        )


class HealthResponseSchema(BaseModel):
    status: str
    version: str
    environment: str
    components: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "SearchRequestSchema",
    "SearchResultSchema",
    "SearchResponseSchema",
    "ScoringConfigSchema",
    "ScoringConfigUpdateSchema",
    "CandidateChangedSchema",
    "IndexingJobAcceptedSchema",
    "HealthResponseSchema",
]
