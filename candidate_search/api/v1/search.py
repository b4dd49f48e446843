"""
Search API endpoints.

- ``POST /search`` dispatches a request to the strategy chosen for its mode
- ``GET /search/config/scoring`` returns a tenant's resolved scoring settings
- ``PUT /search/config/scoring`` validates and stores a tenant's settings
"""

from typing import Optional

import structlog
from fastapi import APIRouter, HTTPException, Query

from candidate_search.api.dependencies import (
    DispatcherDep,
    ScoringConfigDep,
    map_domain_exception_to_http,
)
from candidate_search.api.schemas import (
    ScoringConfigSchema,
    ScoringConfigUpdateSchema,
    SearchRequestSchema,
    SearchResponseSchema,
)
from candidate_search.core.config import get_settings
from candidate_search.domain.exceptions import DomainException, ValidationError

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=SearchResponseSchema)
async def search_candidates(
    search_request: SearchRequestSchema,
    dispatcher: DispatcherDep,
) -> SearchResponseSchema:
    """
    Search candidates by name, by meaning or both.

    Supported modes:
    - **nameMatch**: prefix matching over indexed names and text
    - **semantic**: embedding similarity above the tenant's threshold
    - **hybrid**: keyword and semantic signals fused per tenant configuration
    - **auto**: the query is classified and routed to one of the above
    """
    settings = get_settings()
    try:
        if search_request.page_size > settings.SEARCH_MAX_PAGE_SIZE:
            raise ValidationError(
                f"page_size must not exceed {settings.SEARCH_MAX_PAGE_SIZE}"
            )
        response = await dispatcher.dispatch(search_request.to_domain())
        return SearchResponseSchema.from_domain(response)
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - unexpected errors bubble to API layer
        logger.error("Search request failed", error=str(exc))
        raise HTTPException(
            status_code=500,
            detail={
                "error": "search_failed",
                "message": "Search request could not be completed",
                "details": str(exc)
                if settings.ENVIRONMENT in ("local", "development")
                else None,
            },
        )


@router.get("/config/scoring", response_model=ScoringConfigSchema)
async def get_scoring_config(
    scoring_config: ScoringConfigDep,
    tenant_id: Optional[str] = Query(default=None, description="Tenant id; global when omitted"),
) -> ScoringConfigSchema:
    """Return the resolved scoring configuration; unknown tenants get global values."""
    try:
        config = await scoring_config.get_scoring_config(tenant_id)
        return ScoringConfigSchema.from_domain(config)
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)


@router.put("/config/scoring", response_model=ScoringConfigSchema)
async def update_scoring_config(
    update: ScoringConfigUpdateSchema,
    scoring_config: ScoringConfigDep,
) -> ScoringConfigSchema:
    """Store a tenant's weights, threshold and fusion strategy."""
    try:
        config = await scoring_config.set_scoring_config(
            tenant_id=update.tenant_id,
            semantic_weight=update.semantic_weight,
            keyword_weight=update.keyword_weight,
            similarity_threshold=update.similarity_threshold,
            fusion_strategy=update.fusion_strategy,
        )
        return ScoringConfigSchema.from_domain(config)
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)
