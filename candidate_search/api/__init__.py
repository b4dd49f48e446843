"""
API Package

Versioned HTTP routes. Routers are imported lazily so importing the package
does not pull in the application services.
"""

from fastapi import APIRouter


def create_api_router() -> APIRouter:
    """Create the main API router with all v1 routes."""
    from candidate_search.api.v1.health import router as health_router
    from candidate_search.api.v1.indexing import router as indexing_router
    from candidate_search.api.v1.search import router as search_router

    api_router = APIRouter()

    api_router.include_router(
        search_router,
        prefix="/api/v1",
        tags=["search"]
    )

    api_router.include_router(
        indexing_router,
        prefix="/api/v1",
        tags=["indexing"]
    )

    api_router.include_router(
        health_router,
        prefix="/api/v1",
        tags=["health"]
    )

    return api_router


__all__ = ["create_api_router"]
