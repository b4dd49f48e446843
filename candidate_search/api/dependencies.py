"""
API-specific dependencies for application services.

FastAPI dependency helpers bridging the HTTP layer with the provider-backed
singletons, plus the single place where domain exceptions become HTTP errors.
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException

from candidate_search.application.indexing.pipeline import IndexingPipeline
from candidate_search.application.scoring_config import ScoringConfigProvider
from candidate_search.application.search.dispatcher import SearchDispatcher
from candidate_search.domain.exceptions import (
    ConfigurationError,
    DomainException,
    ProcessingError,
    SearchError,
    SearchTimeoutError,
    ValidationError,
)
from candidate_search.infrastructure.providers import (
    get_indexing_pipeline,
    get_scoring_config_provider,
    get_search_dispatcher,
)

logger = structlog.get_logger(__name__)


async def get_dispatcher() -> SearchDispatcher:
    """Resolve the search dispatcher singleton."""
    try:
        return await get_search_dispatcher()
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc) from domain_exc
    except Exception as e:
        logger.error("Failed to create search dispatcher", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Search service unavailable"
        ) from e


async def get_scoring_config() -> ScoringConfigProvider:
    """Resolve the scoring configuration provider singleton."""
    try:
        return await get_scoring_config_provider()
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc) from domain_exc
    except Exception as e:
        logger.error("Failed to create scoring config provider", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Scoring configuration unavailable"
        ) from e


async def get_pipeline() -> IndexingPipeline:
    """Resolve the indexing pipeline; unregistered collaborators surface as 503."""
    try:
        return await get_indexing_pipeline()
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc) from domain_exc
    except Exception as e:
        logger.error("Failed to create indexing pipeline", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Indexing service unavailable"
        ) from e


# Type aliases for dependency injection
DispatcherDep = Annotated[SearchDispatcher, Depends(get_dispatcher)]
ScoringConfigDep = Annotated[ScoringConfigProvider, Depends(get_scoring_config)]
IndexingPipelineDep = Annotated[IndexingPipeline, Depends(get_pipeline)]


def map_domain_exception_to_http(exception: Exception) -> HTTPException:
    """Map domain exceptions to appropriate HTTP responses."""

    # ValidationError - 400 Bad Request
    if isinstance(exception, ValidationError):
        return HTTPException(status_code=400, detail=str(exception))

    # SearchTimeoutError - 504 Gateway Timeout (checked before its SearchError parent)
    elif isinstance(exception, SearchTimeoutError):
        logger.warning("Search timed out", error=str(exception), strategy=exception.strategy)
        return HTTPException(status_code=504, detail=str(exception))

    # ProcessingError hierarchy - 502 Bad Gateway (store or provider failure)
    elif isinstance(exception, (SearchError, ProcessingError)):
        return HTTPException(status_code=502, detail=str(exception))

    # ConfigurationError - 503 Service Unavailable
    elif isinstance(exception, ConfigurationError):
        logger.error("Configuration error", error=str(exception))
        return HTTPException(status_code=503, detail=str(exception))

    # Generic DomainException - 500 Internal Server Error
    elif isinstance(exception, DomainException):
        logger.error("Unhandled domain exception", exception_type=type(exception).__name__, error=str(exception))
        return HTTPException(status_code=500, detail="Domain operation failed")

    else:
        # Non-domain exception - log and return generic error
        logger.error("Non-domain exception in mapping", exception_type=type(exception).__name__, error=str(exception))
        return HTTPException(status_code=500, detail="Internal server error")


__all__ = [
    "get_dispatcher",
    "get_scoring_config",
    "get_pipeline",
    "DispatcherDep",
    "ScoringConfigDep",
    "IndexingPipelineDep",
    "map_domain_exception_to_http",
]
