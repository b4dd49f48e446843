"""Component health for the search service and the indexing pipeline."""

from typing import Any, Dict

import structlog
from fastapi import APIRouter

from candidate_search.api.schemas import HealthResponseSchema
from candidate_search.core.config import get_settings
from candidate_search.infrastructure.providers import (
    collaborators_registered,
    get_embedding_service,
    get_indexing_queue,
    get_indexing_worker_pool,
    get_search_dispatcher,
    get_search_index_repository,
)

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponseSchema)
async def component_health() -> HealthResponseSchema:
    """Report the index store, queue, embedding provider and worker pool."""
    settings = get_settings()
    components: Dict[str, Any] = {}

    index_repository = await get_search_index_repository()
    components["search_index"] = await index_repository.check_health()

    queue = await get_indexing_queue()
    components["indexing_queue"] = await queue.check_health()

    embedding_service = await get_embedding_service()
    components["embeddings"] = (
        await embedding_service.check_health()
        if embedding_service is not None
        else {"status": "disabled"}
    )

    dispatcher = await get_search_dispatcher()
    components["dispatcher"] = dispatcher.describe()

    pool = await get_indexing_worker_pool()
    components["indexing_workers"] = {
        "collaborators_registered": collaborators_registered(),
        **await pool.get_stats(),
    }

    unhealthy = [
        name for name, health in components.items()
        if isinstance(health, dict) and health.get("status") == "unhealthy"
    ]
    if unhealthy:
        logger.warning("Component health degraded", components=unhealthy)

    return HealthResponseSchema(
        status="degraded" if unhealthy else "healthy",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        components=components,
    )
