"""Infrastructure provider accessors package."""

from .ai_provider import get_embedding_service, reset_embedding_service  # noqa: F401
from .indexing_provider import (  # noqa: F401
    collaborators_registered,
    get_indexing_pipeline,
    get_indexing_worker_pool,
    register_collaborators,
    reset_indexing_services,
)
from .messaging_provider import get_indexing_queue, reset_indexing_queue  # noqa: F401
from .persistence_provider import (  # noqa: F401
    get_postgres_adapter,
    get_scoring_config_store,
    get_search_index_repository,
    reset_persistence,
)
from .search_provider import (  # noqa: F401
    get_scoring_config_provider,
    get_search_dispatcher,
    reset_search_services,
)


async def reset_all_providers() -> None:
    """Drop every singleton; used on shutdown and between tests."""
    await reset_indexing_services()
    await reset_search_services()
    await reset_indexing_queue()
    await reset_embedding_service()
    await reset_persistence()


__all__ = [
    "collaborators_registered",
    "get_embedding_service",
    "get_indexing_pipeline",
    "get_indexing_queue",
    "get_indexing_worker_pool",
    "get_postgres_adapter",
    "get_scoring_config_provider",
    "get_scoring_config_store",
    "get_search_dispatcher",
    "get_search_index_repository",
    "register_collaborators",
    "reset_all_providers",
]
