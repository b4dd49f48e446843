"""Provider for the indexing queue."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from candidate_search.core.config import get_settings
from candidate_search.domain.interfaces import IIndexingQueue
from candidate_search.infrastructure.messaging.indexing_queue import (
    InMemoryIndexingQueue,
    RedisIndexingQueue,
)

logger = structlog.get_logger(__name__)

_indexing_queue: Optional[IIndexingQueue] = None
_lock = asyncio.Lock()


async def get_indexing_queue() -> IIndexingQueue:
    """Return singleton indexing queue (Redis when REDIS_URL is set)."""
    global _indexing_queue

    if _indexing_queue is not None:
        return _indexing_queue

    async with _lock:
        if _indexing_queue is not None:
            return _indexing_queue

        settings = get_settings()
        if settings.REDIS_URL:
            _indexing_queue = RedisIndexingQueue(
                redis_url=settings.REDIS_URL,
                queue_name=settings.INDEXING_QUEUE_NAME,
            )
        else:
            logger.info("REDIS_URL not set; using in-memory indexing queue")
            _indexing_queue = InMemoryIndexingQueue(queue_name=settings.INDEXING_QUEUE_NAME)
        return _indexing_queue


async def reset_indexing_queue() -> None:
    global _indexing_queue
    async with _lock:
        if isinstance(_indexing_queue, RedisIndexingQueue):
            await _indexing_queue.close()
        _indexing_queue = None
