"""Provider for the embedding service."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from candidate_search.core.config import get_settings
from candidate_search.domain.interfaces import IEmbeddingService
from candidate_search.infrastructure.ai.embedding_service import OpenAIEmbeddingService

logger = structlog.get_logger(__name__)

_embedding_service: Optional[IEmbeddingService] = None
_lock = asyncio.Lock()


async def get_embedding_service() -> Optional[IEmbeddingService]:
    """Return the singleton embedding service, or None when OpenAI is not configured."""
    global _embedding_service

    if _embedding_service is not None:
        return _embedding_service

    async with _lock:
        if _embedding_service is not None:
            return _embedding_service

        settings = get_settings()
        if not settings.is_openai_configured():
            logger.warning("OpenAI not configured; semantic and hybrid search disabled")
            return None

        _embedding_service = OpenAIEmbeddingService(settings=settings)
        return _embedding_service


async def reset_embedding_service() -> None:
    global _embedding_service
    async with _lock:
        _embedding_service = None
