"""Providers for the indexing pipeline and its worker pool."""

from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional

import structlog

from candidate_search.application.indexing.pipeline import IndexingPipeline
from candidate_search.application.indexing.worker import (
    FailureListener,
    IndexingWorker,
    IndexingWorkerPool,
)
from candidate_search.core.config import get_settings
from candidate_search.domain.exceptions import ConfigurationError
from candidate_search.domain.interfaces import IPiiSanitizer, ISkillExtractor
from candidate_search.domain.retry import DEFAULT_TRANSIENT_ERRORS, BackoffStrategy, RetryPolicy
from candidate_search.infrastructure.persistence.postgres_adapter import TRANSIENT_DATABASE_ERRORS
from candidate_search.infrastructure.providers.ai_provider import get_embedding_service
from candidate_search.infrastructure.providers.messaging_provider import get_indexing_queue
from candidate_search.infrastructure.providers.persistence_provider import (
    get_search_index_repository,
)

logger = structlog.get_logger(__name__)

_skill_extractor: Optional[ISkillExtractor] = None
_pii_sanitizer: Optional[IPiiSanitizer] = None
_failure_listeners: List[FailureListener] = []

_indexing_pipeline: Optional[IndexingPipeline] = None
_worker_pool: Optional[IndexingWorkerPool] = None

_pipeline_lock = asyncio.Lock()
_pool_lock = asyncio.Lock()


def register_collaborators(
    skill_extractor: ISkillExtractor,
    pii_sanitizer: IPiiSanitizer,
    failure_listeners: Optional[Iterable[FailureListener]] = None,
) -> None:
    """Register the external skill extraction and PII redaction services.

    Must be called before the pipeline is first requested.
    """
    global _skill_extractor, _pii_sanitizer, _failure_listeners
    _skill_extractor = skill_extractor
    _pii_sanitizer = pii_sanitizer
    _failure_listeners = list(failure_listeners or [])
    logger.info(
        "Indexing collaborators registered",
        skill_extractor=type(skill_extractor).__name__,
        pii_sanitizer=type(pii_sanitizer).__name__,
        failure_listeners=len(_failure_listeners),
    )


def collaborators_registered() -> bool:
    return _skill_extractor is not None and _pii_sanitizer is not None


def build_retry_policy() -> RetryPolicy:
    settings = get_settings()
    return RetryPolicy(
        max_attempts=settings.INDEXING_MAX_ATTEMPTS,
        base_delay_seconds=settings.INDEXING_BACKOFF_BASE_SECONDS,
        max_delay_seconds=settings.INDEXING_BACKOFF_MAX_SECONDS,
        backoff_strategy=BackoffStrategy.EXPONENTIAL,
        transient_errors=DEFAULT_TRANSIENT_ERRORS + TRANSIENT_DATABASE_ERRORS,
    )


async def get_indexing_pipeline() -> IndexingPipeline:
    """Return singleton indexing pipeline.

    Raises:
        ConfigurationError: when the external collaborators were never registered.
    """
    global _indexing_pipeline

    if _indexing_pipeline is not None:
        return _indexing_pipeline

    async with _pipeline_lock:
        if _indexing_pipeline is not None:
            return _indexing_pipeline

        if not collaborators_registered():
            raise ConfigurationError(
                "Skill extractor and PII sanitizer must be registered before indexing"
            )

        _indexing_pipeline = IndexingPipeline(
            skill_extractor=_skill_extractor,
            pii_sanitizer=_pii_sanitizer,
            queue=await get_indexing_queue(),
        )
        return _indexing_pipeline


async def get_indexing_worker_pool() -> IndexingWorkerPool:
    """Return singleton worker pool (not started)."""
    global _worker_pool

    if _worker_pool is not None:
        return _worker_pool

    async with _pool_lock:
        if _worker_pool is not None:
            return _worker_pool

        settings = get_settings()
        worker = IndexingWorker(
            queue=await get_indexing_queue(),
            index_repository=await get_search_index_repository(),
            embedding_service=await get_embedding_service(),
            retry_policy=build_retry_policy(),
        )
        for listener in _failure_listeners:
            worker.add_failure_listener(listener)

        _worker_pool = IndexingWorkerPool(
            worker=worker,
            concurrency=settings.INDEXING_WORKER_COUNT,
            poll_interval_seconds=settings.INDEXING_POLL_INTERVAL_SECONDS,
        )
        return _worker_pool


async def reset_indexing_services() -> None:
    global _indexing_pipeline, _worker_pool, _skill_extractor, _pii_sanitizer, _failure_listeners
    async with _pool_lock:
        if _worker_pool is not None:
            await _worker_pool.stop()
        _worker_pool = None
    async with _pipeline_lock:
        _indexing_pipeline = None
    _skill_extractor = None
    _pii_sanitizer = None
    _failure_listeners = []
