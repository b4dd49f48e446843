"""
Indexing workers.

A worker turns one queued job into a search index entry: embed the sanitized
text, rebuild the full-text vector and replace the entry atomically. Transient
failures go back to the queue with exponential backoff; once the attempt cap
is reached the job is failed, dead-lettered and reported to failure listeners.
The previous entry is never touched on failure.

``IndexingWorkerPool`` runs several workers as asyncio tasks over the same
queue; the queue's receive hands each message to exactly one of them.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import structlog

from candidate_search.domain.entities.indexing import (
    IndexingJob,
    IndexingJobState,
    SearchIndexEntry,
)
from candidate_search.domain.interfaces import (
    IEmbeddingService,
    IIndexingQueue,
    ISearchIndexRepository,
    QueueMessage,
)
from candidate_search.domain.retry import RetryPolicy

logger = structlog.get_logger(__name__)

FailureListener = Callable[[IndexingJob, BaseException], Union[None, Awaitable[None]]]


class IndexingWorker:
    """Processes single indexing messages."""

    def __init__(
        self,
        queue: IIndexingQueue,
        index_repository: ISearchIndexRepository,
        embedding_service: Optional[IEmbeddingService] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.queue = queue
        self.index_repository = index_repository
        self.embedding_service = embedding_service
        self.retry_policy = retry_policy or RetryPolicy()
        self._failure_listeners: List[FailureListener] = []

    def add_failure_listener(self, listener: FailureListener) -> None:
        """Register a callback invoked when a job is failed for good."""
        self._failure_listeners.append(listener)

    async def build_entry(self, job: IndexingJob) -> SearchIndexEntry:
        """Derive the full index entry from a job snapshot."""
        if not job.sanitized_text.strip() or self.embedding_service is None:
            # Name matching still finds candidates without an embedding.
            return SearchIndexEntry.from_job(job, embedding=None, embedding_model=None)

        embedding = await self.embedding_service.generate_embedding(job.sanitized_text)
        return SearchIndexEntry.from_job(
            job,
            embedding=embedding,
            embedding_model=self.embedding_service.model_name,
        )

    async def process_message(self, message: QueueMessage) -> IndexingJobState:
        job = message.job
        job.mark_processing()

        try:
            entry = await self.build_entry(job)
            written = await self.index_repository.upsert_entry(entry)
        except Exception as exc:
            return await self._handle_failure(message, exc)

        job.mark_completed()
        await self.queue.complete(message)

        logger.info(
            "Indexing job completed",
            job_id=job.job_id,
            candidate_id=job.candidate_id,
            written=written,
            has_embedding=entry.has_embedding,
            content_hash=entry.content_hash,
            attempt=job.retry_count + 1,
        )
        return job.state

    async def _handle_failure(self, message: QueueMessage, error: Exception) -> IndexingJobState:
        job = message.job
        retryable = self.retry_policy.is_retryable(error)

        if retryable and self.retry_policy.has_attempts_left(job.retry_count):
            job.schedule_retry(str(error))
            delay = self.retry_policy.calculate_delay(job.retry_count)
            await self.queue.abandon(message, delay_seconds=delay)
            logger.warning(
                "Indexing job failed, retry scheduled",
                job_id=job.job_id,
                candidate_id=job.candidate_id,
                retry_count=job.retry_count,
                max_attempts=self.retry_policy.max_attempts,
                delay_seconds=delay,
                error=str(error),
            )
            return job.state

        job.mark_failed(str(error))
        reason = "retries_exhausted" if retryable else "non_transient_error"
        await self.queue.dead_letter(message, reason=f"{reason}: {error}")
        logger.error(
            "Indexing job failed",
            job_id=job.job_id,
            candidate_id=job.candidate_id,
            reason=reason,
            attempts=job.retry_count + 1,
            error=str(error),
            error_type=type(error).__name__,
        )
        await self._notify_failure(job, error)
        return job.state

    async def _notify_failure(self, job: IndexingJob, error: BaseException) -> None:
        for listener in self._failure_listeners:
            try:
                result = listener(job, error)
                if inspect.isawaitable(result):
                    await result
            except Exception as listener_error:
                logger.error(
                    "Indexing failure listener raised",
                    job_id=job.job_id,
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(listener_error),
                )


class IndexingWorkerPool:
    """Runs N concurrent indexing workers over one queue."""

    def __init__(
        self,
        worker: IndexingWorker,
        concurrency: int = 4,
        poll_interval_seconds: float = 1.0,
        max_tracked_jobs: int = 1000,
    ):
        self.worker = worker
        self.queue = worker.queue
        self.concurrency = max(1, concurrency)
        self.poll_interval_seconds = poll_interval_seconds
        self.max_tracked_jobs = max_tracked_jobs

        self._tasks: List[asyncio.Task] = []
        self._stopping = asyncio.Event()
        self._job_states: "OrderedDict[str, IndexingJobState]" = OrderedDict()
        self._stats: Dict[str, int] = {
            "processed": 0,
            "completed": 0,
            "retried": 0,
            "failed": 0,
            "receive_errors": 0,
        }

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def _track(self, job: IndexingJob) -> None:
        self._job_states[job.job_id] = job.state
        self._job_states.move_to_end(job.job_id)
        while len(self._job_states) > self.max_tracked_jobs:
            self._job_states.popitem(last=False)

    def job_state(self, job_id: str) -> Optional[IndexingJobState]:
        return self._job_states.get(job_id)

    async def process_next(self) -> Optional[IndexingJobState]:
        """Receive and process a single message; None when the queue is idle."""
        messages = await self.queue.receive(max_messages=1)
        if not messages:
            return None

        message = messages[0]
        self._track(message.job)
        state = await self.worker.process_message(message)
        self._track(message.job)

        self._stats["processed"] += 1
        if state is IndexingJobState.COMPLETED:
            self._stats["completed"] += 1
        elif state is IndexingJobState.FAILED:
            self._stats["failed"] += 1
        else:
            self._stats["retried"] += 1
        return state

    async def drain(self, max_messages: Optional[int] = None) -> int:
        """Process due messages until the queue is idle; returns the count."""
        processed = 0
        while max_messages is None or processed < max_messages:
            if await self.process_next() is None:
                break
            processed += 1
        return processed

    async def _wait_for_stop(self, timeout: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass

    async def _run_loop(self, worker_index: int) -> None:
        logger.debug("Indexing worker started", worker=worker_index)
        while not self._stopping.is_set():
            try:
                state = await self.process_next()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._stats["receive_errors"] += 1
                logger.error("Indexing worker loop error", worker=worker_index, error=str(exc))
                state = None
            if state is None:
                await self._wait_for_stop(self.poll_interval_seconds)
        logger.debug("Indexing worker stopped", worker=worker_index)

    async def start(self) -> None:
        if self.is_running:
            return
        self._stopping = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._run_loop(index), name=f"indexing-worker-{index}")
            for index in range(self.concurrency)
        ]
        logger.info("Indexing worker pool started", workers=self.concurrency)

    async def stop(self, timeout: float = 10.0) -> None:
        """Stop gracefully; workers finish their current job, idle waits end."""
        if not self._tasks:
            return
        self._stopping.set()
        done, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info(
            "Indexing worker pool stopped",
            finished=len(done),
            cancelled=len(pending),
        )

    async def get_stats(self) -> Dict[str, Any]:
        states: Dict[str, int] = {state.value: 0 for state in IndexingJobState}
        for state in self._job_states.values():
            states[state.value] += 1
        return {
            **self._stats,
            "workers": self.concurrency,
            "running": self.is_running,
            "pending_messages": await self.queue.pending_count(),
            "job_states": states,
        }


__all__ = ["IndexingWorker", "IndexingWorkerPool", "FailureListener"]
