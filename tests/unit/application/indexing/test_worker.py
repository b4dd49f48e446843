"""
Tests for IndexingWorker and IndexingWorkerPool.

Testing:
- Transient failures are retried with exponential backoff
- Exhausted and non-transient failures are dead-lettered and reported
- Previous entries survive failures; older snapshots never overwrite newer ones
- Pool start/stop and statistics
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from candidate_search.application.indexing.worker import IndexingWorker, IndexingWorkerPool
from candidate_search.domain.entities.indexing import IndexingJobState
from candidate_search.domain.exceptions import EmbeddingGenerationError
from candidate_search.domain.retry import RetryPolicy
from candidate_search.infrastructure.messaging.indexing_queue import InMemoryIndexingQueue
from tests.fixtures.candidate_fixtures import BASE_VERSION, make_entry, make_job


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    return InMemoryIndexingQueue("test-indexing", clock=clock)


@pytest.fixture
def flaky_embeddings(embedding_service):
    """Embedding service whose document calls fail until told otherwise."""
    service = AsyncMock(wraps=embedding_service)
    service.model_name = embedding_service.model_name
    service.generate_embedding.side_effect = EmbeddingGenerationError("rate limited")
    return service


def _pool(queue, repository, embeddings, max_attempts=3, listener=None):
    worker = IndexingWorker(
        queue,
        repository,
        embeddings,
        RetryPolicy(max_attempts=max_attempts, base_delay_seconds=2.0, max_delay_seconds=60.0),
    )
    if listener is not None:
        worker.add_failure_listener(listener)
    return IndexingWorkerPool(worker, concurrency=1, poll_interval_seconds=0.01)


class TestProcessing:
    """Test the happy path."""

    @pytest.mark.asyncio
    async def test_job_completes_and_is_acknowledged(self, queue, index_repository, embedding_service):
        pool = _pool(queue, index_repository, embedding_service)
        job = make_job(text="python developer", skills=["Python"])
        await queue.enqueue(job)

        state = await pool.process_next()

        assert state is IndexingJobState.COMPLETED
        assert pool.job_state(job.job_id) is IndexingJobState.COMPLETED
        assert await queue.pending_count() == 0
        entry = await index_repository.get_entry(job.candidate_id)
        assert entry.has_embedding
        assert entry.skills == ["Python"]

    @pytest.mark.asyncio
    async def test_blank_text_indexes_without_embedding(self, queue, index_repository, embedding_service):
        pool = _pool(queue, index_repository, embedding_service)
        await queue.enqueue(make_job(text="   "))

        assert await pool.process_next() is IndexingJobState.COMPLETED
        entry = await index_repository.get_entry("cand-1")
        assert not entry.has_embedding
        assert embedding_service.document_calls == []

    @pytest.mark.asyncio
    async def test_idle_queue_returns_none(self, queue, index_repository, embedding_service):
        pool = _pool(queue, index_repository, embedding_service)

        assert await pool.process_next() is None

    @pytest.mark.asyncio
    async def test_older_snapshot_does_not_overwrite_newer_entry(
        self, queue, index_repository, embedding_service
    ):
        newer = make_entry("cand-1", text="newest text", source_version=BASE_VERSION + timedelta(days=1))
        await index_repository.upsert_entry(newer)
        pool = _pool(queue, index_repository, embedding_service)
        await queue.enqueue(make_job(text="stale text", source_version=BASE_VERSION))

        assert await pool.process_next() is IndexingJobState.COMPLETED
        entry = await index_repository.get_entry("cand-1")
        assert entry.search_text == "newest text"


class TestRetries:
    """Test the failure policy."""

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried_with_backoff(
        self, queue, clock, index_repository, flaky_embeddings
    ):
        pool = _pool(queue, index_repository, flaky_embeddings)
        await queue.enqueue(make_job(text="python"))

        assert await pool.process_next() is IndexingJobState.PENDING
        # First retry waits base_delay seconds.
        clock.advance(1.9)
        assert await pool.process_next() is None
        clock.advance(0.2)
        flaky_embeddings.generate_embedding.side_effect = None

        assert await pool.process_next() is IndexingJobState.COMPLETED
        assert (await index_repository.get_entry("cand-1")).has_embedding

    @pytest.mark.asyncio
    async def test_exhausted_retries_dead_letter_and_notify(
        self, queue, clock, index_repository, flaky_embeddings
    ):
        failures = []
        pool = _pool(
            queue,
            index_repository,
            flaky_embeddings,
            max_attempts=3,
            listener=lambda job, error: failures.append((job.candidate_id, error)),
        )
        previous = make_entry("cand-1", text="previous", source_version=BASE_VERSION - timedelta(days=1))
        await index_repository.upsert_entry(previous)
        await queue.enqueue(make_job(text="python"))

        states = []
        for delay in (0, 2.0, 4.0):
            clock.advance(delay)
            states.append(await pool.process_next())

        assert states == [IndexingJobState.PENDING, IndexingJobState.PENDING, IndexingJobState.FAILED]
        assert flaky_embeddings.generate_embedding.await_count == 3
        assert len(queue.dead_letters) == 1
        assert queue.dead_letters[0]["reason"].startswith("retries_exhausted")
        assert queue.dead_letters[0]["job"]["retry_count"] == 2
        assert [candidate_id for candidate_id, _ in failures] == ["cand-1"]
        assert (await index_repository.get_entry("cand-1")).search_text == "previous"
        stats = await pool.get_stats()
        assert stats["failed"] == 1
        assert stats["retried"] == 2

    @pytest.mark.asyncio
    async def test_non_transient_failure_fails_immediately(self, queue, embedding_service):
        repository = AsyncMock()
        repository.upsert_entry.side_effect = ValueError("bad entry")
        listener = AsyncMock()
        pool = _pool(queue, repository, embedding_service, listener=listener)
        await queue.enqueue(make_job(text="python"))

        assert await pool.process_next() is IndexingJobState.FAILED
        assert queue.dead_letters[0]["reason"].startswith("non_transient_error")
        listener.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_worker(self, queue, index_repository, flaky_embeddings):
        def broken_listener(job, error):
            raise RuntimeError("listener down")

        pool = _pool(queue, index_repository, flaky_embeddings, max_attempts=1, listener=broken_listener)
        await queue.enqueue(make_job(text="python"))

        assert await pool.process_next() is IndexingJobState.FAILED


class TestWorkerPool:
    """Test the background pool lifecycle."""

    @pytest.mark.asyncio
    async def test_running_pool_drains_queue(self, index_repository, embedding_service):
        queue = InMemoryIndexingQueue("pool-test")
        worker = IndexingWorker(queue, index_repository, embedding_service)
        pool = IndexingWorkerPool(worker, concurrency=3, poll_interval_seconds=0.01)
        for index in range(5):
            await queue.enqueue(make_job(candidate_id=f"cand-{index}", text=f"python {index}"))

        await pool.start()
        assert pool.is_running
        for _ in range(200):
            if (await pool.get_stats())["completed"] == 5:
                break
            await asyncio.sleep(0.01)
        await pool.stop(timeout=1.0)

        stats = await pool.get_stats()
        assert stats["completed"] == 5
        assert stats["workers"] == 3
        assert stats["running"] is False
        assert stats["job_states"]["completed"] == 5
        for index in range(5):
            assert await index_repository.get_entry(f"cand-{index}") is not None

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, index_repository, embedding_service):
        pool = IndexingWorkerPool(IndexingWorker(InMemoryIndexingQueue(), index_repository, embedding_service))

        await pool.stop()

        assert not pool.is_running
