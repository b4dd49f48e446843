"""
Tests for IndexingPipeline.

Testing:
- Skill extraction and sanitization before enqueue
- Only sanitized text reaches the queued job
- Idempotent snapshots produce identical entries
"""

import pytest

from candidate_search.application.indexing.pipeline import IndexingPipeline
from candidate_search.application.indexing.worker import IndexingWorker, IndexingWorkerPool
from candidate_search.domain.entities.indexing import IndexingJobState
from candidate_search.infrastructure.messaging.indexing_queue import InMemoryIndexingQueue
from tests.fixtures.candidate_fixtures import make_record


@pytest.fixture
def queue():
    return InMemoryIndexingQueue("test-indexing")


@pytest.fixture
def pipeline(skill_extractor, pii_sanitizer, queue):
    return IndexingPipeline(skill_extractor, pii_sanitizer, queue)


@pytest.fixture
def worker_pool(queue, index_repository, embedding_service):
    worker = IndexingWorker(queue, index_repository, embedding_service)
    return IndexingWorkerPool(worker, concurrency=1, poll_interval_seconds=0.01)


class TestHandleCandidateChanged:
    """Test job creation from candidate-changed events."""

    @pytest.mark.asyncio
    async def test_job_carries_sanitized_snapshot_and_skills(self, pipeline, queue):
        job = await pipeline.handle_candidate_changed(make_record())

        assert job.state is IndexingJobState.PENDING
        assert job.skills == ["AWS", "Docker", "Java", "Python", "SQL"]
        assert "jane.doe@example.com" not in job.sanitized_text
        assert "1 Main Street" not in job.sanitized_text
        assert "Jane Doe" not in job.sanitized_text
        assert "[EMAIL]" in job.sanitized_text
        assert job.candidate.full_name == "Jane Doe"
        assert await queue.pending_count() == 1

    @pytest.mark.asyncio
    async def test_sanitizer_receives_known_identifying_values(self, pipeline, pii_sanitizer):
        await pipeline.handle_candidate_changed(make_record())

        call = pii_sanitizer.calls[0]
        assert call["known_name"] == "Jane Doe"
        assert call["known_email"] == "jane.doe@example.com"
        assert call["known_address"] == "1 Main Street"

    @pytest.mark.asyncio
    async def test_record_without_text_skips_collaborators(self, pipeline, skill_extractor, pii_sanitizer):
        job = await pipeline.handle_candidate_changed(
            make_record(current_title=None, summary=None, resume_text=None)
        )

        assert job.sanitized_text == ""
        assert job.skills == []
        assert skill_extractor.calls == []
        assert pii_sanitizer.calls == []

    @pytest.mark.asyncio
    async def test_source_version_and_active_flag_come_from_record(self, pipeline):
        record = make_record(is_active=False)

        job = await pipeline.handle_candidate_changed(record)

        assert job.source_version == record.updated_at
        assert job.is_active is False


class TestIdempotence:
    """Test that reprocessing an unchanged snapshot is a no-op."""

    @pytest.mark.asyncio
    async def test_same_snapshot_twice_gives_byte_identical_entry(
        self, pipeline, worker_pool, index_repository
    ):
        record = make_record()

        await pipeline.handle_candidate_changed(record)
        await worker_pool.drain()
        first = await index_repository.get_entry(record.candidate_id)

        await pipeline.handle_candidate_changed(record)
        await worker_pool.drain()
        second = await index_repository.get_entry(record.candidate_id)

        assert first.to_canonical_json() == second.to_canonical_json()
        assert first.content_hash == second.content_hash

    @pytest.mark.asyncio
    async def test_indexed_candidate_is_embedded_from_sanitized_text(
        self, pipeline, worker_pool, index_repository, embedding_service
    ):
        record = make_record()

        await pipeline.handle_candidate_changed(record)
        await worker_pool.drain()
        entry = await index_repository.get_entry(record.candidate_id)

        assert entry.has_embedding
        assert entry.embedding_model == embedding_service.model_name
        assert all("jane.doe@example.com" not in text for text in embedding_service.document_calls)
        assert entry.text_vector["jane"] == "A"
