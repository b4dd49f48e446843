"""
Tests for indexing jobs and search index entries.

Testing:
- Job lifecycle and queue message format
- Weighted full-text vector construction
- Canonical form and version ordering of entries
"""

from datetime import datetime, timedelta, timezone

import pytest

from candidate_search.domain.entities.indexing import (
    IndexingJob,
    IndexingJobState,
    SearchIndexEntry,
    build_text_vector,
)
from candidate_search.domain.exceptions import ValidationError
from tests.fixtures.candidate_fixtures import BASE_VERSION, make_entry, make_job, make_snapshot


class TestIndexingJob:
    """Test job state transitions and messages."""

    def test_new_job_is_pending(self):
        job = make_job()

        assert job.state is IndexingJobState.PENDING
        assert job.retry_count == 0
        assert job.enqueued_at.tzinfo is not None

    def test_retry_increments_count_and_returns_to_pending(self):
        job = make_job()
        job.mark_processing()
        job.schedule_retry("timeout")

        assert job.state is IndexingJobState.PENDING
        assert job.retry_count == 1
        assert job.last_error == "timeout"

    def test_terminal_states(self):
        job = make_job()
        job.mark_failed("boom")

        assert job.state.is_terminal
        assert not IndexingJobState.PROCESSING.is_terminal

    def test_naive_source_version_is_treated_as_utc(self):
        job = make_job(source_version=datetime(2024, 5, 1, 8, 30))

        assert job.source_version == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    def test_message_preserves_job(self):
        job = make_job(text="Python developer", skills=["Python"], needs_sponsorship=True)
        job.schedule_retry("rate limited")

        restored = IndexingJob.from_message(job.to_message())

        assert restored.job_id == job.job_id
        assert restored.candidate == job.candidate
        assert restored.source_version == job.source_version
        assert restored.retry_count == 1
        assert restored.last_error == "rate limited"

    def test_malformed_message_raises_validation_error(self):
        with pytest.raises(ValidationError):
            IndexingJob.from_message({"candidate_id": "x"})

        with pytest.raises(ValidationError):
            IndexingJob.from_message({
                "job_id": "j",
                "candidate_id": "x",
                "candidate": {"candidate_id": "x"},
                "source_version": "not-a-date",
            })


class TestTextVector:
    """Test weight class assignment."""

    def test_names_and_title_outrank_skills_and_body(self):
        candidate = make_snapshot("1", "Jane", "Doe", current_title="Java Developer")

        vector = build_text_vector(candidate, ["Java", "Docker"], "docker and kubernetes jane")

        assert vector["jane"] == "A"
        assert vector["java"] == "A"
        assert vector["docker"] == "B"
        assert vector["kubernetes"] == "C"
        assert list(vector) == sorted(vector)


class TestSearchIndexEntry:
    """Test entry derivation and canonical form."""

    def test_skills_are_sorted_and_deduplicated(self):
        entry = make_entry("1", skills=["SQL", "AWS", " AWS ", ""])

        assert entry.skills == ["AWS", "SQL"]

    def test_entry_without_embedding_has_no_model(self):
        job = make_job(text="text")
        entry = SearchIndexEntry.from_job(job, embedding=None, embedding_model="model")

        assert entry.embedding is None
        assert entry.embedding_model is None
        assert not entry.has_embedding

    def test_same_job_gives_byte_identical_canonical_json(self):
        job = make_job(text="Python and SQL", skills=["SQL", "Python"])

        first = SearchIndexEntry.from_job(job, [0.1, 0.2], "m")
        second = SearchIndexEntry.from_job(job, [0.1, 0.2], "m")

        assert first.to_canonical_json() == second.to_canonical_json()
        assert first.content_hash == second.content_hash

    def test_changed_content_changes_hash(self):
        first = make_entry("1", text="Python")
        second = make_entry("1", text="Python and SQL")

        assert first.content_hash != second.content_hash

    def test_version_ordering(self):
        older = make_entry("1", source_version=BASE_VERSION)
        newer = make_entry("1", source_version=BASE_VERSION + timedelta(minutes=1))

        assert newer.is_newer_than(older)
        assert older.is_newer_than(older)
        assert not older.is_newer_than(newer)
        assert older.is_newer_than(None)
