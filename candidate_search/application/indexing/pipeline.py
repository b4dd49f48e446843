"""
Indexing Pipeline entry point.

Handles a candidate-changed event:
1. Extract skills from the profile and resume text
2. Sanitize the text with the candidate's own identifying values
3. Enqueue an indexing job carrying the full sanitized snapshot

Embedding and the index write happen later in the worker pool. Only the
sanitized text ever leaves this module.
"""

from __future__ import annotations

from typing import List

import structlog

from candidate_search.domain.entities.candidate import CandidateRecord
from candidate_search.domain.entities.indexing import IndexingJob
from candidate_search.domain.interfaces import IIndexingQueue, IPiiSanitizer, ISkillExtractor

logger = structlog.get_logger(__name__)


class IndexingPipeline:
    """Turns candidate-changed events into queued indexing jobs."""

    def __init__(
        self,
        skill_extractor: ISkillExtractor,
        pii_sanitizer: IPiiSanitizer,
        queue: IIndexingQueue,
    ):
        self.skill_extractor = skill_extractor
        self.pii_sanitizer = pii_sanitizer
        self.queue = queue

    async def _extract_skills(self, text: str) -> List[str]:
        if not text:
            return []
        skills = await self.skill_extractor.extract(text)
        return sorted({skill.strip() for skill in skills if skill and skill.strip()})

    async def _sanitize(self, record: CandidateRecord, text: str) -> str:
        if not text:
            return ""
        return await self.pii_sanitizer.sanitize(
            text,
            known_name=record.full_name or None,
            known_email=record.email,
            known_address=record.address,
        )

    async def handle_candidate_changed(self, record: CandidateRecord) -> IndexingJob:
        """Build and enqueue the indexing job for one candidate snapshot."""
        text = record.indexable_text
        skills = await self._extract_skills(text)
        sanitized_text = await self._sanitize(record, text)

        job = IndexingJob(
            candidate_id=record.candidate_id,
            sanitized_text=sanitized_text,
            skills=skills,
            candidate=record.snapshot(),
            source_version=record.updated_at,
            is_active=record.is_active,
        )
        message_id = await self.queue.enqueue(job)

        logger.info(
            "Indexing job enqueued",
            candidate_id=record.candidate_id,
            job_id=job.job_id,
            message_id=message_id,
            skills=len(skills),
            source_version=job.source_version.isoformat(),
        )
        return job


__all__ = ["IndexingPipeline"]
