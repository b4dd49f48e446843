"""Indexing jobs and the derived search index entry they produce."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from candidate_search.domain.entities.candidate import CandidateSnapshot
from candidate_search.domain.exceptions import ValidationError
from candidate_search.domain.value_objects import lexemes


class IndexingJobState(str, Enum):
    """Lifecycle state of an indexing job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IndexingJobState.COMPLETED, IndexingJobState.FAILED)


class TextWeight(str, Enum):
    """Full-text weight classes, A being the strongest."""

    A = "A"
    B = "B"
    C = "C"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so versions always compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value)))
    except ValueError as exc:
        raise ValidationError(f"Invalid timestamp: {value!r}") from exc


@dataclass
class IndexingJob:
    """Unit of asynchronous work refreshing one candidate's index entry.

    A job carries a full snapshot, never a delta, so reprocessing it is
    idempotent and the worker needs nothing but the job to rebuild the entry.
    """

    candidate_id: str
    sanitized_text: str
    skills: List[str]
    candidate: CandidateSnapshot
    source_version: datetime
    is_active: bool = True
    job_id: str = field(default_factory=lambda: str(uuid4()))
    state: IndexingJobState = IndexingJobState.PENDING
    retry_count: int = 0
    enqueued_at: datetime = field(default_factory=_utcnow)
    last_error: Optional[str] = None

    def __post_init__(self) -> None:
        self.source_version = as_utc(self.source_version)
        self.enqueued_at = as_utc(self.enqueued_at)

    def mark_processing(self) -> None:
        self.state = IndexingJobState.PROCESSING

    def mark_completed(self) -> None:
        self.state = IndexingJobState.COMPLETED
        self.last_error = None

    def mark_failed(self, error: str) -> None:
        self.state = IndexingJobState.FAILED
        self.last_error = error

    def schedule_retry(self, error: str) -> None:
        self.retry_count += 1
        self.state = IndexingJobState.PENDING
        self.last_error = error

    def to_message(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "candidate_id": self.candidate_id,
            "sanitized_text": self.sanitized_text,
            "skills": list(self.skills),
            "candidate": self.candidate.to_dict(),
            "source_version": self.source_version.isoformat(),
            "is_active": self.is_active,
            "state": self.state.value,
            "retry_count": self.retry_count,
            "enqueued_at": self.enqueued_at.isoformat(),
            "last_error": self.last_error,
        }

    @classmethod
    def from_message(cls, payload: Dict[str, Any]) -> "IndexingJob":
        try:
            return cls(
                job_id=str(payload["job_id"]),
                candidate_id=str(payload["candidate_id"]),
                sanitized_text=payload.get("sanitized_text") or "",
                skills=list(payload.get("skills") or []),
                candidate=CandidateSnapshot.from_dict(payload["candidate"]),
                source_version=_parse_datetime(payload["source_version"]),
                is_active=bool(payload.get("is_active", True)),
                state=IndexingJobState(payload.get("state", IndexingJobState.PENDING.value)),
                retry_count=int(payload.get("retry_count", 0)),
                enqueued_at=_parse_datetime(payload.get("enqueued_at") or _utcnow()),
                last_error=payload.get("last_error"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed indexing job message: {exc}") from exc


def build_text_vector(
    candidate: CandidateSnapshot,
    skills: List[str],
    sanitized_text: str,
) -> Dict[str, str]:
    """Map each lexeme to its strongest weight class.

    Names and title weigh A, skills B, sanitized body text C.
    """
    sources = (
        (TextWeight.A, " ".join(
            part for part in (candidate.first_name, candidate.last_name, candidate.current_title or "")
            if part
        )),
        (TextWeight.B, " ".join(skills)),
        (TextWeight.C, sanitized_text),
    )
    vector: Dict[str, str] = {}
    for weight, text in sources:
        for lexeme in lexemes(text):
            if lexeme not in vector or weight.value < vector[lexeme]:
                vector[lexeme] = weight.value
    return dict(sorted(vector.items()))


@dataclass(frozen=True)
class SearchIndexEntry:
    """Per-candidate derived search data.

    Owned by the indexing pipeline and always replaced as a whole.
    """

    candidate_id: str
    candidate: CandidateSnapshot
    is_active: bool
    skills: List[str]
    search_text: str
    text_vector: Dict[str, str]
    embedding: Optional[List[float]]
    embedding_model: Optional[str]
    source_version: datetime

    @classmethod
    def from_job(
        cls,
        job: IndexingJob,
        embedding: Optional[List[float]],
        embedding_model: Optional[str],
    ) -> "SearchIndexEntry":
        skills = sorted({skill.strip() for skill in job.skills if skill and skill.strip()})
        return cls(
            candidate_id=job.candidate_id,
            candidate=job.candidate,
            is_active=job.is_active,
            skills=skills,
            search_text=job.sanitized_text,
            text_vector=build_text_vector(job.candidate, skills, job.sanitized_text),
            embedding=[float(value) for value in embedding] if embedding is not None else None,
            embedding_model=embedding_model if embedding is not None else None,
            source_version=job.source_version,
        )

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "candidate": self.candidate.to_dict(),
            "is_active": self.is_active,
            "skills": list(self.skills),
            "search_text": self.search_text,
            "text_vector": dict(self.text_vector),
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "embedding_model": self.embedding_model,
            "source_version": self.source_version.isoformat(),
        }

    def to_canonical_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.to_canonical_json().encode("utf-8")).hexdigest()

    def is_newer_than(self, other: Optional["SearchIndexEntry"]) -> bool:
        """True when this entry may replace ``other`` (same or newer version)."""
        return other is None or self.source_version >= other.source_version


__all__ = [
    "IndexingJobState",
    "IndexingJob",
    "TextWeight",
    "SearchIndexEntry",
    "build_text_vector",
]
