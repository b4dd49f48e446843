"""Domain-layer service interfaces.

These abstractions define the stable contracts that the application layer relies on,
while infrastructure adapters provide concrete implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from candidate_search.domain.entities.candidate import CandidateSnapshot
from candidate_search.domain.entities.indexing import IndexingJob, SearchIndexEntry
from candidate_search.domain.value_objects import PrefixQuery


class IHealthCheck:
    """Health check interface mixin."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """Return health check details."""
        pass


@dataclass(frozen=True)
class TextMatch:
    """A candidate hit by a full-text prefix query."""

    candidate: CandidateSnapshot
    rank: float
    matched_terms: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class VectorMatch:
    """A candidate whose embedding is similar enough to the query."""

    candidate: CandidateSnapshot
    similarity: float


class ISearchIndexRepository(IHealthCheck, ABC):
    """Read/write access to the per-candidate search index.

    Every read is restricted to active candidates. Ordering of paged reads is
    score descending, then last name, first name and candidate id ascending.
    """

    @abstractmethod
    async def search_text(
        self,
        query: PrefixQuery,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[TextMatch]:
        """Ranked conjunctive prefix search; ``limit=None`` returns all hits."""
        pass

    @abstractmethod
    async def count_text(self, query: PrefixQuery) -> int:
        """Count candidates matching the same predicate as ``search_text``."""
        pass

    @abstractmethod
    async def search_vector(
        self,
        embedding: List[float],
        threshold: float,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[VectorMatch]:
        """Cosine similarity search, discarding similarity below ``threshold``."""
        pass

    @abstractmethod
    async def count_vector(self, embedding: List[float], threshold: float) -> int:
        """Count candidates at or above ``threshold``."""
        pass

    @abstractmethod
    async def get_entry(self, candidate_id: str) -> Optional[SearchIndexEntry]:
        """Get the current entry for a candidate."""
        pass

    @abstractmethod
    async def upsert_entry(self, entry: SearchIndexEntry) -> bool:
        """Atomically replace the entry unless a newer version is stored.

        Returns True when the entry was written.
        """
        pass


class IScoringConfigStore(IHealthCheck, ABC):
    """Key/value configuration rows scoped by tenant."""

    @abstractmethod
    async def get_values(self, tenant_id: str) -> Dict[str, str]:
        """Return all stored values for a tenant (empty when unknown)."""
        pass

    @abstractmethod
    async def set_values(self, tenant_id: str, values: Dict[str, str]) -> None:
        """Persist values for a tenant in one transaction."""
        pass


class IEmbeddingService(IHealthCheck, ABC):
    """Text embedding generation."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        pass

    @abstractmethod
    async def generate_embedding(self, text: str) -> List[float]:
        """Generate an embedding for document text."""
        pass

    @abstractmethod
    async def embed_query(self, text: str) -> List[float]:
        """Generate (or reuse a cached) embedding for a search query."""
        pass


class ISkillExtractor(ABC):
    """External skill extraction collaborator."""

    @abstractmethod
    async def extract(self, text: str) -> List[str]:
        """Return skill names found in ``text``."""
        pass


class IPiiSanitizer(ABC):
    """External PII redaction collaborator."""

    @abstractmethod
    async def sanitize(
        self,
        text: str,
        known_name: Optional[str] = None,
        known_email: Optional[str] = None,
        known_address: Optional[str] = None,
    ) -> str:
        """Redact pattern-based PII and the candidate's own identifying values."""
        pass


@dataclass
class QueueMessage:
    """Envelope for a received indexing job."""

    message_id: str
    job: IndexingJob
    receipt_handle: str
    delivery_count: int = 1


class IIndexingQueue(IHealthCheck, ABC):
    """Durable, at-least-once queue of indexing jobs."""

    @abstractmethod
    async def enqueue(self, job: IndexingJob, delay_seconds: float = 0) -> str:
        """Add a job, return its message id."""
        pass

    @abstractmethod
    async def receive(self, max_messages: int = 1) -> List[QueueMessage]:
        """Take up to ``max_messages`` due messages; each is held by one consumer."""
        pass

    @abstractmethod
    async def complete(self, message: QueueMessage) -> bool:
        """Acknowledge a processed message."""
        pass

    @abstractmethod
    async def abandon(self, message: QueueMessage, delay_seconds: float = 0) -> bool:
        """Return a message to the queue, visible again after ``delay_seconds``."""
        pass

    @abstractmethod
    async def dead_letter(self, message: QueueMessage, reason: str) -> bool:
        """Move a message to the dead letter queue."""
        pass

    @abstractmethod
    async def pending_count(self) -> int:
        """Number of messages waiting for delivery."""
        pass


__all__ = [
    "IHealthCheck",
    "TextMatch",
    "VectorMatch",
    "ISearchIndexRepository",
    "IScoringConfigStore",
    "IEmbeddingService",
    "ISkillExtractor",
    "IPiiSanitizer",
    "QueueMessage",
    "IIndexingQueue",
]
