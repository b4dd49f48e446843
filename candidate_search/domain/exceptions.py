"""
Domain-level exceptions.

These exceptions represent business rule violations and domain logic errors.
They are mapped to HTTP responses in the API layer.
"""

from typing import Optional


class DomainException(Exception):
    """Base exception for all domain-level errors."""
    pass


class ValidationError(DomainException):
    """Raised when domain validation rules are violated."""
    pass


class ConfigurationError(DomainException):
    """Raised when configuration is invalid or missing.

    Dispatching a mode with no registered strategy and no semantic fallback
    ends here; it is never retried.
    """
    pass


class ProcessingError(DomainException):
    """Base exception for processing errors."""
    pass


class SearchError(ProcessingError):
    """Raised when search operations fail."""
    pass


class SearchTimeoutError(SearchError):
    """Raised when a search exceeds its time budget."""

    def __init__(self, timeout_seconds: float, strategy: Optional[str] = None):
        self.timeout_seconds = timeout_seconds
        self.strategy = strategy
        message = f"Search timed out after {timeout_seconds:g}s"
        if strategy:
            message += f" in {strategy}"
        super().__init__(message)


class EmbeddingGenerationError(ProcessingError):
    """Raised when embedding generation fails."""
    pass


class IndexingError(ProcessingError):
    """Raised when an indexing job cannot be processed."""

    def __init__(self, candidate_id: str, reason: str):
        self.candidate_id = candidate_id
        self.reason = reason
        super().__init__(f"Indexing failed for candidate {candidate_id}: {reason}")


__all__ = [
    "DomainException",
    "ValidationError",
    "ConfigurationError",
    "ProcessingError",
    "SearchError",
    "SearchTimeoutError",
    "EmbeddingGenerationError",
    "IndexingError",
]
