"""Multi-strategy candidate search with an asynchronous indexing pipeline."""

__version__ = "1.0.0"
