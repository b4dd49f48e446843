"""Indexing queue adapters."""
