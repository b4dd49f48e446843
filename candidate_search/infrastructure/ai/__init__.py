"""Embedding generation adapters."""
