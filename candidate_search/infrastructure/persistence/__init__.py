"""Postgres and in-memory persistence adapters."""
