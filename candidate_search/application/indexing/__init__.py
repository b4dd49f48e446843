"""Asynchronous indexing pipeline and worker pool."""
