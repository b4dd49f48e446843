"""Application layer orchestrating domain ports."""
