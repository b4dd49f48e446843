"""SQLAlchemy Core table definitions for the search index and client configs.

The schema itself is managed outside this service; these definitions describe
the columns the repositories read and write.
"""

from __future__ import annotations

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    ARRAY,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR


metadata = MetaData()

candidate_search_index = Table(
    "candidate_search_index",
    metadata,
    Column("candidate_id", String(64), primary_key=True),
    Column("first_name", String(200), nullable=False, server_default=""),
    Column("last_name", String(200), nullable=False, server_default=""),
    Column("full_name", String(400), nullable=False, server_default=""),
    Column("candidate_code", String(64)),
    Column("current_title", String(300)),
    Column("requisition_name", String(300)),
    Column("current_status", String(50), nullable=False, server_default="New"),
    Column("total_years_experience", Integer),
    Column("needs_sponsorship", Boolean, nullable=False, server_default="false"),
    Column("is_authorized_to_work", Boolean, nullable=False, server_default="false"),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    Column("skills", ARRAY(Text), nullable=False, server_default="{}"),
    Column("search_text", Text, nullable=False, server_default=""),
    Column("text_terms", JSONB, nullable=False, server_default="{}"),
    Column("search_vector", TSVECTOR),
    Column("embedding", Vector()),
    Column("embedding_model", String(100)),
    Column("source_version", DateTime(timezone=True), nullable=False),
    Column("content_hash", String(64), nullable=False),
    Column("indexed_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

client_configs = Table(
    "client_configs",
    metadata,
    Column("tenant_id", String(64), primary_key=True),
    Column("config_key", String(200), primary_key=True),
    Column("config_value", Text, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


__all__ = ["metadata", "candidate_search_index", "client_configs"]
