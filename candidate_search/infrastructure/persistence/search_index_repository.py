"""
Search index repositories.

``PostgresSearchIndexRepository`` keeps one row per candidate with a weighted
``tsvector`` (names and title A, skills B, sanitized text C) and a pgvector
embedding. ``InMemorySearchIndexRepository`` mirrors the same ranking rules
for local runs and tests.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import structlog
from sqlalchemy import func, literal, or_, and_
from sqlalchemy.dialects.postgresql import REGCONFIG, TSVECTOR, insert as pg_insert

from candidate_search.domain.entities.candidate import CandidateSnapshot
from candidate_search.domain.entities.indexing import SearchIndexEntry, TextWeight
from candidate_search.domain.interfaces import ISearchIndexRepository, TextMatch, VectorMatch
from candidate_search.domain.value_objects import PrefixQuery
from candidate_search.infrastructure.persistence.postgres_adapter import PostgresAdapter
from candidate_search.infrastructure.persistence.tables import candidate_search_index

logger = structlog.get_logger(__name__)

TEXT_SEARCH_CONFIG = "english"
# Scales rank by rank / (rank + 1), keeping ts_rank_cd inside [0, 1).
RANK_NORMALIZATION = 32

_SNAPSHOT_COLUMNS = """
    candidate_id, first_name, last_name, full_name, candidate_code,
    current_title, requisition_name, current_status, total_years_experience,
    needs_sponsorship, is_authorized_to_work
"""

_TIE_BREAK = "lower(last_name), lower(first_name), candidate_id"


def _snapshot_from_row(row: Mapping[str, Any]) -> CandidateSnapshot:
    return CandidateSnapshot.from_dict(dict(row))


def _paging_clause(limit: Optional[int], offset: int, first_param: int) -> tuple:
    """SQL suffix and params for optional LIMIT plus OFFSET."""
    if limit is None:
        return f"OFFSET ${first_param}", [offset]
    return f"LIMIT ${first_param} OFFSET ${first_param + 1}", [limit, offset]


class PostgresSearchIndexRepository(ISearchIndexRepository):
    """PostgreSQL full-text plus pgvector implementation."""

    def __init__(self, db_adapter: PostgresAdapter):
        self.db_adapter = db_adapter

    async def search_text(
        self,
        query: PrefixQuery,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[TextMatch]:
        if query.is_empty:
            return []

        paging, paging_params = _paging_clause(limit, offset, 2)
        sql = f"""
            SELECT {_SNAPSHOT_COLUMNS},
                   ts_rank_cd(search_vector, to_tsquery('{TEXT_SEARCH_CONFIG}', $1), {RANK_NORMALIZATION}) AS rank
            FROM candidate_search_index
            WHERE is_active = true
              AND search_vector @@ to_tsquery('{TEXT_SEARCH_CONFIG}', $1)
            ORDER BY rank DESC, {_TIE_BREAK}
            {paging}
        """
        rows = await self.db_adapter.fetch_all(sql, query.to_tsquery(), *paging_params)
        matched = [token.lower() for token in query.tokens]
        return [
            TextMatch(
                candidate=_snapshot_from_row(row),
                rank=float(row["rank"] or 0.0),
                matched_terms=matched,
            )
            for row in rows
        ]

    async def count_text(self, query: PrefixQuery) -> int:
        if query.is_empty:
            return 0
        sql = f"""
            SELECT COUNT(*) AS total
            FROM candidate_search_index
            WHERE is_active = true
              AND search_vector @@ to_tsquery('{TEXT_SEARCH_CONFIG}', $1)
        """
        row = await self.db_adapter.fetch_one(sql, query.to_tsquery())
        return int(row["total"]) if row else 0

    async def search_vector(
        self,
        embedding: List[float],
        threshold: float,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[VectorMatch]:
        paging, paging_params = _paging_clause(limit, offset, 3)
        sql = f"""
            SELECT {_SNAPSHOT_COLUMNS},
                   1 - (embedding <=> $1::vector) AS similarity
            FROM candidate_search_index
            WHERE is_active = true
              AND embedding IS NOT NULL
              AND 1 - (embedding <=> $1::vector) >= $2
            ORDER BY similarity DESC, {_TIE_BREAK}
            {paging}
        """
        rows = await self.db_adapter.fetch_all(
            sql, json.dumps(list(embedding)), threshold, *paging_params
        )
        return [
            VectorMatch(candidate=_snapshot_from_row(row), similarity=float(row["similarity"]))
            for row in rows
        ]

    async def count_vector(self, embedding: List[float], threshold: float) -> int:
        sql = """
            SELECT COUNT(*) AS total
            FROM candidate_search_index
            WHERE is_active = true
              AND embedding IS NOT NULL
              AND 1 - (embedding <=> $1::vector) >= $2
        """
        row = await self.db_adapter.fetch_one(sql, json.dumps(list(embedding)), threshold)
        return int(row["total"]) if row else 0

    async def get_entry(self, candidate_id: str) -> Optional[SearchIndexEntry]:
        sql = f"""
            SELECT {_SNAPSHOT_COLUMNS}, is_active, skills, search_text,
                   text_terms::text AS text_terms, embedding::text AS embedding,
                   embedding_model, source_version
            FROM candidate_search_index
            WHERE candidate_id = $1
        """
        row = await self.db_adapter.fetch_one(sql, candidate_id)
        if not row:
            return None
        return SearchIndexEntry(
            candidate_id=row["candidate_id"],
            candidate=_snapshot_from_row(row),
            is_active=bool(row["is_active"]),
            skills=list(row["skills"] or []),
            search_text=row["search_text"] or "",
            text_vector=json.loads(row["text_terms"] or "{}"),
            embedding=json.loads(row["embedding"]) if row["embedding"] else None,
            embedding_model=row["embedding_model"],
            source_version=row["source_version"],
        )

    def _build_upsert(self, entry: SearchIndexEntry):
        table = candidate_search_index
        snapshot = entry.candidate
        config = literal(TEXT_SEARCH_CONFIG, type_=REGCONFIG)

        def weighted(text_value: str, weight: TextWeight):
            return func.setweight(
                func.to_tsvector(config, text_value), weight.value, type_=TSVECTOR
            )

        name_and_title = " ".join(
            part for part in (snapshot.first_name, snapshot.last_name, snapshot.current_title or "")
            if part
        )
        search_vector = (
            weighted(name_and_title, TextWeight.A)
            .op("||")(weighted(" ".join(entry.skills), TextWeight.B))
            .op("||")(weighted(entry.search_text, TextWeight.C))
        )

        values = {
            "candidate_id": entry.candidate_id,
            "first_name": snapshot.first_name,
            "last_name": snapshot.last_name,
            "full_name": snapshot.full_name,
            "candidate_code": snapshot.candidate_code,
            "current_title": snapshot.current_title,
            "requisition_name": snapshot.requisition_name,
            "current_status": snapshot.current_status,
            "total_years_experience": snapshot.total_years_experience,
            "needs_sponsorship": snapshot.needs_sponsorship,
            "is_authorized_to_work": snapshot.is_authorized_to_work,
            "is_active": entry.is_active,
            "skills": list(entry.skills),
            "search_text": entry.search_text,
            "text_terms": entry.text_vector,
            "search_vector": search_vector,
            "embedding": entry.embedding,
            "embedding_model": entry.embedding_model,
            "source_version": entry.source_version,
            "content_hash": entry.content_hash,
            "indexed_at": datetime.now(timezone.utc),
        }

        statement = pg_insert(table).values(**values)
        excluded = statement.excluded
        # Older snapshots never overwrite newer ones; identical content is a no-op.
        newer_or_changed = or_(
            table.c.source_version < excluded.source_version,
            and_(
                table.c.source_version == excluded.source_version,
                table.c.content_hash != excluded.content_hash,
            ),
        )
        return statement.on_conflict_do_update(
            index_elements=[table.c.candidate_id],
            set_={name: excluded[name] for name in values if name != "candidate_id"},
            where=newer_or_changed,
        )

    async def upsert_entry(self, entry: SearchIndexEntry) -> bool:
        statement = self._build_upsert(entry)
        async with self.db_adapter.transaction() as connection:
            rowcount = await connection.execute_statement(statement)

        written = bool(rowcount)
        logger.debug(
            "Search index entry upserted",
            candidate_id=entry.candidate_id,
            written=written,
            source_version=entry.source_version.isoformat(),
        )
        return written

    async def check_health(self) -> Dict[str, Any]:
        health = await self.db_adapter.check_health()
        return {"repository": "postgres", **health}


_WEIGHT_VALUES = {
    TextWeight.A.value: 1.0,
    TextWeight.B.value: 0.4,
    TextWeight.C.value: 0.2,
}


class InMemorySearchIndexRepository(ISearchIndexRepository):
    """Process-local index with the same predicate, ranking and ordering rules."""

    def __init__(self):
        self._entries: Dict[str, SearchIndexEntry] = {}
        self._lock = asyncio.Lock()

    def _active(self) -> List[SearchIndexEntry]:
        return [entry for entry in self._entries.values() if entry.is_active]

    @staticmethod
    def _rank(query: PrefixQuery, text_vector: Mapping[str, str]) -> float:
        raw = 0.0
        for fragments in query.units:
            for fragment in fragments:
                weights = [
                    _WEIGHT_VALUES[weight]
                    for term, weight in text_vector.items()
                    if term.startswith(fragment)
                ]
                raw += max(weights, default=0.0)
        return raw / (raw + 1.0)

    @staticmethod
    def _page(items: Sequence[Any], limit: Optional[int], offset: int) -> List[Any]:
        if limit is None:
            return list(items[offset:])
        return list(items[offset:offset + limit])

    def _text_hits(self, query: PrefixQuery) -> List[TextMatch]:
        if query.is_empty:
            return []
        hits = []
        for entry in self._active():
            if not query.matches(entry.text_vector):
                continue
            hits.append(
                TextMatch(
                    candidate=entry.candidate,
                    rank=self._rank(query, entry.text_vector),
                    matched_terms=query.matched_terms(entry.text_vector),
                )
            )
        hits.sort(key=lambda hit: (-hit.rank,) + hit.candidate.sort_key)
        return hits

    async def search_text(
        self,
        query: PrefixQuery,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[TextMatch]:
        return self._page(self._text_hits(query), limit, offset)

    async def count_text(self, query: PrefixQuery) -> int:
        return len(self._text_hits(query))

    def _vector_hits(self, embedding: List[float], threshold: float) -> List[VectorMatch]:
        query_vector = np.asarray(embedding, dtype=float)
        query_norm = np.linalg.norm(query_vector)
        if query_norm == 0:
            return []

        hits = []
        for entry in self._active():
            if not entry.has_embedding or len(entry.embedding) != len(query_vector):
                continue
            candidate_vector = np.asarray(entry.embedding, dtype=float)
            candidate_norm = np.linalg.norm(candidate_vector)
            if candidate_norm == 0:
                continue
            similarity = float(np.dot(query_vector, candidate_vector) / (query_norm * candidate_norm))
            if similarity >= threshold:
                hits.append(VectorMatch(candidate=entry.candidate, similarity=similarity))
        hits.sort(key=lambda hit: (-hit.similarity,) + hit.candidate.sort_key)
        return hits

    async def search_vector(
        self,
        embedding: List[float],
        threshold: float,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[VectorMatch]:
        return self._page(self._vector_hits(embedding, threshold), limit, offset)

    async def count_vector(self, embedding: List[float], threshold: float) -> int:
        return len(self._vector_hits(embedding, threshold))

    async def get_entry(self, candidate_id: str) -> Optional[SearchIndexEntry]:
        return self._entries.get(candidate_id)

    async def upsert_entry(self, entry: SearchIndexEntry) -> bool:
        async with self._lock:
            current = self._entries.get(entry.candidate_id)
            if not entry.is_newer_than(current):
                return False
            if (
                current is not None
                and entry.source_version == current.source_version
                and entry.content_hash == current.content_hash
            ):
                return False
            self._entries[entry.candidate_id] = entry
            return True

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "repository": "memory",
            "entries": len(self._entries),
            "active_entries": len(self._active()),
        }


__all__ = ["PostgresSearchIndexRepository", "InMemorySearchIndexRepository"]
