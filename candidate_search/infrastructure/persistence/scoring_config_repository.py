"""Key/value scoring configuration stores (``client_configs`` rows)."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

import structlog

from candidate_search.domain.entities.scoring import SCORING_KEYS
from candidate_search.domain.interfaces import IScoringConfigStore
from candidate_search.infrastructure.persistence.postgres_adapter import PostgresAdapter

logger = structlog.get_logger(__name__)


class PostgresScoringConfigStore(IScoringConfigStore):
    """Reads and writes ``search.*`` keys in the ``client_configs`` table."""

    def __init__(self, db_adapter: PostgresAdapter):
        self.db_adapter = db_adapter

    async def get_values(self, tenant_id: str) -> Dict[str, str]:
        rows = await self.db_adapter.fetch_all(
            """
            SELECT config_key, config_value
            FROM client_configs
            WHERE tenant_id = $1 AND config_key = ANY($2::text[])
            """,
            tenant_id,
            list(SCORING_KEYS),
        )
        return {row["config_key"]: row["config_value"] for row in rows}

    async def set_values(self, tenant_id: str, values: Dict[str, str]) -> None:
        async with self.db_adapter.transaction() as connection:
            for key, value in sorted(values.items()):
                await connection.execute(
                    """
                    INSERT INTO client_configs (tenant_id, config_key, config_value, updated_at)
                    VALUES ($1, $2, $3, now())
                    ON CONFLICT (tenant_id, config_key)
                    DO UPDATE SET config_value = EXCLUDED.config_value, updated_at = now()
                    """,
                    tenant_id,
                    key,
                    value,
                )
        logger.debug("Scoring config rows written", tenant_id=tenant_id, keys=sorted(values))

    async def check_health(self) -> Dict[str, Any]:
        health = await self.db_adapter.check_health()
        return {"store": "postgres", **health}


class InMemoryScoringConfigStore(IScoringConfigStore):
    """Process-local configuration rows."""

    def __init__(self, initial: Dict[str, Dict[str, str]] | None = None):
        self._values: Dict[str, Dict[str, str]] = {
            tenant_id: dict(values) for tenant_id, values in (initial or {}).items()
        }
        self._lock = asyncio.Lock()

    async def get_values(self, tenant_id: str) -> Dict[str, str]:
        return dict(self._values.get(tenant_id, {}))

    async def set_values(self, tenant_id: str, values: Dict[str, str]) -> None:
        async with self._lock:
            self._values.setdefault(tenant_id, {}).update(values)

    async def check_health(self) -> Dict[str, Any]:
        return {"status": "healthy", "store": "memory", "tenants": len(self._values)}


__all__ = ["PostgresScoringConfigStore", "InMemoryScoringConfigStore"]
