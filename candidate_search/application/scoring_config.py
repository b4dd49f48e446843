"""
Scoring Configuration Provider

Resolves the per-tenant weights, similarity threshold and fusion strategy used
by the semantic and hybrid strategies. Resolution is per key: tenant value,
then global tenant value, then the built-in default from settings.

Reads always go to the store. There is no cache, so an update is visible to the
next search request issued for the tenant.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from candidate_search.core.config import GLOBAL_TENANT_ID, Settings, get_settings
from candidate_search.domain.entities.scoring import (
    FUSION_STRATEGY_KEY,
    KEYWORD_WEIGHT_KEY,
    SEMANTIC_WEIGHT_KEY,
    SIMILARITY_THRESHOLD_KEY,
    FusionStrategy,
    ScoringConfig,
)
from candidate_search.domain.exceptions import ValidationError
from candidate_search.domain.interfaces import IScoringConfigStore

logger = structlog.get_logger(__name__)


def _parse_weight(raw: str) -> float:
    value = float(raw)
    if math.isnan(value) or value < 0:
        raise ValueError("weight must be a non-negative number")
    return value


def _parse_threshold(raw: str) -> float:
    value = float(raw)
    if not 0.0 <= value <= 1.0:
        raise ValueError("threshold must be between 0 and 1")
    return value


def _parse_fusion(raw: str) -> FusionStrategy:
    try:
        return FusionStrategy.parse(raw)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc


_PARSERS: Dict[str, Callable[[str], object]] = {
    SEMANTIC_WEIGHT_KEY: _parse_weight,
    KEYWORD_WEIGHT_KEY: _parse_weight,
    SIMILARITY_THRESHOLD_KEY: _parse_threshold,
    FUSION_STRATEGY_KEY: _parse_fusion,
}


class ScoringConfigProvider:
    """Tenant-scoped scoring configuration backed by an injected store."""

    def __init__(self, store: IScoringConfigStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def _defaults(self) -> Dict[str, object]:
        return {
            SEMANTIC_WEIGHT_KEY: self.settings.SEARCH_DEFAULT_SEMANTIC_WEIGHT,
            KEYWORD_WEIGHT_KEY: self.settings.SEARCH_DEFAULT_KEYWORD_WEIGHT,
            SIMILARITY_THRESHOLD_KEY: self.settings.SEARCH_DEFAULT_SIMILARITY_THRESHOLD,
            FUSION_STRATEGY_KEY: FusionStrategy.parse(self.settings.SEARCH_DEFAULT_FUSION_STRATEGY),
        }

    def _resolve_key(
        self,
        key: str,
        layers: List[Tuple[str, Dict[str, str]]],
        default: object,
    ) -> object:
        parser = _PARSERS[key]
        for tenant_id, values in layers:
            raw = values.get(key)
            if raw is None:
                continue
            try:
                return parser(raw)
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "Ignoring unparsable scoring value",
                    tenant_id=tenant_id,
                    key=key,
                    value=raw,
                    error=str(exc),
                )
        return default

    async def get_scoring_config(self, tenant_id: Optional[str] = None) -> ScoringConfig:
        """Resolve the configuration for a tenant; unknown tenants get global values."""
        tenant = tenant_id or GLOBAL_TENANT_ID

        layers: List[Tuple[str, Dict[str, str]]] = []
        if tenant != GLOBAL_TENANT_ID:
            layers.append((tenant, await self.store.get_values(tenant)))
        layers.append((GLOBAL_TENANT_ID, await self.store.get_values(GLOBAL_TENANT_ID)))

        defaults = self._defaults()
        resolved = {
            key: self._resolve_key(key, layers, default)
            for key, default in defaults.items()
        }

        return ScoringConfig(
            tenant_id=tenant,
            fusion_strategy=resolved[FUSION_STRATEGY_KEY],
            semantic_weight=float(resolved[SEMANTIC_WEIGHT_KEY]),
            keyword_weight=float(resolved[KEYWORD_WEIGHT_KEY]),
            similarity_threshold=float(resolved[SIMILARITY_THRESHOLD_KEY]),
        )

    async def set_scoring_config(
        self,
        tenant_id: Optional[str],
        semantic_weight: float,
        keyword_weight: float,
        similarity_threshold: float,
        fusion_strategy: "str | FusionStrategy",
    ) -> ScoringConfig:
        """Validate and persist a tenant's configuration.

        Raises:
            ValidationError: when a weight is negative, the threshold is outside
                [0, 1] or the fusion strategy tag is unknown.
        """
        config = ScoringConfig(
            tenant_id=tenant_id or GLOBAL_TENANT_ID,
            fusion_strategy=fusion_strategy,
            semantic_weight=semantic_weight,
            keyword_weight=keyword_weight,
            similarity_threshold=similarity_threshold,
        )
        await self.store.set_values(config.tenant_id, config.to_store_values())

        logger.info(
            "Scoring configuration updated",
            tenant_id=config.tenant_id,
            fusion_strategy=config.fusion_strategy.value,
            semantic_weight=config.semantic_weight,
            keyword_weight=config.keyword_weight,
            similarity_threshold=config.similarity_threshold,
        )
        return config


__all__ = ["ScoringConfigProvider"]
