"""
Search Dispatcher

Routes a search request to one registered strategy:
- ``auto`` requests are classified into a concrete mode first
- The lowest-priority strategy that handles the mode wins
- Unhandled modes fall back to the semantic strategy
- No strategy and no semantic fallback is a configuration error

The registry is assembled once at startup and never mutated afterwards, so
concurrent dispatches share nothing but read-only state.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

import structlog

from candidate_search.application.search.query_classifier import QueryClassifier
from candidate_search.application.search.strategies.base import SearchStrategy
from candidate_search.domain.entities.search import SearchMode, SearchRequest, SearchResponse
from candidate_search.domain.exceptions import (
    ConfigurationError,
    DomainException,
    SearchError,
    SearchTimeoutError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StrategyRegistration:
    """A strategy tagged with the modes it serves and its priority."""

    strategy: SearchStrategy
    modes: FrozenSet[SearchMode]
    priority: int

    @classmethod
    def of(
        cls,
        strategy: SearchStrategy,
        modes: Optional[Iterable[SearchMode]] = None,
        priority: Optional[int] = None,
    ) -> "StrategyRegistration":
        return cls(
            strategy=strategy,
            modes=frozenset(modes if modes is not None else strategy.default_modes),
            priority=strategy.default_priority if priority is None else priority,
        )

    @property
    def name(self) -> str:
        return self.strategy.name

    def can_handle(self, mode: SearchMode) -> bool:
        return mode in self.modes


class SearchDispatcher:
    """Resolves and runs the strategy for each search request."""

    def __init__(
        self,
        registrations: Sequence[StrategyRegistration],
        classifier: Optional[QueryClassifier] = None,
        timeout_seconds: Optional[float] = None,
    ):
        # Stable sort keeps registration order among equal priorities.
        self._registrations: List[StrategyRegistration] = sorted(
            registrations, key=lambda registration: registration.priority
        )
        self.classifier = classifier or QueryClassifier()
        self.timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None

    @property
    def registrations(self) -> List[StrategyRegistration]:
        return list(self._registrations)

    def _find(self, mode: SearchMode) -> Optional[StrategyRegistration]:
        for registration in self._registrations:
            if registration.can_handle(mode):
                return registration
        return None

    def resolve(self, mode: SearchMode) -> StrategyRegistration:
        """Pick the strategy for a concrete mode.

        Raises:
            ConfigurationError: no strategy handles the mode and no semantic
                strategy is registered.
        """
        registration = self._find(mode)
        if registration is not None:
            return registration

        fallback = self._find(SearchMode.SEMANTIC)
        if fallback is not None:
            logger.warning(
                "No strategy for search mode, falling back to semantic",
                mode=mode.value,
                strategy=fallback.name,
            )
            return fallback

        raise ConfigurationError(
            f"No search strategy registered for mode '{mode.value}' and no semantic fallback"
        )

    async def dispatch(self, request: SearchRequest) -> SearchResponse:
        """Classify if needed, resolve a strategy and run it."""
        if request.mode is SearchMode.AUTO:
            classification = self.classifier.explain(request.term)
            resolved_request = request.with_mode(classification.mode)
            logger.info(
                "Search mode detected",
                detected_mode=classification.mode.value,
                rule=classification.rule,
                detail=classification.detail,
                rules_version=self.classifier.version,
            )
        else:
            resolved_request = request

        registration = self.resolve(resolved_request.mode)
        if not registration.can_handle(resolved_request.mode):
            resolved_request = resolved_request.with_mode(SearchMode.SEMANTIC)

        logger.info(
            "Dispatching search",
            requested_mode=request.mode.value,
            resolved_mode=resolved_request.mode.value,
            strategy=registration.name,
            tenant_id=request.effective_tenant_id,
            page=request.page,
            page_size=request.page_size,
        )
        return await self._run(registration.strategy, resolved_request)

    async def _run(self, strategy: SearchStrategy, request: SearchRequest) -> SearchResponse:
        try:
            if self.timeout_seconds is None:
                return await strategy.search(request)
            return await asyncio.wait_for(strategy.search(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error(
                "Search timed out",
                strategy=strategy.name,
                timeout_seconds=self.timeout_seconds,
            )
            raise SearchTimeoutError(self.timeout_seconds or 0.0, strategy.name) from exc
        except DomainException:
            raise
        except Exception as exc:
            logger.error("Search strategy failed", strategy=strategy.name, error=str(exc))
            raise SearchError(f"{strategy.name} search failed: {exc}") from exc

    def describe(self) -> Dict[str, Any]:
        """Registry summary for health reporting."""
        return {
            "strategies": [
                {
                    "name": registration.name,
                    "modes": sorted(mode.value for mode in registration.modes),
                    "priority": registration.priority,
                }
                for registration in self._registrations
            ],
            "classifier_rules_version": self.classifier.version,
            "timeout_seconds": self.timeout_seconds,
        }


__all__ = ["SearchDispatcher", "StrategyRegistration"]
