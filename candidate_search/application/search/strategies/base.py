"""Base class shared by all search strategies."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, ClassVar, List, Sequence, Tuple, TypeVar

from candidate_search.domain.entities.search import SearchMode, SearchRequest, SearchResponse

T = TypeVar("T")


def clamp_score(value: float) -> float:
    """Clamp a relevance value into [0, 1]."""
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, float(value)))


def page_slice(items: Sequence[T], request: SearchRequest) -> List[T]:
    """``LIMIT page_size OFFSET (page - 1) * page_size`` over an in-memory list."""
    return list(items[request.offset:request.offset + request.page_size])


async def gather_or_cancel(*calls: Awaitable[Any]) -> List[Any]:
    """Run store calls concurrently, cancelling the rest when one fails.

    Caller cancellation is handled the same way. Cancelled siblings are
    awaited before the error propagates.
    """
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class SearchStrategy(ABC):
    """A search strategy serving one or more concrete modes.

    ``default_modes`` and ``default_priority`` describe how the strategy is
    normally registered with the dispatcher; the registry may override both.
    """

    name: ClassVar[str] = "strategy"
    default_modes: ClassVar[Tuple[SearchMode, ...]] = ()
    default_priority: ClassVar[int] = 100

    @abstractmethod
    async def search(self, request: SearchRequest) -> SearchResponse:
        """Run the search for a request whose mode is already concrete."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = ["SearchStrategy", "clamp_score", "gather_or_cancel", "page_slice"]
