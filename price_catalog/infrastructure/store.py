"""
Remote price store boundary.

The engine never owns persistent state: the store is the source of truth and
everything the engine shows is a read-through copy of its last answer.
Concrete stores (the HTTP client, or fakes in tests) implement `PriceStore`.
All methods raise `StoreError` when the store cannot confirm the call.
"""

from __future__ import annotations

import abc
from typing import Dict, List, Mapping, Optional, Protocol, runtime_checkable

from price_catalog.domain.models import PriceDraft, PriceFilter, PricePatch, PriceRecord


@runtime_checkable
class PriceStore(Protocol):
    """
    Operations the engine needs from the remote store.

    Ordering of `search` results is store-defined but must be stable for a
    fixed filter, since pagination slices it locally.
    """

    async def search(self, price_filter: PriceFilter) -> List[PriceRecord]:
        """Return records matching the filter, in store order."""
        ...

    async def recent(self, limit: int, category: Optional[str] = None) -> List[PriceRecord]:
        """Return the most recently verified records, newest first."""
        ...

    async def create(self, draft: PriceDraft) -> Optional[PriceRecord]:
        """Create a record; the store assigns `id` and `createdAt`."""
        ...

    async def update(self, patches: Mapping[str, PricePatch]) -> Dict[str, bool]:
        """Apply one patch per id in a single call; report success per id."""
        ...

    async def delete(self, record_id: str) -> None:
        """Remove one record."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class AbstractPriceStore(abc.ABC):
    """
    Optional ABC helper for class-based store implementations.
    """

    @abc.abstractmethod
    async def search(self, price_filter: PriceFilter) -> List[PriceRecord]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def recent(
        self, limit: int, category: Optional[str] = None
    ) -> List[PriceRecord]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def create(self, draft: PriceDraft) -> Optional[PriceRecord]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def update(self, patches: Mapping[str, PricePatch]) -> Dict[str, bool]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, record_id: str) -> None:  # pragma: no cover
        raise NotImplementedError

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> "AbstractPriceStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["AbstractPriceStore", "PriceStore"]
