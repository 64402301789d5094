"""
Catalog query engine.

Turns a `PriceFilter` into a result set by asking the store, then enforces the
exact-match category/source constraints locally so a store that ignores them
cannot leak rows into the view. Pagination is a pure slice of that result set.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from price_catalog.domain.errors import QueryFailed, StoreError
from price_catalog.domain.models import PriceFilter, PriceRecord
from price_catalog.infrastructure.store import PriceStore
from price_catalog.utils.logging import get_logger

log = get_logger(__name__)


def matches(record: PriceRecord, price_filter: PriceFilter, include_text: bool = True) -> bool:
    """
    Check one record against a filter.

    Text matches case-insensitively as a substring of the item name, category,
    or source. Category and source are exact matches, ANDed with the text.
    """
    if price_filter.category and record.category != price_filter.category:
        return False
    if price_filter.source and record.source != price_filter.source:
        return False
    if include_text and price_filter.text:
        needle = price_filter.text.casefold()
        haystack = (record.item_name, record.category or "", record.source)
        if not any(needle in value.casefold() for value in haystack):
            return False
    return True


def filter_records(
    records: Sequence[PriceRecord], price_filter: PriceFilter, include_text: bool = True
) -> List[PriceRecord]:
    """Keep matching records, preserving their order."""
    return [r for r in records if matches(r, price_filter, include_text=include_text)]


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(total / page_size))


def paginate(records: Sequence[PriceRecord], page_index: int, page_size: int) -> List[PriceRecord]:
    """
    Slice one page out of the full result set.

    Out-of-range pages are empty rather than an error.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    if page_index < 0:
        raise ValueError("page_index must be >= 0")
    start = page_index * page_size
    return list(records[start : start + page_size])


class CatalogQueryEngine:
    """
    Stateless search front-end over a `PriceStore`.

    Text semantics belong to the store (it may use a full-text index), so the
    engine only re-applies the exact-match constraints on what comes back.
    """

    def __init__(self, store: PriceStore) -> None:
        self.store = store

    async def search(self, price_filter: Optional[PriceFilter] = None) -> List[PriceRecord]:
        """
        Run a search.

        Raises
        ------
        QueryFailed
            When the store call fails. Callers keep their previous result set.
        """
        price_filter = price_filter or PriceFilter()
        try:
            records = await self.store.search(price_filter)
        except StoreError as exc:
            raise QueryFailed(str(exc)) from exc

        filtered = filter_records(records, price_filter, include_text=False)
        if len(filtered) != len(records):
            log.debug(
                "Dropped rows outside the category/source filter",
                extra={"returned": len(records), "kept": len(filtered)},
            )
        return filtered

    async def recent(self, limit: int, category: Optional[str] = None) -> List[PriceRecord]:
        """Most recently verified records, newest first."""
        try:
            records = await self.store.recent(limit, category=category)
        except StoreError as exc:
            raise QueryFailed(str(exc)) from exc
        if category:
            records = [r for r in records if r.category == category]
        return records[:limit]


__all__ = [
    "CatalogQueryEngine",
    "filter_records",
    "matches",
    "page_count",
    "paginate",
]
