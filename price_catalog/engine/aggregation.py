"""
Aggregation engine: summary statistics over a result set.

`aggregate` is a pure function of its input. A record with a missing or
invalid price counts as 0 so the totals stay consistent with the visible rows.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Sequence

from price_catalog.domain.models import CatalogStats, PriceRecord, SourceTotals


def _comparable(moment: datetime) -> datetime:
    # Naive timestamps are taken as UTC so they can be compared with aware ones.
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def aggregate(records: Sequence[PriceRecord]) -> CatalogStats:
    """
    Compute counts, price extremes, per-source totals, and the latest
    verification time.

    The mean price is rounded half-up to a whole unit. On an empty input the
    extremes and `last_updated` are None and every count is 0.
    """
    if not records:
        return CatalogStats()

    prices = [record.price_or_zero for record in records]
    total_price = sum(prices, Decimal(0))
    avg_price = int((total_price / len(prices)).quantize(Decimal(1), rounding=ROUND_HALF_UP))

    by_source: Dict[str, SourceTotals] = {}
    for record, price in zip(records, prices):
        current = by_source.get(record.source, SourceTotals())
        by_source[record.source] = SourceTotals(
            count=current.count + 1, total_price=current.total_price + price
        )

    last_updated: Optional[datetime] = None
    for record in records:
        verified = record.verified_at
        if verified is None:
            continue
        if last_updated is None or _comparable(verified) > _comparable(last_updated):
            last_updated = verified

    return CatalogStats(
        total=len(records),
        categories=len({record.category for record in records}),
        avg_price=avg_price,
        min_price=min(prices),
        max_price=max(prices),
        last_updated=last_updated,
        by_source=by_source,
    )


__all__ = ["aggregate"]
