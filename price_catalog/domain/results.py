"""
Result contracts returned by the session controller.

Every public session operation returns one of these TypedDicts rather than
raising, so a caller can render a precise message for each outcome. Fields are
optional to keep producers lightweight; consumers should use `.get()`.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, TypedDict

from price_catalog.domain.models import CatalogStats, PriceRecord

QueryStatus = Literal["ok", "failed", "stale"]
MutationAction = Literal["add", "edit", "delete"]


class QueryResult(TypedDict, total=False):
    """
    Outcome of a search.

    On "failed" the session keeps its previous records and stats; `records`
    and `stats` here are those retained values. On "stale" the response was
    discarded because a newer query was issued meanwhile.
    """

    status: QueryStatus
    records: List[PriceRecord]
    stats: CatalogStats
    generation: int
    error: Optional[str]


class MutationResult(TypedDict, total=False):
    """Outcome of a single add, edit, or delete."""

    ok: bool
    action: MutationAction
    record_id: Optional[str]
    error: Optional[str]
    error_kind: Optional[str]
    problems: List[str]
    refreshed: bool


class BulkDeleteResult(TypedDict, total=False):
    """
    Outcome of a bulk delete. Partial failure is a normal outcome: `succeeded`
    and `failed` together always cover every requested id.
    """

    requested: int
    succeeded: List[str]
    failed: Dict[str, str]
    refreshed: bool


class BulkEditResult(TypedDict, total=False):
    """Outcome of a multi-record edit sent in one update call."""

    requested: int
    succeeded: List[str]
    failed: Dict[str, str]
    error_kind: Optional[str]
    refreshed: bool


__all__ = [
    "BulkDeleteResult",
    "BulkEditResult",
    "MutationAction",
    "MutationResult",
    "QueryResult",
    "QueryStatus",
]
