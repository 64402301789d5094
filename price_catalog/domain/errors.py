"""
Error taxonomy for the price catalog engine.

The store client raises `StoreError`; the query engine wraps it in
`QueryFailed`; the session controller turns every one of these into a result
dictionary so callers can branch on the outcome without catching exceptions.
"""

from __future__ import annotations

from typing import List, Optional


class CatalogError(Exception):
    """Base class for all catalog engine errors."""

    kind: str = "error"


class ValidationFailed(CatalogError):
    """Local input check failed; nothing was sent to the store."""

    kind = "validation"

    def __init__(self, message: str, problems: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.problems: List[str] = list(problems or [])


class StoreError(CatalogError):
    """The remote price store could not be reached or rejected the call."""

    kind = "store"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QueryFailed(CatalogError):
    """A search against the store failed; the previous result set stays in place."""

    kind = "query"


class MutationFailed(CatalogError):
    """A create, update, or delete call was not confirmed by the store."""

    kind = "mutation"

    def __init__(self, message: str, record_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class StaleResponse(CatalogError):
    """A query response arrived after a newer query superseded it."""

    kind = "stale"


__all__ = [
    "CatalogError",
    "MutationFailed",
    "QueryFailed",
    "StaleResponse",
    "StoreError",
    "ValidationFailed",
]
