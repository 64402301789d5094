"""
Domain package for the price catalog engine.

Exports the record model, filter and edit inputs, statistics, result
contracts, and the error taxonomy. Keep this package focused on data
definitions and validation concerns.
"""

from price_catalog.domain.errors import (
    CatalogError,
    MutationFailed,
    QueryFailed,
    StaleResponse,
    StoreError,
    ValidationFailed,
)
from price_catalog.domain.models import (
    EDITABLE_FIELDS,
    CatalogStats,
    Category,
    PriceDraft,
    PriceFilter,
    PricePatch,
    PriceRecord,
    Source,
    SourceTotals,
    parse_draft,
    parse_patch,
)
from price_catalog.domain.results import (
    BulkDeleteResult,
    BulkEditResult,
    MutationResult,
    QueryResult,
)

__all__ = [
    # Models
    "EDITABLE_FIELDS",
    "CatalogStats",
    "Category",
    "PriceDraft",
    "PriceFilter",
    "PricePatch",
    "PriceRecord",
    "Source",
    "SourceTotals",
    "parse_draft",
    "parse_patch",
    # Results
    "BulkDeleteResult",
    "BulkEditResult",
    "MutationResult",
    "QueryResult",
    # Errors
    "CatalogError",
    "MutationFailed",
    "QueryFailed",
    "StaleResponse",
    "StoreError",
    "ValidationFailed",
]
