"""
Price catalog engine - query and maintenance of a priced item catalog.

This package provides the headless logic behind the price management view of
the intervention cost dashboard:

- Searching and paginating the catalog held by a remote price store
- Summary statistics over the current result set
- Selection with add, edit, delete, and best-effort bulk delete
- CSV export of the current result set

The remote store is the source of truth; the engine only keeps a read-through
copy of its last answer inside an explicit `CatalogSession`.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from price_catalog.config import Settings, get_settings
from price_catalog.domain import (
    CatalogStats,
    PriceDraft,
    PriceFilter,
    PricePatch,
    PriceRecord,
    QueryFailed,
    StoreError,
    ValidationFailed,
)
from price_catalog.engine import aggregate, paginate, to_csv
from price_catalog.infrastructure import HttpPriceStore, PriceStore
from price_catalog.session import CatalogSession
from price_catalog.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "CatalogStats",
    "PriceDraft",
    "PriceFilter",
    "PricePatch",
    "PriceRecord",
    "QueryFailed",
    "StoreError",
    "ValidationFailed",
    # Engine
    "aggregate",
    "paginate",
    "to_csv",
    # Store
    "HttpPriceStore",
    "PriceStore",
    # Session
    "CatalogSession",
    # Logging
    "configure_logging",
    "get_logger",
]
