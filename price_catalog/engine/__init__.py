"""
Engine package for the price catalog.

This module re-exports the query engine, the aggregation function, and the CSV
exporter so downstream code can import from `price_catalog.engine` directly.
All of these are stateless; session state lives in `price_catalog.session`.
"""

from price_catalog.engine.aggregation import aggregate
from price_catalog.engine.export import (
    CSV_MEDIA_TYPE,
    export_filename,
    to_csv,
    to_csv_bytes,
    write_csv,
)
from price_catalog.engine.query import (
    CatalogQueryEngine,
    filter_records,
    matches,
    page_count,
    paginate,
)

__all__ = [
    # Query
    "CatalogQueryEngine",
    "filter_records",
    "matches",
    "page_count",
    "paginate",
    # Aggregation
    "aggregate",
    # Export
    "CSV_MEDIA_TYPE",
    "export_filename",
    "to_csv",
    "to_csv_bytes",
    "write_csv",
]
