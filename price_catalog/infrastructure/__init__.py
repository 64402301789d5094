"""
Infrastructure package for the price catalog engine.

Centralizes remote store connectivity (the store protocol and its HTTP
client). Keep this layer focused on I/O and resource management, decoupled
from query, aggregation, and session logic.
"""

from price_catalog.infrastructure.http_store import HttpPriceStore
from price_catalog.infrastructure.store import AbstractPriceStore, PriceStore

__all__ = [
    "AbstractPriceStore",
    "HttpPriceStore",
    "PriceStore",
]
