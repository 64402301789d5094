"""
Pytest configuration for the price catalog engine.

Provides fixtures for:
- Settings with short timeouts for tests
- An in-memory price store with fault injection and call recording
- The two-record sample catalog used across scenarios
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import pytest

from price_catalog.config import Settings
from price_catalog.domain.errors import StoreError
from price_catalog.domain.models import PriceDraft, PriceFilter, PricePatch, PriceRecord
from price_catalog.engine.query import filter_records
from price_catalog.infrastructure.store import AbstractPriceStore
from price_catalog.session import CatalogSession

SAMPLE_ROWS: List[Dict[str, Any]] = [
    {
        "id": "p1",
        "itemName": "Sign A",
        "category": "signage",
        "unitPrice": 15000,
        "unit": "nos",
        "source": "CPWD_SOR",
        "ircReference": ["IRC:67-2022"],
        "lastVerified": "2026-03-01T10:00:00Z",
    },
    {
        "id": "p2",
        "itemName": "Paint B",
        "category": "marking",
        "unitPrice": 850,
        "unit": "sqm",
        "source": "GeM",
        "ircReference": ["IRC:35-2015", "IRC:SP:84"],
        "lastVerified": "2026-05-12T08:30:00Z",
    },
]


class FakePriceStore(AbstractPriceStore):
    """
    In-memory store that behaves like the remote one.

    Records keep insertion order so search results are stable. Faults are
    injected per operation; every call is recorded in `calls`.
    """

    def __init__(self, rows: Iterable[Mapping[str, Any]] = ()) -> None:
        self.records: Dict[str, PriceRecord] = {}
        for row in rows:
            record = PriceRecord.model_validate(dict(row))
            self.records[record.id] = record
        self.calls: List[Tuple[str, Any]] = []
        self._ids = itertools.count(len(self.records) + 1)

        self.fail_search = False
        self.fail_create = False
        self.fail_update = False
        self.unconfirmed_updates: Set[str] = set()
        self.fail_deletes: Set[str] = set()
        self.hang_deletes: Set[str] = set()
        self.search_gates: Dict[Optional[str], asyncio.Event] = {}
        self.closed = False

    def op_count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    async def search(self, price_filter: PriceFilter) -> List[PriceRecord]:
        self.calls.append(("search", price_filter))
        gate = self.search_gates.get(price_filter.text)
        if gate is not None:
            await gate.wait()
        if self.fail_search:
            raise StoreError("search unavailable", status_code=503)
        return filter_records(list(self.records.values()), price_filter)

    async def recent(self, limit: int, category: Optional[str] = None) -> List[PriceRecord]:
        self.calls.append(("recent", (limit, category)))
        if self.fail_search:
            raise StoreError("listing unavailable", status_code=503)
        rows = [r for r in self.records.values() if category is None or r.category == category]
        rows.sort(key=lambda r: r.verified_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return rows[:limit]

    async def create(self, draft: PriceDraft) -> Optional[PriceRecord]:
        self.calls.append(("create", draft))
        if self.fail_create:
            raise StoreError("insert failed", status_code=500)
        now = datetime.now(timezone.utc)
        record = PriceRecord(
            id=f"p{next(self._ids)}",
            created_at=now,
            last_verified=now,
            **draft.model_dump(),
        )
        self.records[record.id] = record
        return record

    async def update(self, patches: Mapping[str, PricePatch]) -> Dict[str, bool]:
        self.calls.append(("update", dict(patches)))
        if self.fail_update:
            raise StoreError("update failed", status_code=500)
        outcome: Dict[str, bool] = {}
        for record_id, patch in patches.items():
            current = self.records.get(record_id)
            if current is None or record_id in self.unconfirmed_updates:
                outcome[record_id] = False
                continue
            self.records[record_id] = PriceRecord.model_validate(
                {**current.model_dump(), **patch.model_dump(exclude_unset=True)}
            )
            outcome[record_id] = True
        return outcome

    async def delete(self, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        if record_id in self.hang_deletes:
            await asyncio.sleep(3600)
        if record_id in self.fail_deletes:
            raise StoreError(f"delete of {record_id} failed", status_code=500)
        if record_id not in self.records:
            raise StoreError(f"{record_id} not found", status_code=404)
        del self.records[record_id]

    async def aclose(self) -> None:
        self.closed = True


def make_rows(count: int, category: str = "signage", source: str = "CPWD_SOR") -> List[Dict[str, Any]]:
    return [
        {
            "id": f"r{index:03d}",
            "itemName": f"Item {index:03d}",
            "category": category,
            "unitPrice": 100 + index,
            "unit": "nos",
            "source": source,
        }
        for index in range(count)
    ]


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides: short timeouts, no backoff.
    """
    return Settings(
        store_url="http://store.test/api",
        store_retry_attempts=3,
        store_retry_backoff_seconds=0,
        mutation_timeout_seconds=0.05,
        bulk_delete_concurrency=4,
        default_page_size=10,
        log_level="DEBUG",
    )


@pytest.fixture
def sample_rows() -> List[Dict[str, Any]]:
    return [dict(row) for row in SAMPLE_ROWS]


@pytest.fixture
def sample_records(sample_rows) -> List[PriceRecord]:
    return [PriceRecord.model_validate(row) for row in sample_rows]


@pytest.fixture
def store(sample_rows) -> FakePriceStore:
    return FakePriceStore(sample_rows)


@pytest.fixture
def session(store: FakePriceStore, test_settings: Settings) -> CatalogSession:
    return CatalogSession(store, settings=test_settings)


@pytest.fixture
def rows_factory():
    """Build N uniform catalog rows: rows_factory(25, category="marking")."""
    return make_rows


@pytest.fixture
def store_factory():
    """Build a fake store from arbitrary rows."""
    return FakePriceStore
