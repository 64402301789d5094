from __future__ import annotations

import pytest

from price_catalog.domain.errors import QueryFailed, StoreError
from price_catalog.domain.models import PriceFilter, PriceRecord
from price_catalog.engine.query import (
    CatalogQueryEngine,
    filter_records,
    matches,
    page_count,
    paginate,
)

PAGE_SIZE = 10
ROW_COUNT = 23


def test_text_match_is_case_insensitive_on_item_name(sample_records):
    hits = filter_records(sample_records, PriceFilter(text="SIGN"))
    assert [r.item_name for r in hits] == ["Sign A"]


def test_empty_filter_matches_everything(sample_records):
    assert filter_records(sample_records, PriceFilter()) == sample_records


def test_category_and_source_are_anded_with_text(sample_records):
    assert filter_records(sample_records, PriceFilter(text="a", category="marking")) == [
        sample_records[1]
    ]
    assert filter_records(sample_records, PriceFilter(category="marking", source="CPWD_SOR")) == []


def test_category_is_exact_not_substring(sample_records):
    assert not matches(sample_records[0], PriceFilter(category="sign"))


def test_matching_ignores_text_when_asked(sample_records):
    assert matches(sample_records[1], PriceFilter(text="zzz"), include_text=False)


def test_paginate_slices_full_result_set(store_factory, rows_factory):
    records = list(store_factory(rows_factory(ROW_COUNT)).records.values())
    assert [r.id for r in paginate(records, 0, PAGE_SIZE)] == [f"r{i:03d}" for i in range(10)]
    assert len(paginate(records, 2, PAGE_SIZE)) == 3
    assert paginate(records, 5, PAGE_SIZE) == []


def test_paginate_rejects_bad_arguments(sample_records):
    with pytest.raises(ValueError):
        paginate(sample_records, -1, PAGE_SIZE)
    with pytest.raises(ValueError):
        paginate(sample_records, 0, 0)


@pytest.mark.parametrize("total, expected", [(0, 1), (1, 1), (10, 1), (11, 2), (23, 3)])
def test_page_count(total, expected):
    assert page_count(total, PAGE_SIZE) == expected


@pytest.mark.asyncio
async def test_engine_search_returns_store_order(store):
    engine = CatalogQueryEngine(store)
    records = await engine.search(PriceFilter(text="sign"))
    assert [r.item_name for r in records] == ["Sign A"]

    again = await engine.search(PriceFilter())
    assert [r.id for r in again] == ["p1", "p2"]


@pytest.mark.asyncio
async def test_engine_enforces_exact_filters_when_store_ignores_them(sample_records):
    class SloppyStore:
        async def search(self, price_filter):
            return list(sample_records)

    engine = CatalogQueryEngine(SloppyStore())
    records = await engine.search(PriceFilter(source="GeM"))
    assert [r.id for r in records] == ["p2"]


@pytest.mark.asyncio
async def test_engine_wraps_store_errors(store):
    store.fail_search = True
    with pytest.raises(QueryFailed) as excinfo:
        await CatalogQueryEngine(store).search(PriceFilter())
    assert isinstance(excinfo.value.__cause__, StoreError)


@pytest.mark.asyncio
async def test_engine_recent_is_newest_first(store):
    records = await CatalogQueryEngine(store).recent(limit=5)
    assert [r.id for r in records] == ["p2", "p1"]


@pytest.mark.asyncio
async def test_engine_recent_respects_limit_and_category(store):
    records = await CatalogQueryEngine(store).recent(limit=1, category="signage")
    assert [r.id for r in records] == ["p1"]
    assert isinstance(records[0], PriceRecord)
