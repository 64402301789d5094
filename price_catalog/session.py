"""
Catalog session: selection state and store mutations for one catalog view.

The session is the only stateful piece of the engine. It keeps the active
filter, the last good result set with its statistics, the pagination cursor,
and the set of selected record ids. Everything it holds is a copy of the
store's last answer; mutations are confirmed by the store and then followed by
a fresh query instead of patching local rows.

Usage:
    from price_catalog.infrastructure import HttpPriceStore
    from price_catalog.session import CatalogSession

    async with CatalogSession(HttpPriceStore()) as session:
        await session.search(PriceFilter(text="sign"))
        session.select_all()
        report = await session.bulk_delete()

Selection policy: a selection survives paging within one filter. A new filter
clears it; a re-query under the same filter keeps only ids still present.
"""

from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from price_catalog.config import PAGE_SIZE_OPTIONS, Settings, get_settings
from price_catalog.domain.errors import (
    CatalogError,
    MutationFailed,
    QueryFailed,
    StaleResponse,
    StoreError,
    ValidationFailed,
)
from price_catalog.domain.models import (
    CatalogStats,
    PriceDraft,
    PriceFilter,
    PricePatch,
    PriceRecord,
    parse_draft,
    parse_patch,
)
from price_catalog.domain.results import (
    BulkDeleteResult,
    BulkEditResult,
    MutationAction,
    MutationResult,
    QueryResult,
)
from price_catalog.engine.aggregation import aggregate
from price_catalog.engine.export import to_csv, write_csv
from price_catalog.engine.query import CatalogQueryEngine, page_count, paginate
from price_catalog.infrastructure.store import PriceStore
from price_catalog.utils.logging import get_logger

log = get_logger(__name__)


def _failure(
    action: MutationAction, record_id: Optional[str], exc: CatalogError
) -> MutationResult:
    return MutationResult(
        ok=False,
        action=action,
        record_id=record_id,
        error=str(exc),
        error_kind=exc.kind,
        problems=list(getattr(exc, "problems", [])),
        refreshed=False,
    )


class CatalogSession:
    """
    Explicit, constructible state for one catalog view.

    Parameters
    ----------
    store : PriceStore
        Remote store; the source of truth.
    settings : Settings | None
        Defaults for page size, mutation timeout, and bulk concurrency.
    """

    def __init__(self, store: PriceStore, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        self.store = store
        self.engine = CatalogQueryEngine(store)
        self.mutation_timeout = settings.mutation_timeout_seconds
        self.bulk_concurrency = settings.bulk_delete_concurrency
        self.recent_limit = settings.recent_limit
        self.currency_symbol = settings.currency_symbol

        self._filter = PriceFilter()
        self._requested_filter = self._filter
        self._records: List[PriceRecord] = []
        self._stats = CatalogStats()
        self._selected: set[str] = set()
        self._page_index = 0
        self._page_size = settings.default_page_size
        self._generation = 0
        self._closed = False
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------ state

    @property
    def filter(self) -> PriceFilter:
        return self._filter

    @property
    def requested_filter(self) -> PriceFilter:
        """The filter of the newest query issued; refreshes target this one."""
        return self._requested_filter

    @property
    def records(self) -> List[PriceRecord]:
        """The full filtered result set (all pages)."""
        return list(self._records)

    @property
    def stats(self) -> CatalogStats:
        return self._stats

    @property
    def selected(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def page_index(self) -> int:
        return self._page_index

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def page_count(self) -> int:
        return page_count(len(self._records), self._page_size)

    def page(self) -> List[PriceRecord]:
        return paginate(self._records, self._page_index, self._page_size)

    def set_page(self, page_index: int) -> None:
        if not 0 <= page_index < self.page_count:
            raise ValueError(f"page_index {page_index} out of range 0..{self.page_count - 1}")
        self._page_index = page_index

    def set_page_size(self, page_size: int) -> None:
        if page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"page_size must be one of {PAGE_SIZE_OPTIONS}")
        self._page_size = page_size
        self._page_index = 0

    # ---------------------------------------------------------------- queries

    def invalidate(self) -> None:
        """Abandon in-flight queries; their responses will be discarded."""
        self._generation += 1

    def _apply(self, generation: int, price_filter: PriceFilter, records: List[PriceRecord]) -> None:
        if self._closed or generation != self._generation:
            raise StaleResponse(f"query {generation} superseded by {self._generation}")

        if price_filter != self._filter:
            self._selected.clear()
            self._page_index = 0
        else:
            self._selected &= {record.id for record in records}

        self._filter = price_filter
        self._records = list(records)
        self._stats = aggregate(self._records)
        if self._page_index >= self.page_count:
            self._page_index = self.page_count - 1

    def _query_result(self, status: str, generation: int, error: Optional[str] = None) -> QueryResult:
        return QueryResult(
            status=status,  # type: ignore[typeddict-item]
            records=list(self._records),
            stats=self._stats,
            generation=generation,
            error=error,
        )

    async def search(self, price_filter: Optional[PriceFilter] = None) -> QueryResult:
        """
        Query the store and, unless superseded, replace the result set.

        Passing None re-runs the most recently requested filter, so a refresh
        issued while a filter change is in flight carries that change forward
        instead of reverting it. On failure the previous result set and stats
        stay in place and the result carries status "failed". A response
        overtaken by a newer query is dropped with status "stale".
        """
        target = self._requested_filter if price_filter is None else price_filter
        self._requested_filter = target
        self._generation += 1
        generation = self._generation
        log.debug(
            "Query issued",
            extra={"generation": generation, "params": target.to_params()},
        )

        try:
            records = await self.engine.search(target)
            self._apply(generation, target, records)
        except StaleResponse:
            log.debug("Discarded stale query response", extra={"generation": generation})
            return self._query_result("stale", generation)
        except QueryFailed as exc:
            if self._closed or generation != self._generation:
                log.debug("Discarded stale query failure", extra={"generation": generation})
                return self._query_result("stale", generation)
            self.last_error = str(exc)
            self._requested_filter = self._filter
            log.warning(
                f"Query failed, keeping previous results: {exc}",
                extra={"generation": generation, "rows": len(self._records)},
            )
            return self._query_result("failed", generation, error=str(exc))

        self.last_error = None
        log.info(
            "Query applied",
            extra={"generation": generation, "rows": len(self._records)},
        )
        return self._query_result("ok", generation)

    async def refresh(self) -> QueryResult:
        return await self.search(None)

    async def recent(self, limit: Optional[int] = None, category: Optional[str] = None) -> QueryResult:
        """
        Most recently verified records. Leaves the session's result set alone.
        """
        limit = self.recent_limit if limit is None else limit
        if limit < 1:
            raise ValueError("limit must be >= 1")
        try:
            records = await self.engine.recent(limit, category=category)
        except QueryFailed as exc:
            log.warning(f"Recent listing failed: {exc}")
            return QueryResult(status="failed", records=[], stats=CatalogStats(), error=str(exc))
        return QueryResult(status="ok", records=records, stats=aggregate(records), error=None)

    # -------------------------------------------------------------- selection

    def _visible_ids(self) -> set[str]:
        return {record.id for record in self._records}

    def select(self, record_id: str) -> bool:
        """Select a visible record. Ids outside the result set are ignored."""
        if record_id not in self._visible_ids():
            return False
        self._selected.add(record_id)
        return True

    def deselect(self, record_id: str) -> None:
        self._selected.discard(record_id)

    def toggle(self, record_id: str) -> bool:
        """Flip one record's selection; returns whether it is now selected."""
        if record_id in self._selected:
            self._selected.discard(record_id)
            return False
        return self.select(record_id)

    def select_all(self) -> FrozenSet[str]:
        """
        Select every record in the full result set, or clear the selection if
        all of them are already selected.
        """
        visible = self._visible_ids()
        if visible and not visible <= self._selected:
            self._selected = set(visible)
        else:
            self._selected.clear()
        return self.selected

    def clear_selection(self) -> None:
        self._selected.clear()

    def is_selected(self, record_id: str) -> bool:
        return record_id in self._selected

    # -------------------------------------------------------------- mutations

    async def _refresh_after_mutation(self) -> bool:
        result = await self.search(None)
        return result.get("status") == "ok"

    async def add(self, data: Union[PriceDraft, Mapping[str, Any]]) -> MutationResult:
        """
        Validate and create a record, then re-query.

        Validation happens before any network call; a rejected draft never
        reaches the store. Create is not retried.
        """
        try:
            draft = parse_draft(data)
        except ValidationFailed as exc:
            log.info("Add rejected by validation", extra={"problems": exc.problems})
            return _failure("add", None, exc)

        try:
            created = await self.store.create(draft)
        except StoreError as exc:
            failure = MutationFailed(f"Could not add '{draft.item_name}': {exc}")
            log.warning(str(failure))
            return _failure("add", None, failure)

        record_id = created.id if created is not None else None
        log.info("Price record added", extra={"item": draft.item_name, "record_id": record_id})
        refreshed = await self._refresh_after_mutation()
        return MutationResult(ok=True, action="add", record_id=record_id, refreshed=refreshed)

    async def edit(
        self, record_id: str, data: Union[PricePatch, Mapping[str, Any]]
    ) -> MutationResult:
        """
        Send the editable fields of `data` for one record, then re-query.
        Non-editable keys such as `id` or `createdAt` are dropped; an edit left
        with nothing to change succeeds without contacting the store.
        """
        try:
            patch = parse_patch(data)
        except ValidationFailed as exc:
            log.info("Edit rejected by validation", extra={"record_id": record_id})
            return _failure("edit", record_id, exc)

        if patch.is_empty:
            log.info("Edit has no editable fields, nothing sent", extra={"record_id": record_id})
            return MutationResult(ok=True, action="edit", record_id=record_id, refreshed=False)

        try:
            confirmed = await self.store.update({record_id: patch})
        except StoreError as exc:
            failure = MutationFailed(f"Could not update {record_id}: {exc}", record_id)
            log.warning(str(failure))
            return _failure("edit", record_id, failure)

        if not confirmed.get(record_id):
            failure = MutationFailed(f"Store did not confirm update of {record_id}", record_id)
            log.warning(str(failure))
            return _failure("edit", record_id, failure)

        log.info("Price record updated", extra={"record_id": record_id})
        refreshed = await self._refresh_after_mutation()
        return MutationResult(ok=True, action="edit", record_id=record_id, refreshed=refreshed)

    async def bulk_edit(
        self, patches: Mapping[str, Union[PricePatch, Mapping[str, Any]]]
    ) -> BulkEditResult:
        """
        Update several records in one store call and report per-record outcome.
        Patches that fail validation are reported and not sent; patches with no
        editable field succeed without being sent.
        """
        failed: Dict[str, str] = {}
        valid: Dict[str, PricePatch] = {}
        succeeded: List[str] = []
        for record_id, data in patches.items():
            try:
                patch = parse_patch(data)
            except ValidationFailed as exc:
                failed[record_id] = str(exc)
                continue
            if patch.is_empty:
                succeeded.append(record_id)
            else:
                valid[record_id] = patch

        changed = 0
        error_kind: Optional[str] = "validation" if failed else None
        if valid:
            try:
                confirmed = await self.store.update(valid)
            except StoreError as exc:
                confirmed = {}
                error_kind = MutationFailed.kind
                for record_id in valid:
                    failed[record_id] = str(exc)
            for record_id in valid:
                if confirmed.get(record_id):
                    succeeded.append(record_id)
                    changed += 1
                elif record_id not in failed:
                    failed[record_id] = "Store did not confirm the update"
                    error_kind = MutationFailed.kind

        if failed:
            log.warning(
                f"Bulk edit finished with {len(failed)} failure(s)",
                extra={"succeeded": len(succeeded), "failed_ids": sorted(failed)},
            )
        refreshed = await self._refresh_after_mutation() if changed else False
        return BulkEditResult(
            requested=len(patches),
            succeeded=succeeded,
            failed=failed,
            error_kind=error_kind,
            refreshed=refreshed,
        )

    async def _delete_one(self, record_id: str, limiter: asyncio.Semaphore) -> Optional[str]:
        """Delete one id; return an error message, or None on success."""
        async with limiter:
            try:
                await asyncio.wait_for(self.store.delete(record_id), timeout=self.mutation_timeout)
            except asyncio.TimeoutError:
                return f"Timed out after {self.mutation_timeout:g}s"
            except StoreError as exc:
                return str(exc)
        return None

    async def delete(self, record_id: str) -> MutationResult:
        """Remove one record, drop it from the selection, then re-query."""
        error = await self._delete_one(record_id, asyncio.Semaphore(1))
        if error is not None:
            failure = MutationFailed(f"Could not delete {record_id}: {error}", record_id)
            log.warning(str(failure))
            return _failure("delete", record_id, failure)

        self._selected.discard(record_id)
        log.info("Price record deleted", extra={"record_id": record_id})
        refreshed = await self._refresh_after_mutation()
        return MutationResult(ok=True, action="delete", record_id=record_id, refreshed=refreshed)

    def _ordered_selection(self) -> List[str]:
        ordered = [record.id for record in self._records if record.id in self._selected]
        return ordered + sorted(self._selected.difference(ordered))

    async def bulk_delete(self, record_ids: Optional[Iterable[str]] = None) -> BulkDeleteResult:
        """
        Delete many records, best effort.

        Every id is attempted even when others fail. Each call has its own
        timeout and an expired call counts as a failure for that id. The
        result lists which ids were removed and why the others were not.
        Defaults to the current selection.
        """
        if record_ids is None:
            targets = self._ordered_selection()
        else:
            targets = list(dict.fromkeys(record_ids))
        if not targets:
            return BulkDeleteResult(requested=0, succeeded=[], failed={}, refreshed=False)

        limiter = asyncio.Semaphore(self.bulk_concurrency)
        outcomes = await asyncio.gather(
            *(self._delete_one(record_id, limiter) for record_id in targets),
            return_exceptions=True,
        )

        succeeded: List[str] = []
        failed: Dict[str, str] = {}
        for record_id, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                log.error(
                    f"Unexpected error deleting {record_id}",
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )
                failed[record_id] = f"{type(outcome).__name__}: {outcome}"
            elif outcome is None:
                succeeded.append(record_id)
            else:
                failed[record_id] = outcome

        self._selected.difference_update(succeeded)
        if failed:
            log.warning(
                f"Bulk delete removed {len(succeeded)} of {len(targets)} record(s)",
                extra={"failed_ids": list(failed)},
            )
        else:
            log.info(f"Bulk delete removed {len(succeeded)} record(s)")

        refreshed = await self._refresh_after_mutation() if succeeded else False
        return BulkDeleteResult(
            requested=len(targets),
            succeeded=succeeded,
            failed=failed,
            refreshed=refreshed,
        )

    # ----------------------------------------------------------------- export

    def export_csv(self) -> str:
        """CSV of the full filtered result set, not just the current page."""
        return to_csv(self._records, currency_symbol=self.currency_symbol)

    def export_file(self, directory: Union[Path, str] = ".", on: Optional[date] = None) -> Path:
        return write_csv(self._records, directory, on=on, currency_symbol=self.currency_symbol)

    # -------------------------------------------------------------- lifecycle

    async def aclose(self) -> None:
        """Leave the view: drop in-flight responses and release the store."""
        self._closed = True
        self.invalidate()
        await self.store.aclose()

    async def __aenter__(self) -> "CatalogSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["CatalogSession"]
