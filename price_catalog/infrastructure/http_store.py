"""
HTTP/JSON client for the remote price store.

Talks to the price service's REST endpoints with an httpx AsyncClient. The
service wraps payloads in an envelope:

    {"success": true, "data": [...], "count": 2}
    {"error": true, "message": "Failed to search prices", "details": "..."}

Idempotent calls (search, recent, update, delete) are retried on transport
errors using tenacity with exponential backoff. Create is never retried: a
lost response could otherwise duplicate the record.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from price_catalog.config import get_settings
from price_catalog.domain.errors import StoreError
from price_catalog.domain.models import PriceDraft, PriceFilter, PricePatch, PriceRecord
from price_catalog.infrastructure.store import AbstractPriceStore
from price_catalog.utils.logging import get_logger

log = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict):
        message = body.get("message") or response.reason_phrase
        details = body.get("details")
        return f"{message}: {details}" if details else str(message)
    return response.reason_phrase


def _parse_records(payload: Any, context: str) -> List[PriceRecord]:
    """
    Validate the `data` array of a listing response.

    Rows without an id or name cannot be selected or shown, so they are skipped
    with a warning instead of failing the whole listing.
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise StoreError(f"{context}: expected a list of records, got {type(payload).__name__}")

    records: List[PriceRecord] = []
    for index, item in enumerate(payload):
        try:
            records.append(PriceRecord.model_validate(item))
        except ValidationError as exc:
            log.warning(
                f"{context}: skipping malformed record at position {index}",
                extra={"position": index, "errors": exc.error_count()},
            )
    return records


def _record_id(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    value = item.get("id", item.get("_id"))
    return str(value) if value is not None else None


class HttpPriceStore(AbstractPriceStore):
    """
    Price store reached over HTTP.

    Parameters
    ----------
    base_url : str | None
        Root of the store API (e.g. http://localhost:5000/api). Defaults to settings.
    timeout : float | None
        Per-request timeout in seconds. Defaults to settings.
    retry_attempts : int | None
        Total attempts for idempotent calls (1 disables retry).
    retry_backoff : float | None
        Exponential backoff multiplier in seconds.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override, mainly for tests (httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.store_url).rstrip("/")
        self.retry_attempts = retry_attempts or settings.store_retry_attempts
        self.retry_backoff = (
            settings.store_retry_backoff_seconds if retry_backoff is None else retry_backoff
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout or settings.store_timeout_seconds),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff, min=0, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(log, logging.WARNING),
            reraise=True,
        )

    async def _call(
        self,
        method: str,
        path: str,
        *,
        idempotent: bool,
        missing_ok_on_retry: bool = False,
        **kwargs: Any,
    ) -> Any:
        """
        Send one request and return the envelope's `data` member.

        With `missing_ok_on_retry`, a 404 answered to a retried attempt counts
        as success: an earlier attempt may have been applied before its
        response was lost.

        Raises
        ------
        StoreError
            On transport failure (after retries, for idempotent calls), a
            non-2xx status, a non-JSON body, or an error envelope.
        """
        attempts = 1
        try:
            if idempotent:
                async for attempt in self._retrying():
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        response = await self._client.request(method, path, **kwargs)
            else:
                response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc

        if missing_ok_on_retry and attempts > 1 and response.status_code == 404:
            log.info(
                f"{method} {path} returned 404 on attempt {attempts}; treating as already applied",
                extra={"attempts": attempts},
            )
            return None
        if response.is_error:
            raise StoreError(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise StoreError(
                f"{method} {path} returned a non-JSON body", status_code=response.status_code
            ) from exc
        if isinstance(body, dict):
            if body.get("error") or body.get("success") is False:
                raise StoreError(
                    f"{method} {path} rejected: {body.get('message', 'unknown error')}",
                    status_code=response.status_code,
                )
            return body.get("data")
        return body

    async def search(self, price_filter: PriceFilter) -> List[PriceRecord]:
        data = await self._call(
            "GET", "/prices/search", idempotent=True, params=price_filter.to_params()
        )
        return _parse_records(data, "search")

    async def recent(self, limit: int, category: Optional[str] = None) -> List[PriceRecord]:
        params: Dict[str, Any] = {"limit": limit}
        if category:
            params["category"] = category
        data = await self._call("GET", "/prices/cached", idempotent=True, params=params)
        return _parse_records(data, "recent")

    async def create(self, draft: PriceDraft) -> Optional[PriceRecord]:
        data = await self._call("POST", "/prices/add", idempotent=False, json=draft.to_payload())
        if isinstance(data, dict):
            try:
                return PriceRecord.model_validate(data)
            except ValidationError:
                return None
        return None

    async def update(self, patches: Mapping[str, PricePatch]) -> Dict[str, bool]:
        if not patches:
            return {}
        body = {"prices": [patch.to_payload(record_id) for record_id, patch in patches.items()]}
        data = await self._call("PUT", "/prices/update", idempotent=True, json=body)
        confirmed = {_record_id(item) for item in data} if isinstance(data, list) else set()
        return {record_id: record_id in confirmed for record_id in patches}

    async def delete(self, record_id: str) -> None:
        await self._call(
            "DELETE",
            f"/prices/{quote(record_id, safe='')}",
            idempotent=True,
            missing_ok_on_retry=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["HttpPriceStore"]
