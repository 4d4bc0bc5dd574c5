"""Record store client — read-only access to the Airtable REST API.

The rest of the subsystem depends only on the narrow ``RecordStore`` protocol:
``query`` (optionally scoped to a view, a filter, a sort and a record cap) and
``find`` by record id. Nothing here caches.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

from app.core.config import Settings
from app.core.errors import ConfigurationError, RecordStorePermissionError, RemoteQueryError
from app.models.base import Record
from app.services.formula import Expr

logger = logging.getLogger(__name__)

# Airtable caps pages at 100 records
PAGE_SIZE = 100
# Airtable asks clients to back off 30s after a 429; start lower and grow
DEFAULT_BACKOFF_SECONDS = 1.0


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = "asc"  # "asc" or "desc"


class RecordStore(Protocol):
    async def query(
        self,
        table: str,
        *,
        view: str | None = None,
        filter: Expr | None = None,
        sort: list[SortSpec] | None = None,
        max_records: int | None = None,
    ) -> list[Record]: ...

    async def find(self, table: str, record_id: str) -> Record | None: ...


class AirtableRecordStore:
    """RecordStore over the Airtable REST API."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        endpoint_url: str = "https://api.airtable.com",
        timeout: float = 30.0,
        max_retries: int = 3,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    ) -> None:
        if not api_key:
            raise ConfigurationError("AIRTABLE_API_KEY is not defined")
        if not base_id:
            raise ConfigurationError("AIRTABLE_BASE_ID is not defined")
        self._base_url = f"{endpoint_url.rstrip('/')}/v0/{base_id}"
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._max_retries = max_retries
        self._sleep = sleep
        self._backoff = backoff_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> AirtableRecordStore:
        return cls(
            api_key=settings.airtable_api_key,
            base_id=settings.airtable_base_id,
            endpoint_url=settings.airtable_endpoint_url,
            timeout=settings.airtable_timeout_seconds,
            max_retries=settings.airtable_max_retries,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Queries ──────────────────────────────────────────────

    async def query(
        self,
        table: str,
        *,
        view: str | None = None,
        filter: Expr | None = None,
        sort: list[SortSpec] | None = None,
        max_records: int | None = None,
    ) -> list[Record]:
        params: dict[str, str | int] = {"pageSize": PAGE_SIZE}
        if view:
            params["view"] = view
        if filter is not None:
            params["filterByFormula"] = filter.to_formula()
        if max_records:
            params["maxRecords"] = max_records
        for i, spec in enumerate(sort or []):
            params[f"sort[{i}][field]"] = spec.field
            params[f"sort[{i}][direction]"] = spec.direction

        url = f"{self._base_url}/{quote(table, safe='')}"
        records: list[Record] = []
        offset: str | None = None
        while True:
            page_params = dict(params)
            if offset:
                page_params["offset"] = offset
            data = await self._get(url, page_params, table=table, operation="query")
            records.extend(_to_record(raw) for raw in data.get("records", []))
            offset = data.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break

        if max_records:
            records = records[:max_records]
        return records

    async def find(self, table: str, record_id: str) -> Record | None:
        url = f"{self._base_url}/{quote(table, safe='')}/{quote(record_id, safe='')}"
        try:
            data = await self._get(url, {}, table=table, operation="find")
        except RemoteQueryError as exc:
            if exc.status_code == 404:
                return None
            raise
        return _to_record(data)

    async def _get(
        self, url: str, params: dict, *, table: str, operation: str
    ) -> dict:
        attempt = 0
        while True:
            try:
                resp = await self._client.get(url, params=params, headers=self._headers)
            except httpx.TimeoutException as exc:
                raise RemoteQueryError(
                    f"Timed out querying {table}", table=table, operation=operation
                ) from exc
            except httpx.HTTPError as exc:
                raise RemoteQueryError(
                    f"Transport error querying {table}: {exc}",
                    table=table,
                    operation=operation,
                ) from exc

            if resp.status_code == 429 and attempt < self._max_retries:
                delay = _retry_after(resp) or self._backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "Rate limited on %s (attempt %d/%d), retrying in %.1fs",
                    table, attempt, self._max_retries, delay,
                )
                await self._sleep(delay)
                continue

            if resp.status_code in (401, 403):
                raise RecordStorePermissionError(
                    f"Not permitted to read {table}",
                    table=table,
                    operation=operation,
                    status_code=resp.status_code,
                )
            if resp.status_code >= 400:
                raise RemoteQueryError(
                    f"HTTP {resp.status_code} querying {table}: {resp.text[:200]}",
                    table=table,
                    operation=operation,
                    status_code=resp.status_code,
                )
            return resp.json()


def _to_record(raw: dict) -> Record:
    return Record(
        id=raw["id"],
        fields=raw.get("fields") or {},
        created_time=raw.get("createdTime"),
    )


def _retry_after(resp: httpx.Response) -> float | None:
    value = resp.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
