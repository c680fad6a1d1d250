"""Row store over the hosted table API (Supabase / PostgREST REST interface)."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from terrence.errors import StoreError
from terrence.store.base import (
    CALL_EDGE_COLUMNS,
    EDGE_SCAN_LIMIT,
    IN_FILTER_BATCH_SIZE,
    CallEdgeFilter,
    FunctionFilter,
    RowStore,
)
from terrence.utils import chunked

logger = logging.getLogger(__name__)

Params = list[tuple[str, str]]


def _quote(value: str) -> str:
    """Quote a value for PostgREST ``or``/``in`` lists."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def function_params(flt: FunctionFilter) -> Params:
    params: Params = [("select", ",".join(flt.columns))]
    if flt.function_id:
        params.append(("id", f"eq.{flt.function_id}"))
    if flt.codebase_id:
        params.append(("codebase_id", f"eq.{flt.codebase_id}"))
    if flt.name:
        params.append(("name", f"ilike.*{flt.name}*"))
    if flt.text:
        pattern = _quote(f"*{flt.text}*")
        params.append(("or", f"(name.ilike.{pattern},signature.ilike.{pattern})"))
    if flt.file_path:
        params.append(("file_path", f"eq.{flt.file_path}"))
    params.append(("limit", str(flt.effective_limit)))
    return params


def call_edge_params(flt: CallEdgeFilter, caller_ids: list[str] | None = None) -> Params:
    params: Params = [("select", ",".join(CALL_EDGE_COLUMNS))]
    if flt.caller_id:
        params.append(("caller_id", f"eq.{flt.caller_id}"))
    if flt.callee_id:
        params.append(("callee_id", f"eq.{flt.callee_id}"))
    if caller_ids:
        params.append(("caller_id", f"in.({','.join(_quote(i) for i in caller_ids)})"))
    if flt.is_unfiltered:
        params.append(("limit", str(EDGE_SCAN_LIMIT)))
    return params


class TableApiRowStore(RowStore):
    """Row store that issues declarative select/filter calls over HTTP.

    Parameters
    ----------
    base_url:
        Project URL; collections live under ``/rest/v1/<collection>``.
    api_key:
        Access key, sent both as ``apikey`` and as a bearer token.
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests inject a mock
        transport).  When omitted, one is created on :meth:`open` and
        closed on :meth:`close`.
    """

    name = "table_api"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _select(self, collection: str, params: Params) -> list[dict[str, Any]]:
        if self._client is None:
            raise StoreError("Table API client not initialised. Call open() during startup.")
        url = f"{self.base_url}/rest/v1/{collection}"
        try:
            resp = await self._client.get(url, params=params, headers=self.headers)
        except httpx.HTTPError as exc:
            raise StoreError(f"Table API request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            detail: Any
            try:
                payload = resp.json()
                detail = payload.get("message", payload) if isinstance(payload, dict) else payload
            except ValueError:
                detail = resp.text or resp.reason_phrase
            raise StoreError(f"Table API query error: {detail}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise StoreError(f"Table API returned invalid JSON: {exc}") from exc
        if data is None:
            return []
        if not isinstance(data, list):
            raise StoreError("Table API returned a non-list payload")
        return data

    async def list_functions(self, flt: FunctionFilter) -> list[dict[str, Any]]:
        return await self._select("functions", function_params(flt))

    async def list_call_edges(self, flt: CallEdgeFilter) -> list[dict[str, Any]]:
        if not flt.function_ids:
            return await self._select("function_calls", call_edge_params(flt))

        rows: list[dict[str, Any]] = []
        for batch in chunked(list(flt.function_ids), IN_FILTER_BATCH_SIZE):
            rows.extend(await self._select("function_calls", call_edge_params(flt, list(batch))))
        return rows
