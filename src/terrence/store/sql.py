"""Shared SQL query construction for the relational adapters.

PostgreSQL and SQLite differ only in placeholder style, the
case-insensitive match operator and how an id list is bound; everything
else (column lists, limits, chunking) lives here once.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any, Sequence

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


@dataclass(frozen=True)
class SqlDialect:
    name: str
    numbered_placeholders: bool
    ilike: str
    array_membership: bool

    def placeholder(self, index: int) -> str:
        return f"${index}" if self.numbered_placeholders else "?"


POSTGRES = SqlDialect(name="postgres", numbered_placeholders=True, ilike="ILIKE", array_membership=True)
# SQLite LIKE is case-insensitive for ASCII by default.
SQLITE = SqlDialect(name="sqlite", numbered_placeholders=False, ilike="LIKE", array_membership=False)


class _Params:
    """Collects bound values and hands out dialect placeholders."""

    def __init__(self, dialect: SqlDialect) -> None:
        self._dialect = dialect
        self.values: list[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return self._dialect.placeholder(len(self.values))

    def add_id_list(self, column: str, ids: Sequence[str]) -> str:
        if self._dialect.array_membership:
            return f"{column} = ANY({self.add(list(ids))}::text[])"
        marks = ", ".join(self.add(i) for i in ids)
        return f"{column} IN ({marks})"


def build_functions_query(dialect: SqlDialect, flt: FunctionFilter) -> tuple[str, list[Any]]:
    params = _Params(dialect)
    where: list[str] = []

    if flt.function_id:
        where.append(f"id = {params.add(flt.function_id)}")
    if flt.codebase_id:
        where.append(f"codebase_id = {params.add(flt.codebase_id)}")
    if flt.name:
        where.append(f"name {dialect.ilike} {params.add(f'%{flt.name}%')}")
    if flt.text:
        pattern = f"%{flt.text}%"
        where.append(
            f"(name {dialect.ilike} {params.add(pattern)} "
            f"OR signature {dialect.ilike} {params.add(pattern)})"
        )
    if flt.file_path:
        where.append(f"file_path = {params.add(flt.file_path)}")

    sql = f"SELECT {', '.join(flt.columns)} FROM functions"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += f" LIMIT {params.add(flt.effective_limit)}"
    return sql, params.values


def build_call_edges_query(
    dialect: SqlDialect,
    flt: CallEdgeFilter,
    caller_ids: Sequence[str] = (),
) -> tuple[str, list[Any]]:
    """Build one edge query; *caller_ids* is a single pre-chunked batch."""
    params = _Params(dialect)
    where: list[str] = []

    if flt.caller_id:
        where.append(f"caller_id = {params.add(flt.caller_id)}")
    if flt.callee_id:
        where.append(f"callee_id = {params.add(flt.callee_id)}")
    if caller_ids:
        where.append(params.add_id_list("caller_id", caller_ids))

    sql = f"SELECT {', '.join(CALL_EDGE_COLUMNS)} FROM function_calls"
    if where:
        sql += " WHERE " + " AND ".join(where)
    if flt.is_unfiltered:
        sql += f" LIMIT {params.add(EDGE_SCAN_LIMIT)}"
    return sql, params.values


class SqlRowStore(RowStore):
    """Row store over any SQL engine reachable through :meth:`_fetch`."""

    dialect: SqlDialect

    @abc.abstractmethod
    async def _fetch(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        """Run one query and return rows as dicts; raise ``StoreError`` on failure."""

    async def list_functions(self, flt: FunctionFilter) -> list[dict[str, Any]]:
        sql, params = build_functions_query(self.dialect, flt)
        return await self._fetch(sql, params)

    async def list_call_edges(self, flt: CallEdgeFilter) -> list[dict[str, Any]]:
        if not flt.function_ids:
            sql, params = build_call_edges_query(self.dialect, flt)
            return await self._fetch(sql, params)

        rows: list[dict[str, Any]] = []
        for batch in chunked(list(flt.function_ids), IN_FILTER_BATCH_SIZE):
            sql, params = build_call_edges_query(self.dialect, flt, batch)
            rows.extend(await self._fetch(sql, params))
        if len(flt.function_ids) > IN_FILTER_BATCH_SIZE:
            logger.debug(
                "Edge lookup for %d ids split into %d batches",
                len(flt.function_ids),
                -(-len(flt.function_ids) // IN_FILTER_BATCH_SIZE),
            )
        return rows
