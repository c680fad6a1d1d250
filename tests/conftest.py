"""Shared test fixtures for terrence."""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio

from terrence.app import AppContext
from terrence.config import Settings
from terrence.errors import StoreError
from terrence.store.base import (
    CALL_EDGE_COLUMNS,
    EDGE_SCAN_LIMIT,
    CallEdgeFilter,
    FunctionFilter,
    RowStore,
)


# ====================================================================
# Sample graph
# ====================================================================
#
#   cb_1:  login_handler -> authenticate_user -> hash_password
#          login_handler -> authenticate_user   (second call site)
#          process_payment -> charge_card (cb_2)
#   dangling edge: authenticate_user -> ghost

FUNCTIONS: list[dict[str, Any]] = [
    {
        "id": "func_1",
        "codebase_id": "cb_1",
        "name": "authenticate_user",
        "signature": "def authenticate_user(username: str, password: str) -> bool",
        "file_path": "src/auth.py",
        "line_number": 10,
        "code": "def authenticate_user(username: str, password: str) -> bool:\n    return True",
        "parameters": [{"name": "username", "type": "str"}, {"name": "password", "type": "str"}],
        "return_type": "bool",
        "caller_count": 2,
        "callee_count": 1,
    },
    {
        "id": "caller_1",
        "codebase_id": "cb_1",
        "name": "login_handler",
        "signature": "def login_handler(request)",
        "file_path": "src/routes.py",
        "line_number": 3,
    },
    {
        "id": "callee_1",
        "codebase_id": "cb_1",
        "name": "hash_password",
        "signature": "def hash_password(password: str) -> str",
        "file_path": "src/utils.py",
        "line_number": 22,
    },
    {
        "id": "func_2",
        "codebase_id": "cb_1",
        "name": "process_payment",
        "signature": "def process_payment(amount: int) -> None",
        "file_path": "src/payment.py",
        "line_number": 5,
    },
    {
        "id": "ext_1",
        "codebase_id": "cb_2",
        "name": "charge_card",
        "signature": "def charge_card(card, amount)",
        "file_path": "billing/cards.py",
        "line_number": 40,
    },
]

EDGES: list[dict[str, Any]] = [
    {"caller_id": "caller_1", "callee_id": "func_1", "call_site": {"line": 15}},
    {"caller_id": "caller_1", "callee_id": "func_1", "call_site": {"line": 31}},
    {"caller_id": "func_1", "callee_id": "callee_1", "call_site": {"line": 11}},
    {"caller_id": "func_1", "callee_id": "ghost", "call_site": {"line": 12}},
    {"caller_id": "func_2", "callee_id": "ext_1", "call_site": {"line": 7}},
]


# ====================================================================
# In-memory row store
# ====================================================================

class FakeRowStore(RowStore):
    """Python re-implementation of the row store contract that records calls."""

    name = "fake"

    def __init__(
        self,
        functions: Optional[list[dict[str, Any]]] = None,
        edges: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self.functions = [dict(f) for f in (functions if functions is not None else FUNCTIONS)]
        self.edges = [dict(e) for e in (edges if edges is not None else EDGES)]
        self.function_calls: list[FunctionFilter] = []
        self.edge_calls: list[CallEdgeFilter] = []
        self.fail_on: Optional[str] = None
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def list_functions(self, flt: FunctionFilter) -> list[dict[str, Any]]:
        self.function_calls.append(flt)
        if self.fail_on == "functions" or (self.fail_on and self.fail_on == flt.function_id):
            raise StoreError("boom")
        rows = []
        for f in self.functions:
            if flt.function_id and f["id"] != flt.function_id:
                continue
            if flt.codebase_id and f.get("codebase_id") != flt.codebase_id:
                continue
            if flt.name and flt.name.lower() not in f.get("name", "").lower():
                continue
            if flt.text:
                needle = flt.text.lower()
                if needle not in f.get("name", "").lower() and needle not in f.get("signature", "").lower():
                    continue
            if flt.file_path and f.get("file_path") != flt.file_path:
                continue
            rows.append({k: f.get(k) for k in flt.columns})
        return rows[: flt.effective_limit]

    async def list_call_edges(self, flt: CallEdgeFilter) -> list[dict[str, Any]]:
        self.edge_calls.append(flt)
        if self.fail_on == "edges":
            raise StoreError("edge scan failed")
        rows = [
            {k: e.get(k) for k in CALL_EDGE_COLUMNS}
            for e in self.edges
            if (not flt.caller_id or e["caller_id"] == flt.caller_id)
            and (not flt.callee_id or e["callee_id"] == flt.callee_id)
            and (not flt.function_ids or e["caller_id"] in flt.function_ids)
        ]
        if flt.is_unfiltered:
            rows = rows[:EDGE_SCAN_LIMIT]
        return rows


@pytest.fixture
def fake_store() -> FakeRowStore:
    return FakeRowStore()


# ====================================================================
# Settings and SQLite store
# ====================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings backed by an in-memory SQLite store."""
    return Settings(
        store_backend="sqlite",
        sqlite_path=":memory:",
        lookup_concurrency=4,
        slack_webhook_url="",
        slack_api_key="",
        notion_api_key="",
    )


async def seed_sqlite(store, functions: list[dict[str, Any]], edges: list[dict[str, Any]]) -> None:
    db = store.connection
    await db.executemany(
        """
        INSERT INTO functions (
            id, codebase_id, name, signature, file_path, line_number,
            code, parameters, return_type, caller_count, callee_count
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                f["id"],
                f.get("codebase_id"),
                f["name"],
                f.get("signature", ""),
                f.get("file_path", ""),
                f.get("line_number", 0),
                f.get("code"),
                json.dumps(f["parameters"]) if f.get("parameters") is not None else None,
                f.get("return_type"),
                f.get("caller_count", 0),
                f.get("callee_count", 0),
            )
            for f in functions
        ],
    )
    await db.executemany(
        "INSERT INTO function_calls (caller_id, callee_id, call_site) VALUES (?, ?, ?)",
        [(e["caller_id"], e["callee_id"], json.dumps(e.get("call_site"))) for e in edges],
    )
    await db.commit()


@pytest_asyncio.fixture
async def sqlite_store():
    """Provide a fresh, seeded in-memory SQLite store for each test."""
    from terrence.store.sqlite import SqliteRowStore

    store = SqliteRowStore(":memory:")
    await store.open()
    await seed_sqlite(store, FUNCTIONS, EDGES)
    yield store
    await store.close()


# ====================================================================
# Application context
# ====================================================================

def _upstream_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"ok": True})


@pytest_asyncio.fixture
async def app_ctx(test_settings: Settings, fake_store: FakeRowStore):
    """AppContext over the fake store with outbound HTTP mocked to succeed."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(_upstream_ok)) as http:
        yield AppContext.build(test_settings, fake_store, http)
