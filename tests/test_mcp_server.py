"""Tests for the tool registry, dispatch envelope and stdio JSON-RPC server."""

from __future__ import annotations

import io
import json
from unittest.mock import AsyncMock

import httpx

from conftest import FakeRowStore
from terrence.app import AppContext
from terrence.config import Settings
from terrence.mcp.dispatch import call_tool
from terrence.mcp.server import PROTOCOL_VERSION, SERVER_NAME, StdioTransport, handle_request, serve
from terrence.mcp.tool_registry import (
    TOOL_SPECS,
    export_mcp_tool_definition,
    get_input_schema,
    get_tool_spec,
)

EXPECTED_TOOLS = [
    "query_codebase_semantic",
    "get_function_context",
    "get_all_functions",
    "get_call_graph",
    "send_slack_message",
    "send_notion_update",
]


def _spec(name: str):
    spec = get_tool_spec(name)
    assert spec is not None
    return spec


# ====================================================================
# Tool registry
# ====================================================================

class TestToolRegistry:

    def test_tool_names(self):
        assert [s.name for s in TOOL_SPECS] == EXPECTED_TOOLS

    def test_unknown_tool(self):
        assert get_tool_spec("drop_tables") is None

    def test_input_schema_required_fields(self):
        schema = get_input_schema(_spec("get_function_context"))
        assert schema["type"] == "object"
        assert schema["additionalProperties"] is False
        assert schema["required"] == ["function_id"]
        assert set(schema["properties"]) == {"function_id", "include_code"}

    def test_required_fields_sorted(self):
        schema = get_input_schema(_spec("send_notion_update"))
        assert schema["required"] == ["content", "title"]

    def test_annotations(self):
        read_only = export_mcp_tool_definition(_spec("get_call_graph"))
        assert read_only["annotations"] == {"readOnlyHint": True, "openWorldHint": False}
        slack = export_mcp_tool_definition(_spec("send_slack_message"))
        assert slack["annotations"] == {"readOnlyHint": False, "openWorldHint": True}
        assert "Side effects" in slack["description"]


# ====================================================================
# Dispatch envelope
# ====================================================================

class TestCallTool:

    async def test_search_success(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("query_codebase_semantic"), {"query": "auth"})
        assert outcome.is_error is False
        assert outcome.data["count"] == 1
        assert outcome.data["results"][0]["id"] == "func_1"

    async def test_context_not_found(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("get_function_context"), {"function_id": "nope"})
        assert outcome.is_error is True
        assert outcome.data == {"error": "Function not found"}

    async def test_call_graph_payload_is_json(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("get_call_graph"), {"codebase_id": "cb_1"})
        assert set(outcome.data) == {"nodes", "edges"}
        json.dumps(outcome.data)

    async def test_missing_required_argument(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("get_function_context"), {})
        assert outcome.is_error is True
        assert outcome.data["error"].startswith("Invalid arguments: function_id")

    async def test_unknown_argument_rejected(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("get_all_functions"), {"codebase_id": "cb_1", "bogus": 1})
        assert "bogus" in outcome.data["error"]

    async def test_limit_out_of_range(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("query_codebase_semantic"), {"query": "x", "limit": 51})
        assert outcome.data["error"].startswith("Invalid arguments: limit")

    async def test_non_object_arguments(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("get_call_graph"), ["cb_1"])
        assert outcome.data == {"error": "arguments must be a JSON object"}

    async def test_store_error_message(self, app_ctx: AppContext, fake_store: FakeRowStore):
        fake_store.fail_on = "edges"
        outcome = await call_tool(app_ctx, _spec("get_call_graph"), {"codebase_id": "cb_1"})
        assert outcome.data == {"error": "edge scan failed"}

    async def test_unexpected_error_uses_tool_message(self, app_ctx: AppContext, monkeypatch):
        monkeypatch.setattr(app_ctx.search, "search", AsyncMock(side_effect=KeyError("id")))
        outcome = await call_tool(app_ctx, _spec("query_codebase_semantic"), {"query": "x"})
        assert outcome.data == {"error": "Database query failed"}

    async def test_slack_not_configured(self, app_ctx: AppContext):
        outcome = await call_tool(app_ctx, _spec("send_slack_message"), {"text": "hi", "channel": "C1"})
        assert outcome.data == {"error": "Neither SLACK_WEBHOOK_URL nor SLACK_API_KEY configured"}

    async def test_upstream_payload_returned_verbatim(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"ok": False, "error": "internal_error"})

        settings = Settings(store_backend="sqlite", slack_webhook_url="", slack_api_key="xoxb-1")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            ctx = AppContext.build(settings, FakeRowStore(), http)
            outcome = await call_tool(ctx, _spec("send_slack_message"), {"text": "hi", "channel": "C1"})
        assert outcome.is_error is True
        assert outcome.data == {"ok": False, "error": "internal_error"}


# ====================================================================
# JSON-RPC handling
# ====================================================================

class TestHandleRequest:

    async def test_initialize(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        assert resp["id"] == 1
        assert resp["result"]["protocolVersion"] == PROTOCOL_VERSION
        assert resp["result"]["serverInfo"]["name"] == SERVER_NAME
        assert "tools" in resp["result"]["capabilities"]

    async def test_notification_has_no_response(self, app_ctx: AppContext):
        assert await handle_request(app_ctx, {"jsonrpc": "2.0", "method": "notifications/initialized"}) is None

    async def test_ping(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {"jsonrpc": "2.0", "id": "p", "method": "ping"})
        assert resp["result"] == {}

    async def test_tools_list(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
        tools = resp["result"]["tools"]
        assert [t["name"] for t in tools] == EXPECTED_TOOLS
        assert all("inputSchema" in t for t in tools)

    async def test_tools_call_success(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {
            "jsonrpc": "2.0",
            "id": 3,
            "method": "tools/call",
            "params": {"name": "get_function_context", "arguments": {"function_id": "func_1"}},
        })
        result = resp["result"]
        assert result["isError"] is False
        assert result["structuredContent"]["function"]["name"] == "authenticate_user"
        assert json.loads(result["content"][0]["text"]) == result["structuredContent"]

    async def test_tools_call_tool_error(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {
            "jsonrpc": "2.0",
            "id": 4,
            "method": "tools/call",
            "params": {"name": "get_function_context", "arguments": {"function_id": "nope"}},
        })
        assert resp["result"]["isError"] is True
        assert resp["result"]["structuredContent"] == {"error": "Function not found"}

    async def test_tools_call_unknown_tool(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {
            "jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {"name": "nope"},
        })
        assert resp["error"]["code"] == -32602
        assert "unknown tool" in resp["error"]["message"]

    async def test_tools_call_missing_name(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {"jsonrpc": "2.0", "id": 6, "method": "tools/call"})
        assert resp["error"]["code"] == -32602

    async def test_unknown_method(self, app_ctx: AppContext):
        resp = await handle_request(app_ctx, {"jsonrpc": "2.0", "id": 7, "method": "resources/list"})
        assert resp["error"]["code"] == -32601


# ====================================================================
# stdio transport and serve loop
# ====================================================================

class TestStdioTransport:

    def test_content_length_round_trip(self):
        body = json.dumps({"jsonrpc": "2.0", "id": 1, "method": "ping"}).encode()
        reader = io.BytesIO(b"Content-Length: %d\r\n\r\n" % len(body) + body)
        writer = io.BytesIO()
        transport = StdioTransport(reader, writer)

        assert transport.read_message() == {"jsonrpc": "2.0", "id": 1, "method": "ping"}
        assert transport.line_delimited is False
        transport.write_message({"jsonrpc": "2.0", "id": 1, "result": {}})

        header, _, payload = writer.getvalue().partition(b"\r\n\r\n")
        assert header == b"Content-Length: %d" % len(payload)
        assert json.loads(payload) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    def test_line_delimited(self):
        reader = io.BytesIO(b'{"jsonrpc": "2.0", "id": 2, "method": "ping"}\n')
        writer = io.BytesIO()
        transport = StdioTransport(reader, writer)

        assert transport.read_message()["id"] == 2
        assert transport.line_delimited is True
        transport.write_message({"id": 2})
        assert writer.getvalue() == b'{"id": 2}\n'

    def test_end_of_stream(self):
        transport = StdioTransport(io.BytesIO(b""), io.BytesIO())
        assert transport.read_message() is None


class TestServe:

    async def test_serve_until_eof(self, app_ctx: AppContext):
        lines = [
            {"jsonrpc": "2.0", "id": 1, "method": "initialize"},
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/call",
             "params": {"name": "get_all_functions", "arguments": {"codebase_id": "cb_2"}}},
        ]
        raw = b"".join(json.dumps(m).encode() + b"\n" for m in lines) + b"{not json\n[1, 2]\n"
        writer = io.BytesIO()

        await serve(app_ctx, StdioTransport(io.BytesIO(raw), writer))

        replies = [json.loads(line) for line in writer.getvalue().splitlines() if line.strip()]
        by_id = {r.get("id"): r for r in replies if r.get("id") is not None}
        assert by_id[1]["result"]["serverInfo"]["name"] == SERVER_NAME
        assert by_id[2]["result"]["structuredContent"]["count"] == 1

        codes = sorted(r["error"]["code"] for r in replies if "error" in r)
        assert codes == [-32700, -32600]
        assert len(replies) == 4

    async def test_bad_frames_do_not_stop_the_loop(self, app_ctx: AppContext):
        raw = (
            b"Content-Length: 3\r\n\r\n\xff\xfe\xfd"
            b"Content-Length: abc\r\n\r\n"
            b'{"jsonrpc": "2.0", "id": "p2", "method": "ping"}\n'
        )
        writer = io.BytesIO()

        await serve(app_ctx, StdioTransport(io.BytesIO(raw), writer))

        out = writer.getvalue()
        assert out.count(b'"code": -32700') == 2
        assert out.endswith(b'{"jsonrpc": "2.0", "id": "p2", "result": {}}\n')
