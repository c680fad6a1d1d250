"""JSON-RPC MCP server exposing terrence tools over stdio."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, BinaryIO, Optional

from terrence import __version__
from terrence.app import AppContext, open_app_context
from terrence.config import Settings, load_settings
from terrence.mcp.dispatch import call_tool
from terrence.mcp.tool_registry import TOOL_SPECS, export_mcp_tool_definition, get_tool_spec

logger = logging.getLogger(__name__)

SERVER_NAME = "terrence-mcp"
PROTOCOL_VERSION = "2024-11-05"


class StdioTransport:
    """Reads and writes JSON-RPC messages on binary streams.

    Accepts both ``Content-Length`` framed messages and newline-delimited
    JSON; replies use whichever framing the peer used last.
    """

    def __init__(self, reader: BinaryIO, writer: BinaryIO) -> None:
        self._reader = reader
        self._writer = writer
        self.line_delimited = False

    def read_message(self) -> dict[str, Any] | None:
        """Read one message; ``None`` on end of stream."""
        content_length = 0
        while True:
            line = self._reader.readline()
            if not line:
                return None
            text = line.decode("utf-8", errors="replace").strip()
            if not text:
                if content_length > 0:
                    break
                continue
            if text.startswith("{"):
                self.line_delimited = True
                return json.loads(text)
            if text.lower().startswith("content-length:"):
                content_length = int(text.split(":", 1)[1].strip())

        payload = self._reader.read(content_length)
        if not payload:
            return None
        self.line_delimited = False
        return json.loads(payload.decode("utf-8"))

    def write_message(self, payload: dict[str, Any]) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        if self.line_delimited:
            self._writer.write(body + b"\n")
        else:
            header = f"Content-Length: {len(body)}\r\n\r\n".encode("utf-8")
            self._writer.write(header)
            self._writer.write(body)
        self._writer.flush()


def _result(request_id: str | int | None, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _error(request_id: str | int | None, code: int, message: str, data: Any = None) -> dict[str, Any]:
    err = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": err}


def _tool_result(data: Any, *, is_error: bool = False) -> dict[str, Any]:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    result: dict[str, Any] = {
        "isError": is_error,
        "content": [{"type": "text", "text": text}],
    }
    if isinstance(data, dict):
        result["structuredContent"] = data
    return result


async def _handle_tools_call(ctx: AppContext, request: dict[str, Any]) -> dict[str, Any]:
    request_id = request.get("id")
    params = request.get("params") or {}
    name = params.get("name")
    if not isinstance(name, str) or not name:
        return _error(request_id, -32602, "tools/call requires non-empty params.name")

    spec = get_tool_spec(name)
    if spec is None:
        return _error(request_id, -32602, f"unknown tool: {name}")

    outcome = await call_tool(ctx, spec, params.get("arguments"))
    return _result(request_id, _tool_result(outcome.data, is_error=outcome.is_error))


async def handle_request(ctx: AppContext, request: dict[str, Any]) -> dict[str, Any] | None:
    """Answer one JSON-RPC request; ``None`` for notifications."""
    request_id = request.get("id")
    method = request.get("method", "")

    if method == "initialize":
        return _result(
            request_id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            },
        )
    if method.startswith("notifications/"):
        return None
    if method == "ping":
        return _result(request_id, {})
    if method == "tools/list":
        tools = [export_mcp_tool_definition(spec) for spec in TOOL_SPECS]
        return _result(request_id, {"tools": tools})
    if method == "tools/call":
        return await _handle_tools_call(ctx, request)
    return _error(request_id, -32601, f"method not found: {method}")


async def _respond(ctx: AppContext, transport: StdioTransport, request: dict[str, Any]) -> None:
    try:
        response = await handle_request(ctx, request)
    except Exception as exc:
        logger.exception("Unhandled error for method %s", request.get("method"))
        response = _error(request.get("id"), -32000, "server_error", {"detail": str(exc)})
    if response is not None:
        transport.write_message(response)


async def serve(ctx: AppContext, transport: StdioTransport) -> None:
    """Read requests until end of stream, handling each as its own task."""
    pending: set[asyncio.Task] = set()
    while True:
        try:
            request = await asyncio.to_thread(transport.read_message)
        except ValueError as exc:
            # UnicodeDecodeError and a malformed Content-Length are ValueErrors too.
            transport.write_message(_error(None, -32700, "parse error", {"detail": str(exc)}))
            continue
        if request is None:
            break
        if not isinstance(request, dict):
            transport.write_message(_error(None, -32600, "invalid request"))
            continue
        task = asyncio.create_task(_respond(ctx, transport, request))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


async def run_stdio(settings: Settings) -> None:
    transport = StdioTransport(sys.stdin.buffer, sys.stdout.buffer)
    async with open_app_context(settings) as ctx:
        logger.info("%s v%s serving on stdio (%s store)", SERVER_NAME, __version__, ctx.store.name)
        await serve(ctx, transport)


def main(config_path: Optional[str] = None) -> None:
    """CLI entry point for the stdio server; logs go to stderr."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    path = Path(config_path) if config_path else Path("config.yaml")
    settings = load_settings(path if path.exists() else None)
    asyncio.run(run_stdio(settings))


if __name__ == "__main__":
    main()
