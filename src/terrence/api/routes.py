"""FastAPI router exposing the tool registry over HTTP."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from terrence import __version__
from terrence.app import AppContext
from terrence.mcp.dispatch import call_tool
from terrence.mcp.tool_registry import TOOL_SPECS, export_mcp_tool_definition, get_tool_spec
from terrence.models import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx  # type: ignore[return-value]


CtxDepends = Annotated[AppContext, Depends(_get_ctx)]


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health(ctx: CtxDepends) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        store_backend=ctx.store.name,
        tools=[spec.name for spec in TOOL_SPECS],
    )


@router.get("/tools", tags=["tools"])
async def list_tools() -> dict[str, Any]:
    return {"tools": [export_mcp_tool_definition(spec) for spec in TOOL_SPECS]}


@router.post("/tools/{name}", tags=["tools"])
async def invoke_tool(
    name: str,
    ctx: CtxDepends,
    arguments: Annotated[Any, Body()] = None,
) -> Any:
    """Run one tool.  Failures come back as HTTP 200 with an ``error`` key."""
    spec = get_tool_spec(name)
    if spec is None:
        raise HTTPException(status_code=404, detail=f"unknown tool: {name}")
    outcome = await call_tool(ctx, spec, arguments)
    return outcome.data
