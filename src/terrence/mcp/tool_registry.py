"""Canonical tool registry for MCP and HTTP tool dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

from pydantic import BaseModel

from terrence.models import (
    AllFunctionsRequest,
    AllFunctionsResponse,
    CallGraphRequest,
    CallGraphResponse,
    FunctionContextRequest,
    FunctionContextResponse,
    NotionUpdateRequest,
    SemanticQueryRequest,
    SemanticQueryResponse,
    SlackMessageRequest,
)

if TYPE_CHECKING:
    from terrence.app import AppContext

ToolGroup = Literal["database", "integration"]
Handler = Callable[["AppContext", Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """Canonical definition for one agent-facing tool."""

    name: str
    title: str
    group: ToolGroup
    side_effectful: bool
    what: str
    failure_message: str
    request_model: type[BaseModel]
    handler: Handler
    response_model: type[BaseModel] | None = None


# ------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------

async def _query_codebase_semantic(ctx: AppContext, req: SemanticQueryRequest) -> SemanticQueryResponse:
    return await ctx.search.search(req.query, codebase_id=req.codebase_id, limit=req.limit)


async def _get_function_context(ctx: AppContext, req: FunctionContextRequest) -> FunctionContextResponse:
    return await ctx.context.get_function_context(req.function_id, include_code=req.include_code)


async def _get_all_functions(ctx: AppContext, req: AllFunctionsRequest) -> AllFunctionsResponse:
    return await ctx.search.list_all(req.codebase_id, limit=req.limit)


async def _get_call_graph(ctx: AppContext, req: CallGraphRequest) -> CallGraphResponse:
    return await ctx.call_graph.get_call_graph(req.codebase_id, function_id=req.function_id)


async def _send_slack_message(ctx: AppContext, req: SlackMessageRequest) -> Any:
    return await ctx.slack.send_message(req.text, channel=req.channel)


async def _send_notion_update(ctx: AppContext, req: NotionUpdateRequest) -> Any:
    return await ctx.notion.update_page(req.title, req.content, page_id=req.page_id)


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="query_codebase_semantic",
        title="Query Codebase Semantically",
        group="database",
        side_effectful=False,
        what="Find functions whose name or signature contains the query text.",
        failure_message="Database query failed",
        request_model=SemanticQueryRequest,
        response_model=SemanticQueryResponse,
        handler=_query_codebase_semantic,
    ),
    ToolSpec(
        name="get_function_context",
        title="Get Function Context",
        group="database",
        side_effectful=False,
        what="Return one function's record with its direct callers and callees.",
        failure_message="Failed to get function context",
        request_model=FunctionContextRequest,
        response_model=FunctionContextResponse,
        handler=_get_function_context,
    ),
    ToolSpec(
        name="get_all_functions",
        title="Get All Functions",
        group="database",
        side_effectful=False,
        what="List the functions of a codebase (for graph visualization).",
        failure_message="Failed to get functions",
        request_model=AllFunctionsRequest,
        response_model=AllFunctionsResponse,
        handler=_get_all_functions,
    ),
    ToolSpec(
        name="get_call_graph",
        title="Get Call Graph",
        group="database",
        side_effectful=False,
        what=(
            "Return call graph nodes and edges for a codebase, or only the edges "
            "touching one function when function_id is given."
        ),
        failure_message="Failed to get call graph",
        request_model=CallGraphRequest,
        response_model=CallGraphResponse,
        handler=_get_call_graph,
    ),
    ToolSpec(
        name="send_slack_message",
        title="Send Slack Message",
        group="integration",
        side_effectful=True,
        what="Send a message to a Slack channel. Supports OAuth tokens (xoxb-) and incoming webhooks.",
        failure_message="Failed to send Slack message",
        request_model=SlackMessageRequest,
        handler=_send_slack_message,
    ),
    ToolSpec(
        name="send_notion_update",
        title="Send Notion Update",
        group="integration",
        side_effectful=True,
        what="Update or create a Notion page with a session summary or notes.",
        failure_message="Failed to update Notion page",
        request_model=NotionUpdateRequest,
        handler=_send_notion_update,
    ),
)


def get_tool_spec(name: str) -> ToolSpec | None:
    """Return tool spec by canonical name."""
    for spec in TOOL_SPECS:
        if spec.name == name:
            return spec
    return None


def get_input_schema(spec: ToolSpec) -> dict[str, Any]:
    """Build the tool input JSON schema from the request model."""
    model_schema = spec.request_model.model_json_schema()
    schema: dict[str, Any] = {
        "type": "object",
        "additionalProperties": False,
        "properties": model_schema.get("properties", {}),
    }
    required = model_schema.get("required", [])
    if required:
        schema["required"] = sorted(required)
    return schema


def build_tool_description(spec: ToolSpec) -> str:
    caution = ""
    if spec.side_effectful:
        caution = "\nSide effects: sends content to an external service."
    return f"{spec.what}{caution}"


def validate_arguments(spec: ToolSpec, arguments: Any) -> BaseModel:
    """Validate raw tool arguments against the spec's request model."""
    args = {} if arguments is None else arguments
    if not isinstance(args, dict):
        raise ValueError("arguments must be a JSON object")
    return spec.request_model.model_validate(args)


def export_mcp_tool_definition(spec: ToolSpec) -> dict[str, Any]:
    """Convert a ToolSpec into MCP tools/list shape."""
    return {
        "name": spec.name,
        "title": spec.title,
        "description": build_tool_description(spec),
        "inputSchema": get_input_schema(spec),
        "annotations": {
            "readOnlyHint": not spec.side_effectful,
            "openWorldHint": spec.group == "integration",
        },
    }
