"""Pydantic models for tool requests, responses, and store row mapping."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================
# Stored entities
# ============================================================

class Parameter(BaseModel):
    """One declared parameter of a function."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    type: Optional[str] = None


class FunctionRecord(BaseModel):
    """A row of the ``functions`` collection.

    Summary queries select only a subset of columns, so everything past the
    identity is optional.
    """

    id: str
    name: str = ""
    signature: str = ""
    file_path: str = ""
    line_number: int = Field(0, ge=0)
    code: Optional[str] = None
    parameters: list[Parameter] = Field(default_factory=list)
    return_type: Optional[str] = None
    caller_count: int = 0
    callee_count: int = 0
    codebase_id: Optional[str] = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _decode_parameters(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, bytes)):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                return []
        if not isinstance(value, list):
            return []
        # Bare names are accepted; other non-object items are dropped.
        return [
            {"name": item} if isinstance(item, str) else item
            for item in value
            if isinstance(item, (str, dict))
        ]

    @field_validator("line_number", "caller_count", "callee_count", mode="before")
    @classmethod
    def _null_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("name", "signature", "file_path", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class CallEdgeRecord(BaseModel):
    """A row of the ``function_calls`` collection."""

    caller_id: str
    callee_id: str
    call_site: Any = None

    @field_validator("call_site", mode="before")
    @classmethod
    def _decode_call_site(cls, value: Any) -> Any:
        if isinstance(value, (str, bytes)):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return None
        return value


# ============================================================
# Tool requests
# ============================================================

class _ToolRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SemanticQueryRequest(_ToolRequest):
    """Query the codebase semantically to find functions matching a search query."""

    query: str = Field(..., description="Semantic search query (natural language or function name)")
    codebase_id: Optional[str] = Field(None, description="Optional codebase ID to search within")
    limit: int = Field(10, ge=1, le=50, description="Maximum number of results to return")


class FunctionContextRequest(_ToolRequest):
    """Get detailed context about a function including code, parameters, callers, and callees."""

    function_id: str = Field(..., description="ID of the function to get context for")
    include_code: bool = Field(True, description="Whether to include the full function code")


class AllFunctionsRequest(_ToolRequest):
    """Get all functions for a codebase (for graph visualization)."""

    codebase_id: str = Field(..., description="ID of the codebase to get functions for")
    limit: int = Field(500, ge=1, le=1000, description="Maximum number of functions to return")


class CallGraphRequest(_ToolRequest):
    """Get the call graph for a codebase showing function call relationships."""

    codebase_id: str = Field(..., description="ID of the codebase")
    function_id: Optional[str] = Field(None, description="Optional: get call graph for a specific function")


class SlackMessageRequest(_ToolRequest):
    """Send a message to a Slack channel via incoming webhook or OAuth token."""

    text: str = Field(..., description="Message text to send")
    channel: Optional[str] = Field(
        None,
        description="Slack channel name or ID (required for OAuth token, optional for webhook)",
    )


class NotionUpdateRequest(_ToolRequest):
    """Update or create a Notion page with a session summary or notes."""

    title: str = Field(..., description="Page title")
    content: str = Field(..., description="Page content (markdown supported)")
    page_id: Optional[str] = Field(None, description="Notion page ID to update, or null to create new")


# ============================================================
# Tool responses
# ============================================================

class FunctionSummary(BaseModel):
    """Search hit."""

    id: str
    name: str
    signature: str
    file_path: str
    line_number: int
    codebase_id: Optional[str] = None


class FunctionListing(BaseModel):
    """Listing entry for ``get_all_functions``."""

    id: str
    name: str
    signature: str
    file_path: str


class FunctionRef(BaseModel):
    """Caller, callee, or graph node."""

    id: str
    name: str
    file_path: str


class FunctionDetail(BaseModel):
    """Full function record as returned by ``get_function_context``."""

    id: str
    name: str
    signature: str
    file_path: str
    line_number: int
    code: Optional[str] = None
    parameters: list[Parameter] = Field(default_factory=list)
    return_type: Optional[str] = None
    caller_count: int = 0
    callee_count: int = 0


class GraphEdge(BaseModel):
    """Directed call edge in a graph response."""

    caller_id: str
    callee_id: str
    call_site: Any = None


class SemanticQueryResponse(BaseModel):
    results: list[FunctionSummary] = Field(default_factory=list)
    count: int = 0


class FunctionContextResponse(BaseModel):
    function: FunctionDetail
    callers: list[FunctionRef] = Field(default_factory=list)
    callees: list[FunctionRef] = Field(default_factory=list)


class AllFunctionsResponse(BaseModel):
    functions: list[FunctionListing] = Field(default_factory=list)
    count: int = 0


class CallGraphResponse(BaseModel):
    nodes: list[FunctionRef] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Uniform failure envelope."""

    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = ""
    store_backend: str = ""
    tools: list[str] = Field(default_factory=list)
