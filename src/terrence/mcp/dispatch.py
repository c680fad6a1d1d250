"""Tool invocation with a uniform success/error envelope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from terrence.app import AppContext
from terrence.errors import ToolError, UpstreamError
from terrence.mcp.tool_registry import ToolSpec, validate_arguments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    """Result payload plus whether it represents a failure."""

    data: Any
    is_error: bool = False


def _error(message: str) -> ToolOutcome:
    return ToolOutcome(data={"error": message}, is_error=True)


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "Invalid arguments: " + "; ".join(parts)


def to_payload(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


async def call_tool(ctx: AppContext, spec: ToolSpec, arguments: Any) -> ToolOutcome:
    """Validate *arguments*, run the tool, and wrap the result.

    Never raises: every failure becomes ``{"error": message}``.  An
    :class:`UpstreamError` carrying a provider payload returns that payload
    unchanged so the caller can read provider-specific error codes.
    """
    try:
        request = validate_arguments(spec, arguments)
    except ValidationError as exc:
        return _error(format_validation_error(exc))
    except ValueError as exc:
        return _error(str(exc))

    try:
        result = await spec.handler(ctx, request)
    except UpstreamError as exc:
        logger.warning("%s: upstream failure: %s", spec.name, exc)
        if exc.payload is not None:
            return ToolOutcome(data=exc.payload, is_error=True)
        return _error(str(exc) or spec.failure_message)
    except ToolError as exc:
        logger.info("%s: %s", spec.name, exc)
        return _error(str(exc) or spec.failure_message)
    except Exception:
        logger.exception("%s: unexpected failure", spec.name)
        return _error(spec.failure_message)

    return ToolOutcome(data=to_payload(result))
