"""Error taxonomy shared by the store, services and tool dispatch."""

from __future__ import annotations

from typing import Any


class ToolError(RuntimeError):
    """Base class for failures that are reported to the caller as ``{error}``."""


class NotFound(ToolError):
    """The primary entity of a request does not exist."""


class StoreError(ToolError):
    """Backend communication or query failure."""


class ConfigurationError(ToolError):
    """A credential or URL needed by the invoked tool is not configured."""


class UpstreamError(ToolError):
    """An external collaborator rejected the call.

    When ``payload`` is set it is the provider's raw response body and is
    handed back to the caller unchanged.
    """

    def __init__(self, message: str, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)
