"""Row store contract shared by every backend adapter."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Optional

# Hosted table API rejects larger ``in.(...)`` filters; SQL adapters batch
# the same way so both backends issue identical round-trip patterns.
IN_FILTER_BATCH_SIZE = 100

# Cap for an edge scan with no filter at all.
EDGE_SCAN_LIMIT = 1000

# Applied to function listings when the caller gives no limit.
DEFAULT_FUNCTION_LIMIT = 1000

SUMMARY_FUNCTION_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "signature",
    "file_path",
    "line_number",
    "codebase_id",
)

FULL_FUNCTION_COLUMNS: tuple[str, ...] = SUMMARY_FUNCTION_COLUMNS + (
    "code",
    "parameters",
    "return_type",
    "caller_count",
    "callee_count",
)

CALL_EDGE_COLUMNS: tuple[str, ...] = ("caller_id", "callee_id", "call_site")


@dataclass(frozen=True)
class FunctionFilter:
    """Filter for :meth:`RowStore.list_functions`.

    ``name`` matches the name only; ``text`` matches name OR signature.
    Both are case-insensitive substring matches.
    """

    codebase_id: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    file_path: Optional[str] = None
    function_id: Optional[str] = None
    full: bool = False
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be a positive integer")

    @property
    def effective_limit(self) -> int:
        return self.limit if self.limit is not None else DEFAULT_FUNCTION_LIMIT

    @property
    def columns(self) -> tuple[str, ...]:
        return FULL_FUNCTION_COLUMNS if self.full else SUMMARY_FUNCTION_COLUMNS


@dataclass(frozen=True)
class CallEdgeFilter:
    """Filter for :meth:`RowStore.list_call_edges`.

    ``function_ids`` is matched against ``caller_id``.
    """

    caller_id: Optional[str] = None
    callee_id: Optional[str] = None
    function_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_unfiltered(self) -> bool:
        return not self.caller_id and not self.callee_id and not self.function_ids


class RowStore(abc.ABC):
    """Read-only access to the ``functions`` and ``function_calls`` collections.

    Implementations raise :class:`terrence.errors.StoreError` on any backend
    failure and return an empty list when nothing matches.
    """

    name: str = "abstract"

    async def open(self) -> None:
        """Acquire backend resources (pool, connection, HTTP client)."""

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> "RowStore":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @abc.abstractmethod
    async def list_functions(self, flt: FunctionFilter) -> list[dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def list_call_edges(self, flt: CallEdgeFilter) -> list[dict[str, Any]]:
        ...
