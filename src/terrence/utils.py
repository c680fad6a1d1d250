"""Small pure helpers for identifier handling and concurrent fan-out."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Iterable, Iterator, Optional, Sequence, TypeVar

T = TypeVar("T")


def unique_ids(*sources: Iterable[Optional[str]]) -> list[str]:
    """Merge identifier sequences into a list of unique ids.

    First-occurrence order is preserved so downstream iteration is
    deterministic.  Empty and ``None`` ids are skipped.
    """
    seen: set[str] = set()
    result: list[str] = []
    for source in sources:
        for ident in source:
            if not ident or ident in seen:
                continue
            seen.add(ident)
            result.append(ident)
    return result


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most *size* items."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """Await all awaitables; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(a) for a in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        raise


def json_or_raw(resp: Any) -> Any:
    """Decode an HTTP response body as JSON, falling back to ``{"raw": text}``."""
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}
