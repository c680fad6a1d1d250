"""Single-function lookup and bounded concurrent id resolution."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from terrence.models import FunctionRecord
from terrence.store.base import FunctionFilter, RowStore
from terrence.utils import gather_or_cancel, unique_ids

logger = logging.getLogger(__name__)


class FunctionLookupService:
    """Fetches function records by id.

    A missing row is ``None``; backend failures propagate as ``StoreError``.
    """

    def __init__(self, store: RowStore, *, concurrency: int = 16) -> None:
        self._store = store
        self._concurrency = max(1, concurrency)

    async def get_function(self, function_id: str, *, full: bool = True) -> Optional[FunctionRecord]:
        rows = await self._store.list_functions(
            FunctionFilter(function_id=function_id, full=full, limit=1)
        )
        if not rows:
            return None
        return FunctionRecord.model_validate(rows[0])

    async def resolve_many(
        self,
        function_ids: Iterable[str],
        *,
        full: bool = False,
    ) -> list[FunctionRecord]:
        """Resolve ids concurrently, dropping the ones with no row.

        Only the summary columns are fetched unless *full* is set.  Output follows the (deduplicated) input order.  The first
        ``StoreError`` cancels the outstanding lookups and is re-raised.
        """
        ids = unique_ids(function_ids)
        if not ids:
            return []

        gate = asyncio.Semaphore(self._concurrency)

        async def _one(function_id: str) -> Optional[FunctionRecord]:
            async with gate:
                return await self.get_function(function_id, full=full)

        resolved = await gather_or_cancel(*(_one(i) for i in ids))
        found = [r for r in resolved if r is not None]
        if len(found) < len(ids):
            logger.debug("Dropped %d dangling function reference(s)", len(ids) - len(found))
        return found
