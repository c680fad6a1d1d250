"""Function context aggregation: a function plus its immediate callers/callees."""

from __future__ import annotations

import logging

from terrence.errors import NotFound
from terrence.models import FunctionContextResponse, FunctionDetail, FunctionRecord, FunctionRef
from terrence.services.function_lookup import FunctionLookupService
from terrence.store.base import CallEdgeFilter, RowStore
from terrence.utils import gather_or_cancel, unique_ids

logger = logging.getLogger(__name__)


def to_ref(record: FunctionRecord) -> FunctionRef:
    return FunctionRef(id=record.id, name=record.name, file_path=record.file_path)


class ContextService:
    """Builds ``{function, callers, callees}`` for one function id."""

    def __init__(self, store: RowStore, lookup: FunctionLookupService) -> None:
        self._store = store
        self._lookup = lookup

    async def _neighbours(self, flt: CallEdgeFilter, id_column: str) -> list[FunctionRef]:
        edges = await self._store.list_call_edges(flt)
        ids = unique_ids(e.get(id_column) for e in edges)
        return [to_ref(r) for r in await self._lookup.resolve_many(ids)]

    async def get_function_context(
        self,
        function_id: str,
        include_code: bool = True,
    ) -> FunctionContextResponse:
        """Return the function record with its resolved callers and callees.

        Raises
        ------
        NotFound
            If *function_id* has no row; no edge queries are issued then.
        StoreError
            On any backend failure; partial context is never returned.
        """
        func = await self._lookup.get_function(function_id)
        if func is None:
            raise NotFound("Function not found")

        callers, callees = await gather_or_cancel(
            self._neighbours(CallEdgeFilter(callee_id=function_id), "caller_id"),
            self._neighbours(CallEdgeFilter(caller_id=function_id), "callee_id"),
        )
        logger.debug(
            "Context for %s: %d caller(s), %d callee(s)", function_id, len(callers), len(callees)
        )

        detail = FunctionDetail(
            id=func.id,
            name=func.name,
            signature=func.signature,
            file_path=func.file_path,
            line_number=func.line_number,
            code=func.code if include_code else None,
            parameters=func.parameters,
            return_type=func.return_type,
            caller_count=func.caller_count,
            callee_count=func.callee_count,
        )
        return FunctionContextResponse(function=detail, callers=callers, callees=callees)
