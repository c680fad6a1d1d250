"""Text search and bulk listing over the functions collection."""

from __future__ import annotations

from typing import Optional

from terrence.models import (
    AllFunctionsResponse,
    FunctionListing,
    FunctionRecord,
    FunctionSummary,
    SemanticQueryResponse,
)
from terrence.store.base import FunctionFilter, RowStore


class SearchService:
    """Single-call delegations to the row store with result projection.

    ``search`` is a placeholder for embedding search: it matches the query
    as a case-insensitive substring of the name OR the signature.
    """

    def __init__(self, store: RowStore) -> None:
        self._store = store

    async def search(
        self,
        query: str,
        codebase_id: Optional[str] = None,
        limit: int = 10,
    ) -> SemanticQueryResponse:
        rows = await self._store.list_functions(
            FunctionFilter(text=query, codebase_id=codebase_id or None, limit=limit)
        )
        results = []
        for row in rows:
            r = FunctionRecord.model_validate(row)
            results.append(
                FunctionSummary(
                    id=r.id,
                    name=r.name,
                    signature=r.signature,
                    file_path=r.file_path,
                    line_number=r.line_number,
                    codebase_id=r.codebase_id,
                )
            )
        return SemanticQueryResponse(results=results, count=len(results))

    async def list_all(self, codebase_id: str, limit: int = 500) -> AllFunctionsResponse:
        rows = await self._store.list_functions(FunctionFilter(codebase_id=codebase_id, limit=limit))
        functions = []
        for row in rows:
            r = FunctionRecord.model_validate(row)
            functions.append(
                FunctionListing(id=r.id, name=r.name, signature=r.signature, file_path=r.file_path)
            )
        return AllFunctionsResponse(functions=functions, count=len(functions))
