"""Call graph assembly for a codebase, whole or scoped to one function.

The two modes differ:

* scoped   -- every edge touching the function is reported, but nodes are
  limited to functions inside the codebase (an edge may point at a node
  that is not listed);
* unscoped -- the graph is closed: only edges whose both endpoints are
  listed nodes are reported.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from terrence.models import CallEdgeRecord, CallGraphResponse, FunctionRecord, GraphEdge
from terrence.services.context_service import to_ref
from terrence.services.function_lookup import FunctionLookupService
from terrence.store.base import CallEdgeFilter, FunctionFilter, RowStore
from terrence.utils import unique_ids

logger = logging.getLogger(__name__)

# Maximum number of nodes in an unscoped graph.
MAX_GRAPH_NODES = 1000


def to_edge(row: dict[str, Any]) -> GraphEdge:
    edge = CallEdgeRecord.model_validate(row)
    return GraphEdge(caller_id=edge.caller_id, callee_id=edge.callee_id, call_site=edge.call_site)


class CallGraphService:
    def __init__(self, store: RowStore, lookup: FunctionLookupService) -> None:
        self._store = store
        self._lookup = lookup

    async def get_call_graph(
        self,
        codebase_id: str,
        function_id: Optional[str] = None,
    ) -> CallGraphResponse:
        if function_id:
            return await self._scoped(codebase_id, function_id)
        return await self._unscoped(codebase_id)

    async def _scoped(self, codebase_id: str, function_id: str) -> CallGraphResponse:
        all_edges = await self._store.list_call_edges(CallEdgeFilter())
        touching = [
            e for e in all_edges
            if e.get("caller_id") == function_id or e.get("callee_id") == function_id
        ]
        endpoint_ids = unique_ids(
            [function_id],
            (e.get("caller_id") for e in touching),
            (e.get("callee_id") for e in touching),
        )
        resolved = await self._lookup.resolve_many(endpoint_ids)
        nodes = [to_ref(r) for r in resolved if r.codebase_id == codebase_id]

        logger.debug(
            "Scoped graph for %s in %s: %d node(s), %d edge(s)",
            function_id, codebase_id, len(nodes), len(touching),
        )
        return CallGraphResponse(nodes=nodes, edges=[to_edge(e) for e in touching])

    async def _unscoped(self, codebase_id: str) -> CallGraphResponse:
        rows = await self._store.list_functions(
            FunctionFilter(codebase_id=codebase_id, limit=MAX_GRAPH_NODES)
        )
        records: dict[str, FunctionRecord] = {}
        for row in rows:
            record = FunctionRecord.model_validate(row)
            records.setdefault(record.id, record)
        members = set(records)

        edges: list[dict[str, Any]] = []
        if records:
            edges = await self._store.list_call_edges(CallEdgeFilter(function_ids=tuple(records)))
        closed = [e for e in edges if e.get("caller_id") in members and e.get("callee_id") in members]

        logger.debug(
            "Closed graph for %s: %d node(s), %d of %d edge(s) kept",
            codebase_id, len(records), len(closed), len(edges),
        )
        return CallGraphResponse(
            nodes=[to_ref(r) for r in records.values()],
            edges=[to_edge(e) for e in closed],
        )
