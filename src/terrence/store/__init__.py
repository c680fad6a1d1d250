"""Read-only access to the code-graph row store."""

from terrence.store.base import (
    DEFAULT_FUNCTION_LIMIT,
    EDGE_SCAN_LIMIT,
    IN_FILTER_BATCH_SIZE,
    CallEdgeFilter,
    FunctionFilter,
    RowStore,
)
from terrence.store.factory import create_row_store

__all__ = [
    "DEFAULT_FUNCTION_LIMIT",
    "EDGE_SCAN_LIMIT",
    "IN_FILTER_BATCH_SIZE",
    "CallEdgeFilter",
    "FunctionFilter",
    "RowStore",
    "create_row_store",
]
