"""Query services composed over the row store."""

from terrence.services.call_graph_service import CallGraphService
from terrence.services.context_service import ContextService
from terrence.services.function_lookup import FunctionLookupService
from terrence.services.search_service import SearchService

__all__ = ["CallGraphService", "ContextService", "FunctionLookupService", "SearchService"]
