"""Composition root: owns the shared row store and HTTP client."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from terrence.config import Settings
from terrence.notify import NotionClient, SlackNotifier
from terrence.services import CallGraphService, ContextService, FunctionLookupService, SearchService
from terrence.store import RowStore, create_row_store

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a tool handler needs, built once per process."""

    settings: Settings
    store: RowStore
    lookup: FunctionLookupService
    context: ContextService
    call_graph: CallGraphService
    search: SearchService
    slack: SlackNotifier
    notion: NotionClient

    @classmethod
    def build(cls, settings: Settings, store: RowStore, http: httpx.AsyncClient) -> "AppContext":
        lookup = FunctionLookupService(store, concurrency=settings.lookup_concurrency)
        return cls(
            settings=settings,
            store=store,
            lookup=lookup,
            context=ContextService(store, lookup),
            call_graph=CallGraphService(store, lookup),
            search=SearchService(store),
            slack=SlackNotifier(settings, http),
            notion=NotionClient(settings, http),
        )


@asynccontextmanager
async def open_app_context(
    settings: Settings,
    *,
    store: Optional[RowStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[AppContext]:
    """Open the row store and HTTP client, yield the context, then release both.

    An injected *store* is still opened and closed here; an injected
    *http_client* is left open for its owner.
    """
    row_store = store if store is not None else create_row_store(settings)
    http = http_client if http_client is not None else httpx.AsyncClient(timeout=settings.http_timeout_s)
    try:
        await row_store.open()
        yield AppContext.build(settings, row_store, http)
    finally:
        await row_store.close()
        if http_client is None:
            await http.aclose()
        logger.info("Application resources released")
