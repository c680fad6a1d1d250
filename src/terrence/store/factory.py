"""Backend selection for the row store."""

from __future__ import annotations

import logging

from terrence.config import Settings
from terrence.errors import ConfigurationError
from terrence.store.base import RowStore

logger = logging.getLogger(__name__)


def create_row_store(settings: Settings) -> RowStore:
    """Build the (unopened) row store named by ``settings.store_backend``.

    Raises
    ------
    ConfigurationError
        If the backend is unknown or its required settings are missing.
    """
    backend = settings.store_backend
    if backend == "postgres":
        from terrence.store.postgres import PostgresRowStore

        store: RowStore = PostgresRowStore(settings)
    elif backend == "sqlite":
        from terrence.store.sqlite import SqliteRowStore

        store = SqliteRowStore(settings.sqlite_path)
    elif backend == "table_api":
        if not settings.table_api_url or not settings.table_api_key:
            raise ConfigurationError(
                "TERRENCE_TABLE_API_URL and TERRENCE_TABLE_API_KEY must be configured"
            )
        from terrence.store.table_api import TableApiRowStore

        store = TableApiRowStore(
            settings.table_api_url,
            settings.table_api_key,
            timeout_s=settings.http_timeout_s,
        )
    else:
        raise ConfigurationError(f"Unknown store backend: {backend}")

    logger.info("Using %s row store", store.name)
    return store
