"""PostgreSQL row store via an asyncpg connection pool."""

from __future__ import annotations

import logging
from typing import Any, Optional

import asyncpg

from terrence.config import Settings
from terrence.errors import StoreError
from terrence.store.sql import POSTGRES, SqlRowStore

logger = logging.getLogger(__name__)

# Hosts that only accept TLS connections.
_MANAGED_TLS_MARKERS = ("supabase",)


def requires_tls(target: str) -> bool:
    """Return whether *target* (URL or host) points at a managed cloud host."""
    lowered = target.lower()
    return any(marker in lowered for marker in _MANAGED_TLS_MARKERS)


def pool_kwargs(settings: Settings) -> dict[str, Any]:
    """Translate settings into ``asyncpg.create_pool`` keyword arguments."""
    kwargs: dict[str, Any] = {
        "min_size": 1,
        "max_size": settings.db_pool_max_size,
        "timeout": settings.db_connect_timeout_s,
        "max_inactive_connection_lifetime": settings.db_idle_timeout_s,
    }
    if settings.database_url:
        kwargs["dsn"] = settings.database_url
        tls_target = settings.database_url
    else:
        kwargs.update(
            host=settings.db_host,
            port=settings.db_port,
            database=settings.db_name,
            user=settings.db_user,
            password=settings.db_password,
        )
        tls_target = settings.db_host
    if requires_tls(tls_target):
        kwargs["ssl"] = "require"
    return kwargs


class PostgresRowStore(SqlRowStore):
    """Row store over a bounded asyncpg pool created on :meth:`open`."""

    name = "postgres"
    dialect = POSTGRES

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pool: Optional[asyncpg.Pool] = None

    async def open(self) -> None:
        if self._pool is not None:
            return
        kwargs = pool_kwargs(self._settings)
        logger.info(
            "Creating PostgreSQL pool (max_size=%d, tls=%s)",
            kwargs["max_size"],
            "ssl" in kwargs,
        )
        try:
            self._pool = await asyncpg.create_pool(**kwargs)
        except (asyncpg.PostgresError, OSError, TimeoutError) as exc:
            raise StoreError(f"Database connection failed: {exc}") from exc

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL pool closed")

    async def _fetch(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        if self._pool is None:
            raise StoreError("Database pool not initialised. Call open() during startup.")
        try:
            records = await self._pool.fetch(sql, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as exc:
            raise StoreError(f"Database query error: {exc}") from exc
        return [dict(r) for r in records]
