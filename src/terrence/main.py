"""FastAPI application factory with async lifespan management."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI

from terrence import __version__
from terrence.api.routes import router
from terrence.app import open_app_context
from terrence.config import Settings, load_settings

logger = logging.getLogger("terrence")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the row store and HTTP client on startup; release them on shutdown."""
    settings: Settings = app.state.settings
    logger.info("terrence v%s starting up", __version__)

    async with open_app_context(settings) as ctx:
        app.state.ctx = ctx
        logger.info("Ready (%s store), listening on %s:%d", ctx.store.name, settings.host, settings.port)
        yield
        logger.info("Shutting down…")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return a configured FastAPI application.

    Parameters
    ----------
    settings:
        Optional pre-built settings.  If *None*, settings are loaded from
        environment variables and an optional ``config.yaml`` in the CWD.
    """
    if settings is None:
        config_path = Path("config.yaml")
        settings = load_settings(config_path if config_path.exists() else None)

    app = FastAPI(
        title="terrence",
        description=(
            "Code-graph query tools (search, function context, call graphs) and "
            "Slack/Notion notifications for voice agents."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(router)
    return app


def main() -> None:
    """CLI entry point: load config and run the HTTP server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config_path = Path("config.yaml")
    settings = load_settings(config_path if config_path.exists() else None)
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
