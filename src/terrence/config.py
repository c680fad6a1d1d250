"""Application settings loaded from environment variables or YAML config."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic_settings import BaseSettings

StoreBackend = Literal["postgres", "sqlite", "table_api"]


class Settings(BaseSettings):
    """Central configuration for terrence.

    Values are resolved in order: constructor kwargs (which is how
    :func:`load_settings` applies YAML values) > env vars > ``.env`` file >
    defaults.  Environment variables are prefixed with ``TERRENCE_``
    (e.g. ``TERRENCE_DATABASE_URL``).
    """

    # -- Row store ------------------------------------------------------------
    store_backend: StoreBackend = "postgres"

    # PostgreSQL: either a connection string or discrete components
    database_url: str = ""
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "terrence"
    db_user: str = "postgres"
    db_password: str = ""
    db_pool_max_size: int = 20
    db_connect_timeout_s: float = 2.0
    db_idle_timeout_s: float = 30.0

    # Local SQLite file (development / tests)
    sqlite_path: str = "./terrence.db"

    # Hosted table API (Supabase / PostgREST)
    table_api_url: str = ""
    table_api_key: str = ""

    # -- Concurrency & limits -------------------------------------------------
    lookup_concurrency: int = 16
    http_timeout_s: float = 30.0

    # -- Notifications --------------------------------------------------------
    slack_webhook_url: str = ""
    slack_api_key: str = ""
    notion_api_key: str = ""

    # -- Server ---------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = {
        "env_prefix": "TERRENCE_",
        "env_file": ".env",
        "extra": "ignore",
    }


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """Load settings, optionally merging values from a YAML file.

    Parameters
    ----------
    config_path:
        Path to a YAML config file.  If *None*, only env vars, ``.env`` and
        defaults are used.

    Returns
    -------
    Settings
        A fully-resolved settings instance.
    """
    overrides: dict = {}
    if config_path is not None:
        p = Path(config_path)
        if p.exists():
            with p.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
            if isinstance(raw, dict):
                # Only keep keys that are valid settings fields
                valid_keys = set(Settings.model_fields.keys())
                overrides = {k: v for k, v in raw.items() if k in valid_keys and v is not None}
    return Settings(**overrides)
