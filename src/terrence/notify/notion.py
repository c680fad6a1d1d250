"""Notion page create/update for session summaries."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from terrence.config import Settings
from terrence.errors import ConfigurationError, UpstreamError
from terrence.utils import json_or_raw

NOTION_PAGES_URL = "https://api.notion.com/v1/pages"
NOTION_VERSION = "2022-06-28"


def page_body(title: str, content: str) -> dict[str, Any]:
    """Map a title and free text onto Notion's property/block schema."""
    return {
        "properties": {
            "title": {
                "title": [{"text": {"content": title}}],
            },
        },
        "children": [
            {
                "object": "block",
                "type": "paragraph",
                "paragraph": {
                    "rich_text": [{"type": "text", "text": {"content": content}}],
                },
            }
        ],
    }


class NotionClient:
    """Creates a page (POST) or updates one (PATCH when ``page_id`` is given)."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client

    async def update_page(self, title: str, content: str, page_id: Optional[str] = None) -> Any:
        api_key = self._settings.notion_api_key
        if not api_key:
            raise ConfigurationError("NOTION_API_KEY not configured")

        if page_id:
            method, url = "PATCH", f"{NOTION_PAGES_URL}/{quote(page_id, safe='')}"
        else:
            method, url = "POST", NOTION_PAGES_URL

        try:
            resp = await self._client.request(
                method,
                url,
                json=page_body(title, content),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Notion-Version": NOTION_VERSION,
                },
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Notion request failed: {exc}") from exc

        data = json_or_raw(resp)
        if not resp.is_success:
            raise UpstreamError(f"Notion API returned HTTP {resp.status_code}", payload=data)
        return data
