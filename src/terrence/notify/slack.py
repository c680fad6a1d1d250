"""Slack message delivery via incoming webhook or bot OAuth token."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from terrence.config import Settings
from terrence.errors import ConfigurationError, ToolError, UpstreamError
from terrence.utils import json_or_raw

logger = logging.getLogger(__name__)

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackNotifier:
    """Posts messages to Slack.

    The incoming webhook is preferred when configured; otherwise the bot
    token is used against ``chat.postMessage``, which needs a channel.
    Credentials are read at call time so a missing one only fails the call.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client

    async def send_message(self, text: str, channel: Optional[str] = None) -> Any:
        if self._settings.slack_webhook_url:
            return await self._send_webhook(text, channel)

        if not self._settings.slack_api_key:
            raise ConfigurationError("Neither SLACK_WEBHOOK_URL nor SLACK_API_KEY configured")
        if not channel:
            raise ToolError("Channel is required when using OAuth token")
        return await self._send_api(text, channel)

    async def _send_webhook(self, text: str, channel: Optional[str]) -> dict[str, Any]:
        body: dict[str, Any] = {"text": text}
        if channel:
            body["channel"] = channel
        try:
            resp = await self._client.post(self._settings.slack_webhook_url, json=body)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Webhook failed: {exc}") from exc

        if not resp.is_success:
            logger.warning("Slack webhook returned HTTP %d", resp.status_code)
            raise UpstreamError(f"Webhook failed: {resp.reason_phrase}")
        return {"ok": True, "method": "webhook", "message": "Message sent via webhook"}

    async def _send_api(self, text: str, channel: str) -> Any:
        try:
            resp = await self._client.post(
                SLACK_POST_MESSAGE_URL,
                json={"channel": channel, "text": text},
                headers={"Authorization": f"Bearer {self._settings.slack_api_key}"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Slack API request failed: {exc}") from exc

        data = json_or_raw(resp)
        if not resp.is_success:
            raise UpstreamError(f"Slack API returned HTTP {resp.status_code}", payload=data)
        return data
