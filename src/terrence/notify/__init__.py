"""Outbound notification clients (Slack, Notion)."""

from terrence.notify.notion import NotionClient
from terrence.notify.slack import SlackNotifier

__all__ = ["NotionClient", "SlackNotifier"]
