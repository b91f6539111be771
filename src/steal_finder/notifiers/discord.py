from __future__ import annotations

import logging

import requests

from steal_finder.models import NotificationMessage
from steal_finder.utils.datetime_utils import format_datetime, to_utc

from .base import Notifier, NotifierError

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
_TITLE_LIMIT = 256
_FIELD_VALUE_LIMIT = 1024


class DiscordNotifier(Notifier):
    """Posts embeds to one Discord channel through the bot REST API."""

    def __init__(self, token: str, channel_id: str, timeout_seconds: int = 15) -> None:
        self.token = token
        self.channel_id = channel_id
        self.timeout_seconds = timeout_seconds

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.token}"}

    def verify_channel(self) -> str:
        """Check the bot can see the channel; return its name."""
        url = f"{DISCORD_API_BASE}/channels/{self.channel_id}"
        try:
            response = requests.get(url, headers=self._headers, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise NotifierError(f"Cannot reach Discord channel {self.channel_id}: {exc}") from exc

        if response.status_code >= 400:
            raise NotifierError(
                f"Discord channel {self.channel_id} unavailable "
                f"({response.status_code}): {response.text}"
            )

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        name = str(payload.get("name") or self.channel_id)
        logger.info("Connected to Discord channel #%s", name)
        return name

    def post(self, message: NotificationMessage) -> None:
        url = f"{DISCORD_API_BASE}/channels/{self.channel_id}/messages"
        response = requests.post(
            url,
            json=build_discord_payload(message),
            headers=self._headers,
            timeout=self.timeout_seconds,
        )
        if response.status_code >= 400:
            raise NotifierError(
                f"Discord API returned {response.status_code}: {response.text}"
            )


def build_discord_payload(message: NotificationMessage) -> dict:
    embed: dict = {
        "title": _truncate(message.title, _TITLE_LIMIT),
        "fields": [
            {
                "name": field.name,
                "value": _truncate(field.value, _FIELD_VALUE_LIMIT) or "-",
                "inline": field.inline,
            }
            for field in message.fields
        ],
    }
    if message.url:
        embed["url"] = message.url
    if message.timestamp is not None:
        embed["timestamp"] = to_utc(message.timestamp).isoformat()
    return {"embeds": [embed]}


def render_message_text(message: NotificationMessage) -> str:
    lines = [message.title]
    if message.url:
        lines.append(message.url)
    for field in message.fields:
        lines.append(f"{field.name}: {field.value}")
    if message.timestamp is not None:
        lines.append(format_datetime(message.timestamp))
    return "\n".join(lines)


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return f"{value[: limit - 3]}..."
