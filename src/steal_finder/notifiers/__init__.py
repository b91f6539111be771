"""Notifier implementations."""

from .base import Notifier, NotifierError, build_notification
from .discord import DiscordNotifier, build_discord_payload, render_message_text

__all__ = [
    "DiscordNotifier",
    "Notifier",
    "NotifierError",
    "build_discord_payload",
    "build_notification",
    "render_message_text",
]
