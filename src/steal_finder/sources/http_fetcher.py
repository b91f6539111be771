from __future__ import annotations

import logging

import requests

from steal_finder.config import DEFAULT_USER_AGENT

from .base import PageFetcher

logger = logging.getLogger(__name__)


class HttpPageFetcher(PageFetcher):
    def __init__(
        self,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    def fetch(self, url: str) -> bytes:
        headers = {"User-Agent": self.user_agent}
        response = requests.get(url, timeout=self.timeout_seconds, headers=headers)
        response.raise_for_status()
        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response.content
