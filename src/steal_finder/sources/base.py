from __future__ import annotations

from abc import ABC, abstractmethod


class PageFetcher(ABC):
    @abstractmethod
    def fetch(self, url: str) -> str | bytes:
        """Return the raw markup at ``url``; raise on network or HTTP errors.

        Bytes are passed through undecoded so the parser can honour the
        document's own charset declaration.
        """
