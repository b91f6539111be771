"""Page fetcher implementations."""

from .base import PageFetcher
from .http_fetcher import HttpPageFetcher

__all__ = ["HttpPageFetcher", "PageFetcher"]
