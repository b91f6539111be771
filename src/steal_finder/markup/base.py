from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator


class Element(ABC):
    @abstractmethod
    def select(self, selector: str) -> Iterator[Element]:
        """Yield descendant matches for ``selector`` in document order."""

    @abstractmethod
    def text(self) -> str:
        """Return the element's text content, trimmed."""

    @abstractmethod
    def attr(self, name: str) -> str | None:
        """Return a named attribute, or None when missing."""

    def select_one(self, selector: str) -> Element | None:
        return next(iter(self.select(selector)), None)


class MarkupParser(ABC):
    @abstractmethod
    def parse(self, markup: str | bytes) -> Element:
        """Parse raw markup and return the document root."""
