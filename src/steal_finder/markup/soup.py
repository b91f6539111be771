from __future__ import annotations

from typing import Iterator

from bs4 import BeautifulSoup
from bs4.element import Tag

from .base import Element, MarkupParser


class SoupElement(Element):
    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    def select(self, selector: str) -> Iterator[Element]:
        for match in self._tag.css.iselect(selector):
            yield SoupElement(match)

    def text(self) -> str:
        return self._tag.get_text().strip()

    def attr(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        # Multi-valued attributes (class, rel) come back as lists.
        if isinstance(value, list):
            return " ".join(value)
        return str(value)


class SoupParser(MarkupParser):
    def __init__(self, features: str = "lxml") -> None:
        self.features = features

    def parse(self, markup: str | bytes) -> Element:
        return SoupElement(BeautifulSoup(markup, self.features))
