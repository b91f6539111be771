from __future__ import annotations

from typing import Iterator

from steal_finder.config import WatchDefinition
from steal_finder.markup import Element, MarkupParser
from steal_finder.models import RawEntry
from steal_finder.utils.price_utils import find_price_candidate, parse_price
from steal_finder.utils.url_utils import resolve_link

NO_TITLE = "No title"


def extract_entries(
    markup: str | bytes,
    watch: WatchDefinition,
    parser: MarkupParser,
) -> Iterator[RawEntry]:
    """Yield one RawEntry per item element, in document order.

    Lazy: the page is parsed on first iteration and nothing is cached.
    """
    root = parser.parse(markup)
    for item in root.select(watch.item_selector):
        yield RawEntry(
            title=_extract_title(item, watch),
            price_text=_extract_price_text(item, watch),
            link=_extract_link(item, watch),
        )


def _extract_title(item: Element, watch: WatchDefinition) -> str:
    if watch.title_selector:
        match = item.select_one(watch.title_selector)
        title = match.text() if match is not None else ""
    else:
        title = item.text()
    return title or NO_TITLE


def _extract_price_text(item: Element, watch: WatchDefinition) -> str | None:
    price_text: str | None = None
    if watch.price_selector:
        match = item.select_one(watch.price_selector)
        price_text = match.text() if match is not None else ""

    if parse_price(price_text) is not None:
        return price_text

    # Fallback: first number-like run anywhere in the item text.
    candidate = find_price_candidate(item.text())
    return candidate or price_text


def _extract_link(item: Element, watch: WatchDefinition) -> str:
    if not watch.link_selector:
        return watch.url

    match = item.select_one(watch.link_selector)
    href = None
    if match is not None:
        href = match.attr("href") or match.attr("data-href")
    if not href:
        return watch.url
    return resolve_link(watch.url, href)
