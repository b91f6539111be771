from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

from steal_finder.utils.price_utils import format_number

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def resolve_link(base_url: str, href: str) -> str:
    """Resolve ``href`` against ``base_url``; malformed input comes back unchanged."""
    value = (href or "").strip()
    if not value or _is_malformed_reference(value):
        return href

    try:
        resolved = urljoin(base_url, value)
        # urljoin is lazy about netloc validation (e.g. unbalanced IPv6 brackets).
        urlsplit(resolved)
    except ValueError:
        return href
    return resolved


def derive_entry_id(link: str | None, title: str, price: float | None) -> str:
    """Stable dedup key; a price change yields a new identity."""
    price_part = format_number(price) if price else ""
    return f"{link or title}|{price_part}"


def _is_malformed_reference(value: str) -> bool:
    # A relative reference may not carry a colon in its first path segment,
    # so anything before the first ":" in that segment has to be a scheme.
    first_segment = re.split(r"[/?#]", value, maxsplit=1)[0]
    if ":" not in first_segment:
        return False
    scheme = first_segment.split(":", 1)[0]
    return not _SCHEME.match(scheme)
