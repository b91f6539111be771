from __future__ import annotations

import re

_NON_PRICE_CHARS = re.compile(r"[^0-9.,\-\s]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_FLOAT = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)")
_PRICE_CANDIDATE = re.compile(r"[0-9][0-9 .,]{0,10}[0-9]")


def parse_price(text: str | None) -> float | None:
    """Turn free-form price text into a number.

    Only digits, ``.``, ``,``, ``-`` and whitespace survive. The first comma
    is read as a decimal separator and the longest leading float literal is
    parsed, so ``"1,234.56"`` yields ``1.234``. No currency awareness.
    """
    if not text:
        return None

    cleaned = _NON_PRICE_CHARS.sub("", text).strip()
    if not cleaned:
        return None

    normalized = _WHITESPACE.sub("", cleaned).replace(",", ".", 1)
    match = _LEADING_FLOAT.match(normalized)
    if match is None:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def find_price_candidate(text: str | None) -> str | None:
    """Return the first number-like substring of free text.

    Secondary strategy only: used when a structured price lookup found
    nothing parseable.
    """
    if not text:
        return None
    match = _PRICE_CANDIDATE.search(text)
    return match.group(0) if match else None


def format_number(value: float | None) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
