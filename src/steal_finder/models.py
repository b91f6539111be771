from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class RawEntry:
    title: str
    price_text: str | None
    link: str


@dataclass(slots=True)
class Listing:
    title: str
    price_text: str | None
    link: str
    price: float

    @classmethod
    def from_raw(cls, entry: RawEntry, price: float) -> Listing:
        return cls(
            title=entry.title,
            price_text=entry.price_text,
            link=entry.link,
            price=price,
        )


@dataclass(slots=True)
class MessageField:
    name: str
    value: str
    inline: bool = True


@dataclass(slots=True)
class NotificationMessage:
    title: str
    url: str
    fields: list[MessageField] = field(default_factory=list)
    timestamp: datetime | None = None
