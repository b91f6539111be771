from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class SeenRecord:
    entry_id: str
    notified_at: datetime
    title: str
    price: float | None
    link: str


class Store(ABC):
    """Dedup state: which entry identities have already been announced.

    Records are write-once. Implementations persist every ``record`` call
    before returning and never expire entries.
    """

    @abstractmethod
    def is_seen(self, entry_id: str) -> bool:
        """Return True if the identity was recorded before."""

    @abstractmethod
    def get(self, entry_id: str) -> SeenRecord | None:
        """Return the stored record, or None."""

    @abstractmethod
    def record(self, record: SeenRecord) -> None:
        """Insert the record and persist it; an existing identity is left untouched."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of recorded identities."""
