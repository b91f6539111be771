from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import timezone
from pathlib import Path
from typing import Iterator

from steal_finder.utils.datetime_utils import parse_datetime_utc, utc_now

from .base import SeenRecord, Store

logger = logging.getLogger(__name__)


class SQLiteStore(Store):
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.init_db()

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._create_schema()
        except sqlite3.DatabaseError as exc:
            corrupt_path = self.db_path.with_name(f"{self.db_path.name}.corrupt")
            logger.warning(
                "Seen database %s is unreadable (%s); moving it to %s and starting empty",
                self.db_path,
                exc,
                corrupt_path,
            )
            self.db_path.replace(corrupt_path)
            self._create_schema()

    def is_seen(self, entry_id: str) -> bool:
        with self._connect() as connection:
            row = connection.execute(
                "SELECT 1 FROM seen_entries WHERE entry_id = ?",
                (entry_id,),
            ).fetchone()
        return row is not None

    def get(self, entry_id: str) -> SeenRecord | None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT entry_id, notified_at, title, price, link
                FROM seen_entries
                WHERE entry_id = ?
                """,
                (entry_id,),
            ).fetchone()

        if row is None:
            return None

        return SeenRecord(
            entry_id=row["entry_id"],
            notified_at=parse_datetime_utc(row["notified_at"]) or utc_now(),
            title=row["title"],
            price=row["price"],
            link=row["link"],
        )

    def record(self, record: SeenRecord) -> None:
        notified_value = record.notified_at.astimezone(timezone.utc).isoformat()

        with self._connect() as connection:
            connection.execute(
                """
                INSERT OR IGNORE INTO seen_entries (
                    entry_id,
                    notified_at,
                    title,
                    price,
                    link
                )
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.entry_id,
                    notified_value,
                    record.title,
                    record.price,
                    record.link,
                ),
            )
            connection.commit()

    def __len__(self) -> int:
        with self._connect() as connection:
            row = connection.execute("SELECT COUNT(*) AS total FROM seen_entries").fetchone()
        return int(row["total"])

    def _create_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS seen_entries (
                    entry_id TEXT PRIMARY KEY,
                    notified_at TEXT NOT NULL,
                    title TEXT NOT NULL,
                    price REAL NULL,
                    link TEXT NOT NULL
                )
                """
            )
            connection.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # sqlite3.Connection as a context manager commits but does not close.
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        try:
            with connection:
                yield connection
        finally:
            connection.close()
