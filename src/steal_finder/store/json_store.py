from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from steal_finder.utils.datetime_utils import parse_datetime_utc, to_epoch_ms, utc_now

from .base import SeenRecord, Store

logger = logging.getLogger(__name__)


class JsonFileStore(Store):
    """Seen-state kept in memory and rewritten in full to a JSON file on every insert.

    File layout: ``{entry_id: {"ts": epoch_ms, "title": ..., "price": ..., "link": ...}}``.
    A missing or corrupt file starts an empty store.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._entries: dict[str, dict[str, Any]] = self._load()

    def is_seen(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> SeenRecord | None:
        payload = self._entries.get(entry_id)
        if payload is None:
            return None
        return _payload_to_record(entry_id, payload)

    def record(self, record: SeenRecord) -> None:
        if record.entry_id in self._entries:
            return
        self._entries[record.entry_id] = {
            "ts": to_epoch_ms(record.notified_at),
            "title": record.title,
            "price": record.price,
            "link": record.link,
        }
        try:
            self._save()
        except OSError:
            del self._entries[record.entry_id]
            raise

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self) -> dict[str, dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cannot read seen state %s, starting empty: %s", self.path, exc)
            return {}

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.debug("Seen state %s is not valid JSON, starting empty: %s", self.path, exc)
            return {}

        if not isinstance(parsed, dict):
            logger.debug("Seen state %s root is not a mapping, starting empty", self.path)
            return {}

        return {
            str(key): value if isinstance(value, dict) else {}
            for key, value in parsed.items()
        }

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._entries, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _payload_to_record(entry_id: str, payload: dict[str, Any]) -> SeenRecord:
    price = payload.get("price")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        price = None
    return SeenRecord(
        entry_id=entry_id,
        notified_at=parse_datetime_utc(payload.get("ts")) or utc_now(),
        title=str(payload.get("title") or ""),
        price=float(price) if price is not None else None,
        link=str(payload.get("link") or ""),
    )
