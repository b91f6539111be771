from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from steal_finder.config import WatchDefinition
from steal_finder.extractor import extract_entries
from steal_finder.filters import Filter
from steal_finder.markup import MarkupParser
from steal_finder.models import Listing, NotificationMessage
from steal_finder.notifiers import Notifier, build_notification
from steal_finder.sources import PageFetcher
from steal_finder.store import SeenRecord, Store
from steal_finder.utils.datetime_utils import utc_now
from steal_finder.utils.price_utils import parse_price
from steal_finder.utils.url_utils import derive_entry_id

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunStats:
    watches: int = 0
    processed: int = 0
    discarded_no_price: int = 0
    skipped_already_seen: int = 0
    filtered_out: int = 0
    matched: int = 0
    notified: int = 0
    marked_seen: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class WatchService:
    """Runs watches: fetch, extract, dedup, evaluate, notify, record.

    ``dry_run`` previews matches without notifying or recording.
    ``mark_seen_only`` records matches without notifying (backfill).
    """

    def __init__(
        self,
        *,
        watches: list[WatchDefinition],
        fetcher: PageFetcher,
        parser: MarkupParser,
        filter_engine: Filter,
        store: Store,
        notifier: Notifier | None,
        notify_pause_seconds: float = 1.0,
        dry_run: bool = False,
        mark_seen_only: bool = False,
        preview_callback: Callable[[NotificationMessage, str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if notifier is None and not (dry_run or mark_seen_only):
            raise ValueError("notifier is required unless dry_run or mark_seen_only is set")

        self.watches = watches
        self.fetcher = fetcher
        self.parser = parser
        self.filter_engine = filter_engine
        self.store = store
        self.notifier = notifier
        self.notify_pause_seconds = notify_pause_seconds
        self.dry_run = dry_run
        self.mark_seen_only = mark_seen_only
        self.preview_callback = preview_callback or _default_preview
        self.sleep = sleep

    def run_cycle(self) -> RunStats:
        stats = RunStats()
        for watch in self.watches:
            self.run_watch(watch, stats)
        return stats

    def run_watch(self, watch: WatchDefinition, stats: RunStats | None = None) -> RunStats:
        stats = stats if stats is not None else RunStats()
        stats.watches += 1

        try:
            markup = self.fetcher.fetch(watch.url)
        except Exception as exc:  # noqa: BLE001
            message = f"watch {watch.name} fetch failed: {exc}"
            logger.exception(message)
            stats.errors.append(message)
            return stats

        try:
            for raw_entry in extract_entries(markup, watch, self.parser):
                price = parse_price(raw_entry.price_text)
                if price is None:
                    stats.discarded_no_price += 1
                    logger.debug("Discarding %r from %s: no price", raw_entry.title, watch.name)
                    continue

                self._process_entry(watch, Listing.from_raw(raw_entry, price), stats)
        except Exception as exc:  # noqa: BLE001
            message = f"watch {watch.name} extraction failed: {exc}"
            logger.exception(message)
            stats.errors.append(message)

        return stats

    def _process_entry(self, watch: WatchDefinition, entry: Listing, stats: RunStats) -> None:
        stats.processed += 1

        entry_id = derive_entry_id(entry.link, entry.title, entry.price)
        if self.store.is_seen(entry_id):
            stats.skipped_already_seen += 1
            return

        result = self.filter_engine.evaluate(entry, watch)
        if not result.matched:
            stats.filtered_out += 1
            logger.debug("Rejected %r from %s: %s", entry.title, watch.name, result.reason_text())
            return

        stats.matched += 1
        message = build_notification(entry, watch, result)

        if self.dry_run:
            self.preview_callback(message, result.reason_text())
            return

        if self.mark_seen_only:
            if self._record(entry_id, entry, stats):
                stats.marked_seen += 1
            return

        try:
            self.notifier.post(message)
        except Exception as exc:  # noqa: BLE001
            error = f"failed to notify {entry_id}: {exc}"
            logger.exception(error)
            stats.errors.append(error)
            return

        logger.info(
            "Notified %r at %s from %s (%s)",
            entry.title,
            entry.price_text or entry.price,
            watch.name,
            result.reason_text(),
        )

        if not self._record(entry_id, entry, stats):
            return

        stats.notified += 1
        if self.notify_pause_seconds > 0:
            self.sleep(self.notify_pause_seconds)

    def _record(self, entry_id: str, entry: Listing, stats: RunStats) -> bool:
        try:
            self.store.record(
                SeenRecord(
                    entry_id=entry_id,
                    notified_at=utc_now(),
                    title=entry.title,
                    price=entry.price,
                    link=entry.link,
                )
            )
        except Exception as exc:  # noqa: BLE001
            error = f"failed to record {entry_id} as seen: {exc}"
            logger.exception(error)
            stats.errors.append(error)
            return False
        return True


def _default_preview(message: NotificationMessage, reason: str) -> None:
    print(f"[DRY RUN] WOULD NOTIFY: {message.title}")
    print(f"  URL: {message.url}")
    for message_field in message.fields:
        print(f"  {message_field.name}: {message_field.value}")
    print(f"  Why it matched: {reason}")
    print("")
