from __future__ import annotations

import json
from typing import Callable

import pytest
import requests

from steal_finder.config import WatchDefinition
from steal_finder.filters import ThresholdFilter
from steal_finder.markup import SoupParser
from steal_finder.models import NotificationMessage
from steal_finder.notifiers.base import Notifier
from steal_finder.service import WatchService
from steal_finder.sources.base import PageFetcher
from steal_finder.store import JsonFileStore

LISTING_PAGE = """
<html><body>
  <div class="item">
    <a href="/offer/cheap"><span class="name">Cheap camera</span></a>
    <span class="price">120 zł</span>
  </div>
  <div class="item">
    <a href="/offer/pricey"><span class="name">Pricey camera</span></a>
    <span class="price">480 zł</span>
  </div>
</body></html>
"""

NO_PRICE_PAGE = """
<html><body>
  <div class="item">
    <a href="/offer/mystery"><span class="name">Mystery box</span></a>
    <span class="price">ask seller</span>
  </div>
</body></html>
"""


class StaticFetcher(PageFetcher):
    def __init__(self, pages: dict[str, str | Exception]) -> None:
        self.pages = pages
        self.calls: list[str] = []

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


class RecordingNotifier(Notifier):
    def __init__(self, fail_titles: set[str] | None = None) -> None:
        self.messages: list[NotificationMessage] = []
        self.fail_titles = fail_titles or set()

    def post(self, message: NotificationMessage) -> None:
        if message.title in self.fail_titles:
            raise RuntimeError("channel unavailable")
        self.messages.append(message)


def _watch(url: str = "https://shop.example/cameras", **overrides: object) -> WatchDefinition:
    values: dict[str, object] = {
        "name": url.rsplit("/", 1)[-1],
        "url": url,
        "item_selector": ".item",
        "title_selector": ".name",
        "price_selector": ".price",
        "link_selector": "a",
        "max_price": 200.0,
    }
    values.update(overrides)
    return WatchDefinition(**values)


def _service(
    *,
    watches: list[WatchDefinition],
    fetcher: PageFetcher,
    store: JsonFileStore,
    notifier: Notifier | None,
    sleep: Callable[[float], None] = lambda _seconds: None,
    **kwargs: object,
) -> WatchService:
    return WatchService(
        watches=watches,
        fetcher=fetcher,
        parser=SoupParser(),
        filter_engine=ThresholdFilter(),
        store=store,
        notifier=notifier,
        sleep=sleep,
        **kwargs,
    )


def test_only_entry_under_max_price_is_notified_and_recorded(tmp_path) -> None:
    seen_path = tmp_path / "seen.json"
    store = JsonFileStore(seen_path)
    notifier = RecordingNotifier()
    watch = _watch()
    pauses: list[float] = []
    service = _service(
        watches=[watch],
        fetcher=StaticFetcher({watch.url: LISTING_PAGE}),
        store=store,
        notifier=notifier,
        sleep=pauses.append,
    )

    stats = service.run_cycle()

    assert stats.ok
    assert stats.notified == 1
    assert stats.filtered_out == 1
    assert [message.title for message in notifier.messages] == ["Cheap camera"]
    assert notifier.messages[0].url == "https://shop.example/offer/cheap"
    assert [(field.name, field.value) for field in notifier.messages[0].fields] == [
        ("Price", "120 zł"),
        ("Threshold (max price)", "200"),
    ]
    persisted = json.loads(seen_path.read_text(encoding="utf-8"))
    assert list(persisted) == ["https://shop.example/offer/cheap|120"]
    assert pauses == [1.0]


def test_second_run_with_same_page_sends_nothing(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    notifier = RecordingNotifier()
    watch = _watch(max_price=None)
    fetcher = StaticFetcher({watch.url: LISTING_PAGE})

    first = _service(watches=[watch], fetcher=fetcher, store=store, notifier=notifier).run_cycle()
    second = _service(watches=[watch], fetcher=fetcher, store=store, notifier=notifier).run_cycle()

    assert first.notified == 2
    assert second.notified == 0
    assert second.skipped_already_seen == 2
    assert len(notifier.messages) == 2


def test_state_survives_restart(tmp_path) -> None:
    seen_path = tmp_path / "seen.json"
    watch = _watch()
    fetcher = StaticFetcher({watch.url: LISTING_PAGE})
    notifier = RecordingNotifier()

    _service(watches=[watch], fetcher=fetcher, store=JsonFileStore(seen_path), notifier=notifier).run_cycle()
    stats = _service(
        watches=[watch],
        fetcher=fetcher,
        store=JsonFileStore(seen_path),
        notifier=notifier,
    ).run_cycle()

    assert stats.notified == 0
    assert len(notifier.messages) == 1


def test_price_drop_notifies_again(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    notifier = RecordingNotifier()
    watch = _watch()
    fetcher = StaticFetcher({watch.url: LISTING_PAGE})

    _service(watches=[watch], fetcher=fetcher, store=store, notifier=notifier).run_cycle()
    fetcher.pages[watch.url] = LISTING_PAGE.replace("120 zł", "99 zł")
    stats = _service(watches=[watch], fetcher=fetcher, store=store, notifier=notifier).run_cycle()

    assert stats.notified == 1
    assert [message.fields[0].value for message in notifier.messages] == ["120 zł", "99 zł"]


def test_http_error_skips_watch_and_later_watches_still_run(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    notifier = RecordingNotifier()
    broken = _watch("https://shop.example/broken")
    healthy = _watch("https://shop.example/cameras")
    fetcher = StaticFetcher(
        {
            broken.url: requests.HTTPError("503 Server Error"),
            healthy.url: LISTING_PAGE,
        }
    )
    service = _service(watches=[broken, healthy], fetcher=fetcher, store=store, notifier=notifier)

    stats = service.run_cycle()

    assert fetcher.calls == [broken.url, healthy.url]
    assert stats.watches == 2
    assert stats.notified == 1
    assert len(stats.errors) == 1
    assert "broken fetch failed" in stats.errors[0]
    assert [message.title for message in notifier.messages] == ["Cheap camera"]


def test_entry_without_parseable_price_is_discarded(tmp_path) -> None:
    seen_path = tmp_path / "seen.json"
    store = JsonFileStore(seen_path)
    notifier = RecordingNotifier()
    watch = _watch(max_price=None)
    service = _service(
        watches=[watch],
        fetcher=StaticFetcher({watch.url: NO_PRICE_PAGE}),
        store=store,
        notifier=notifier,
    )

    stats = service.run_cycle()

    assert stats.discarded_no_price == 1
    assert stats.processed == 0
    assert notifier.messages == []
    assert len(store) == 0
    assert not seen_path.exists()


def test_notify_failure_is_not_recorded_and_siblings_continue(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    notifier = RecordingNotifier(fail_titles={"Cheap camera"})
    watch = _watch(max_price=None)
    service = _service(
        watches=[watch],
        fetcher=StaticFetcher({watch.url: LISTING_PAGE}),
        store=store,
        notifier=notifier,
    )

    stats = service.run_cycle()

    assert stats.notified == 1
    assert len(stats.errors) == 1
    assert [message.title for message in notifier.messages] == ["Pricey camera"]
    assert store.is_seen("https://shop.example/offer/cheap|120") is False
    assert store.is_seen("https://shop.example/offer/pricey|480") is True


def test_invalid_selector_fails_only_that_watch(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    notifier = RecordingNotifier()
    broken = _watch("https://shop.example/odd", item_selector="div[[[")
    healthy = _watch("https://shop.example/cameras")
    service = _service(
        watches=[broken, healthy],
        fetcher=StaticFetcher({broken.url: LISTING_PAGE, healthy.url: LISTING_PAGE}),
        store=store,
        notifier=notifier,
    )

    stats = service.run_cycle()

    assert len(stats.errors) == 1
    assert "odd extraction failed" in stats.errors[0]
    assert stats.notified == 1


def test_profit_field_is_added_when_resale_value_configured(tmp_path) -> None:
    notifier = RecordingNotifier()
    watch = _watch(max_price=None, expected_resale_value=400.0, min_profit=250.0)
    service = _service(
        watches=[watch],
        fetcher=StaticFetcher({watch.url: LISTING_PAGE}),
        store=JsonFileStore(tmp_path / "seen.json"),
        notifier=notifier,
    )

    stats = service.run_cycle()

    assert stats.notified == 1
    assert stats.filtered_out == 1
    fields = {field.name: field.value for field in notifier.messages[0].fields}
    assert fields["Estimated profit"] == "280"
    assert fields["Threshold (max price)"] == "none"


def test_dry_run_previews_without_notifying_or_recording(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    previews: list[tuple[str, str]] = []
    watch = _watch()
    service = _service(
        watches=[watch],
        fetcher=StaticFetcher({watch.url: LISTING_PAGE}),
        store=store,
        notifier=None,
        dry_run=True,
        preview_callback=lambda message, reason: previews.append((message.title, reason)),
    )

    stats = service.run_cycle()

    assert stats.matched == 1
    assert previews == [("Cheap camera", "price 120 <= max 200")]
    assert len(store) == 0


def test_mark_seen_only_records_matches_without_notifying(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "seen.json")
    watch = _watch()
    pauses: list[float] = []
    service = _service(
        watches=[watch],
        fetcher=StaticFetcher({watch.url: LISTING_PAGE}),
        store=store,
        notifier=None,
        mark_seen_only=True,
        sleep=pauses.append,
    )

    stats = service.run_cycle()

    assert stats.marked_seen == 1
    assert stats.notified == 0
    assert store.is_seen("https://shop.example/offer/cheap|120") is True
    assert pauses == []


def test_notifier_required_for_live_runs(tmp_path) -> None:
    with pytest.raises(ValueError):
        _service(
            watches=[_watch()],
            fetcher=StaticFetcher({}),
            store=JsonFileStore(tmp_path / "seen.json"),
            notifier=None,
        )
