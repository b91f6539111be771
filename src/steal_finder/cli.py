from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from steal_finder.config import (
    AppConfig,
    ConfigError,
    default_config_path,
    load_config,
    load_runtime_settings,
    resolve_poll_interval,
)
from steal_finder.filters import ThresholdFilter
from steal_finder.logging_config import setup_logging
from steal_finder.markup import SoupParser
from steal_finder.models import NotificationMessage
from steal_finder.notifiers import DiscordNotifier, NotifierError, render_message_text
from steal_finder.scheduler import PollingScheduler
from steal_finder.service import RunStats, WatchService
from steal_finder.sources import HttpPageFetcher
from steal_finder.store import JsonFileStore, SQLiteStore, Store

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="steal-finder",
        description="Poll listing pages and post entries under your price thresholds to Discord.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=(
            "Path to config YAML/JSON file "
            "(default: $CONFIG_PATH, $CONFIG_JSON, config.yaml or config.json)"
        ),
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Poll all watches forever and post new matches")
    subparsers.add_parser("once", help="Check all watches once and post new matches")
    subparsers.add_parser("dry-run", help="Check all watches once and print matches")

    backfill = subparsers.add_parser(
        "backfill",
        help="Check all watches once and mark matches seen without posting",
    )
    backfill.add_argument(
        "--mark-seen",
        action="store_true",
        help="Required safety flag for backfill operation",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config or default_config_path())
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    log_level = args.log_level or app_config.log_level
    setup_logging(log_level)

    if args.command == "backfill" and not args.mark_seen:
        parser.error("backfill requires --mark-seen")

    try:
        interval = resolve_poll_interval(app_config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    store = _build_store(app_config)
    mark_seen_only = args.command == "backfill"
    dry_run = not mark_seen_only and (
        args.command == "dry-run" or app_config.posting.dry_run
    )

    notifier = None
    if not dry_run and not mark_seen_only:
        try:
            runtime = load_runtime_settings(app_config)
        except ConfigError as exc:
            logger.error("%s", exc)
            return 2

        notifier = DiscordNotifier(token=runtime.token, channel_id=runtime.channel_id)
        try:
            notifier.verify_channel()
        except NotifierError as exc:
            logger.error("Cannot use Discord channel: %s", exc)
            return 2

    service = WatchService(
        watches=app_config.watches,
        fetcher=HttpPageFetcher(
            timeout_seconds=app_config.http.timeout_seconds,
            user_agent=app_config.http.user_agent,
        ),
        parser=SoupParser(),
        filter_engine=ThresholdFilter(),
        store=store,
        notifier=notifier,
        notify_pause_seconds=app_config.posting.notify_pause_seconds,
        dry_run=dry_run,
        mark_seen_only=mark_seen_only,
        preview_callback=_dry_run_preview if dry_run else None,
    )

    logger.info(
        "Loaded %d watches; %d entries already seen",
        len(app_config.watches),
        len(store),
    )

    if args.command == "run":
        scheduler = PollingScheduler(
            cycle=lambda: _log_stats(service.run_cycle()),
            interval_seconds=interval,
        )
        scheduler.start()
        return 0

    stats = _log_stats(service.run_cycle())
    return 0 if stats.ok else 1


def _build_store(app_config: AppConfig) -> Store:
    if app_config.storage.type == "sqlite":
        return SQLiteStore(app_config.storage.path)
    return JsonFileStore(app_config.storage.path)


def _log_stats(stats: RunStats) -> RunStats:
    logger.info(
        "Cycle complete | watches=%d processed=%d notified=%d marked_seen=%d "
        "already_seen=%d filtered_out=%d no_price=%d errors=%d",
        stats.watches,
        stats.processed,
        stats.notified,
        stats.marked_seen,
        stats.skipped_already_seen,
        stats.filtered_out,
        stats.discarded_no_price,
        len(stats.errors),
    )
    return stats


def _dry_run_preview(message: NotificationMessage, reason: str) -> None:
    print("[DRY RUN] WOULD POST:")
    print(render_message_text(message))
    print(f"Why it matched: {reason}")
    print("")


if __name__ == "__main__":
    raise SystemExit(main())
