from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "watch_cycle"


class PollingScheduler:
    """Run a cycle once at start, then every ``interval_seconds`` until the process exits.

    A tick that fires while the previous cycle is still running is skipped,
    not queued. The same guard keeps cycles (and therefore store access)
    strictly sequential even though APScheduler calls jobs from worker threads.
    """

    def __init__(
        self,
        cycle: Callable[[], Any],
        interval_seconds: float,
        scheduler: BaseScheduler | None = None,
    ) -> None:
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BlockingScheduler()
        self._in_progress = threading.Lock()
        self.skipped_ticks = 0

    @property
    def cycle_in_progress(self) -> bool:
        return self._in_progress.locked()

    def tick(self) -> bool:
        if not self._in_progress.acquire(blocking=False):
            self.skipped_ticks += 1
            logger.warning("Previous cycle still running; skipping this tick")
            return False

        started = time.monotonic()
        try:
            self.cycle()
        except Exception:  # noqa: BLE001
            logger.exception("Watch cycle crashed")
            return True
        finally:
            self._in_progress.release()

        logger.debug("Cycle finished in %.1fs", time.monotonic() - started)
        return True

    def start(self) -> None:
        self.tick()

        self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            # Our own guard does the skipping and logging.
            max_instances=2,
            coalesce=True,
            replace_existing=True,
        )
        logger.info("Polling every %ss", self.interval_seconds)

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Stopping scheduler")
            self.scheduler.shutdown(wait=False)
