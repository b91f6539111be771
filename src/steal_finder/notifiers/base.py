from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from steal_finder.config import WatchDefinition
from steal_finder.filters.base import EvaluationResult
from steal_finder.models import Listing, MessageField, NotificationMessage
from steal_finder.utils.datetime_utils import utc_now
from steal_finder.utils.price_utils import format_number


class NotifierError(RuntimeError):
    """Raised when a message cannot be delivered."""


class Notifier(ABC):
    @abstractmethod
    def post(self, message: NotificationMessage) -> None:
        """Deliver one message to the destination."""


def build_notification(
    entry: Listing,
    watch: WatchDefinition,
    result: EvaluationResult,
    *,
    now: datetime | None = None,
) -> NotificationMessage:
    threshold = format_number(watch.max_price) if watch.max_price else "none"
    fields = [
        MessageField(name="Price", value=entry.price_text or format_number(entry.price)),
        MessageField(name="Threshold (max price)", value=threshold),
    ]
    if result.profit is not None:
        fields.append(MessageField(name="Estimated profit", value=format_number(result.profit)))

    return NotificationMessage(
        title=entry.title,
        url=entry.link,
        fields=fields,
        timestamp=now or utc_now(),
    )
