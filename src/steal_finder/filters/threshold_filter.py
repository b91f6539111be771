from __future__ import annotations

from steal_finder.config import WatchDefinition
from steal_finder.models import Listing
from steal_finder.utils.price_utils import format_number

from .base import EvaluationResult, Filter


class ThresholdFilter(Filter):
    def evaluate(self, entry: Listing, watch: WatchDefinition) -> EvaluationResult:
        reasons: list[str] = []
        price = entry.price

        if watch.max_price is None:
            meets_price = True
        else:
            meets_price = price <= watch.max_price
            comparison = "<=" if meets_price else ">"
            reasons.append(
                f"price {format_number(price)} {comparison} max {format_number(watch.max_price)}"
            )

        profit: float | None = None
        meets_profit = True
        if watch.expected_resale_value is not None:
            profit = watch.expected_resale_value - price
            if watch.min_profit is not None:
                meets_profit = profit >= watch.min_profit
                comparison = ">=" if meets_profit else "<"
                reasons.append(
                    f"profit {format_number(profit)} {comparison} min {format_number(watch.min_profit)}"
                )
            else:
                reasons.append(f"profit {format_number(profit)}")

        if not reasons:
            reasons.append("no thresholds configured")

        return EvaluationResult(
            matched=meets_price and meets_profit,
            meets_price=meets_price,
            meets_profit=meets_profit,
            profit=profit,
            reasons=reasons,
        )
