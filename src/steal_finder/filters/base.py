from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from steal_finder.config import WatchDefinition
from steal_finder.models import Listing


@dataclass(slots=True)
class EvaluationResult:
    matched: bool
    meets_price: bool = True
    meets_profit: bool = True
    profit: float | None = None
    reasons: list[str] = field(default_factory=list)

    def reason_text(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "no specific reason"


class Filter(ABC):
    @abstractmethod
    def evaluate(self, entry: Listing, watch: WatchDefinition) -> EvaluationResult:
        """Evaluate a priced entry against a watch and return the decision with reasons."""
