"""Filter implementations."""

from .base import EvaluationResult, Filter
from .threshold_filter import ThresholdFilter

__all__ = ["EvaluationResult", "Filter", "ThresholdFilter"]
