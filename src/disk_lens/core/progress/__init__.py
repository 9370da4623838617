"""Progress module: estimation, throttled reporting and delivery of scan progress."""

from __future__ import annotations

from .channel import PROGRESS_TOPIC, ProgressChannel, ProgressSubscription
from .estimator import ItemCountEstimator
from .percentage_calculator import ProgressPercentageCalculator
from .reporter import ProgressReporter

__all__ = [
    "PROGRESS_TOPIC",
    "ItemCountEstimator",
    "ProgressChannel",
    "ProgressPercentageCalculator",
    "ProgressReporter",
    "ProgressSubscription",
]
