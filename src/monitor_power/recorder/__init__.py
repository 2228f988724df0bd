"""Metrics recording: contracts, reducers, backends and the fan-out recorder."""

from .base import (
    DEFAULT_HELP,
    DuplicateRegistrationError,
    MetricsRecorder,
    StatGauge,
    StatObserver,
)
from .multi import MultiGauge, MultiObserver, MultiRecorder
from .reducers import CounterObserver, DurationObserver

__all__ = [
    "DEFAULT_HELP",
    "CounterObserver",
    "DuplicateRegistrationError",
    "DurationObserver",
    "MetricsRecorder",
    "MultiGauge",
    "MultiObserver",
    "MultiRecorder",
    "StatGauge",
    "StatObserver",
]
