"""Windowed reducers that turn raw observations into a smoothed gauge value.

Both reducers keep a short, bounded list of recent values and write their
result into a backing :class:`StatGauge`. State is owned by the instance and
guarded by its own lock. The result is computed under the lock and written to
the gauge after the lock is released.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from .base import StatGauge, StatObserver

# Windows longer than these are compacted when a new interval starts.
DURATION_WINDOW_LIMIT = 10
COUNTER_WINDOW_LIMIT = 20
COUNTER_RATE_INTERVAL = 1.0


class DurationObserver(StatObserver):
    """Moving average of duration-like samples over the recent window.

    Once more than ``reduce_interval`` seconds have passed since the window
    started, a window holding more than ten values is cut down to its last
    entry. The gauge only receives a value after three samples are retained.
    """

    def __init__(
        self,
        gauge: StatGauge,
        reduce_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gauge = gauge
        self._reduce_interval = reduce_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._tick = clock()
        self._values: list[float] = []

    @property
    def gauge(self) -> StatGauge:
        return self._gauge

    def observe(self, value: float) -> None:
        with self._lock:
            now = self._clock()
            if now - self._tick > self._reduce_interval:
                self._tick = now
                if len(self._values) > DURATION_WINDOW_LIMIT:
                    self._values = self._values[-1:]
            self._values.append(value)
            count = len(self._values)
            if count <= 2:
                return
            mean = sum(self._values) / count
        self._gauge.set(mean)


class CounterObserver(StatObserver):
    """Approximate per-second rate of observed events.

    Events are accumulated for one second and then appended to the window.
    The average divides by the window length captured *before* the append,
    so the reported rate lags one interval behind. Until the window holds
    three entries the gauge is bumped by one on every observation instead.
    """

    def __init__(
        self,
        gauge: StatGauge,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gauge = gauge
        self._clock = clock
        self._lock = threading.Lock()
        self._tick = clock()
        self._values: list[float] = []
        self._events = 0.0

    @property
    def gauge(self) -> StatGauge:
        return self._gauge

    def observe(self, value: float) -> None:
        with self._lock:
            j = len(self._values)
            now = self._clock()
            if now - self._tick > COUNTER_RATE_INTERVAL:
                self._values.append(self._events)
                self._tick = now
                self._events = 0.0
                if j > COUNTER_WINDOW_LIMIT:
                    self._values = self._values[-2:]
            self._events += value
            rate = sum(self._values) / j if j > 2 else None
        if rate is None:
            self._gauge.add(1)
        else:
            self._gauge.set(rate)
