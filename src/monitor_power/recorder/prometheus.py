"""Prometheus backend – registers series into a ``prometheus_client`` registry."""

from __future__ import annotations

import logging

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, Histogram

from .base import (
    DuplicateRegistrationError,
    MetricsRecorder,
    StatGauge,
    StatObserver,
    resolve_help,
)

logger = logging.getLogger(__name__)


def linear_buckets(start: float, width: float, count: int) -> list[float]:
    """Return *count* bucket bounds, the lowest being *start*, each *width* apart."""
    if count < 1:
        raise ValueError("linear_buckets needs a positive count")
    return [start + i * width for i in range(count)]


DEFAULT_BUCKETS = linear_buckets(20, 5, 5)


class PrometheusObserver(StatObserver):
    def __init__(self, histogram: Histogram) -> None:
        self.histogram = histogram

    def observe(self, value: float) -> None:
        self.histogram.observe(value)


class PrometheusGauge(StatGauge):
    def __init__(self, gauge: Gauge) -> None:
        self.metric = gauge

    def set(self, value: float) -> None:
        self.metric.set(value)

    def add(self, value: float) -> None:
        self.metric.inc(value)


class PrometheusRecorder(MetricsRecorder):
    """Recorder backed by a pull-based Prometheus registry.

    Counters and durations become histograms with fixed linear buckets,
    gauges become plain gauges. Every call registers a new series; asking for
    a name twice raises :class:`DuplicateRegistrationError`.
    """

    def __init__(
        self,
        registry: CollectorRegistry = REGISTRY,
        buckets: list[float] | None = None,
    ) -> None:
        self._registry = registry
        self._buckets = list(buckets) if buckets is not None else list(DEFAULT_BUCKETS)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def _register(self, name: str, metric: Histogram | Gauge) -> None:
        try:
            self._registry.register(metric)
        except ValueError as exc:
            raise DuplicateRegistrationError(name, backend="prometheus") from exc
        logger.debug("Registered prometheus series %s", name)

    def _histogram(self, name: str, description: str | None) -> StatObserver:
        histogram = Histogram(
            name,
            resolve_help(description),
            buckets=self._buckets,
            registry=None,
        )
        self._register(name, histogram)
        return PrometheusObserver(histogram)

    def counter(self, name: str, description: str | None = None) -> StatObserver:
        return self._histogram(name, description)

    def duration(self, name: str, description: str | None = None) -> StatObserver:
        return self._histogram(name, description)

    def gauge(self, name: str, description: str | None = None) -> StatGauge:
        gauge = Gauge(name, resolve_help(description), registry=None)
        self._register(name, gauge)
        return PrometheusGauge(gauge)
