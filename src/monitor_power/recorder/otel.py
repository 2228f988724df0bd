"""OpenTelemetry backend – records through an OTel meter, pushed via OTLP/HTTP."""

from __future__ import annotations

import logging
import threading
from typing import Any

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import MeterProvider as BaseMeterProvider
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME

from ..config import OtelExporterConfig
from .base import (
    DuplicateRegistrationError,
    MetricsRecorder,
    StatGauge,
    StatObserver,
    resolve_help,
)
from .prometheus import DEFAULT_BUCKETS

logger = logging.getLogger(__name__)


def build_meter_provider(config: OtelExporterConfig) -> MeterProvider:
    """Create a meter provider that exports to the configured OTLP endpoint."""
    resource = Resource.create({SERVICE_NAME: config.service_name})

    exporter_kwargs: dict[str, Any] = {
        "endpoint": f"{config.endpoint.rstrip('/')}/v1/metrics",
    }
    if config.headers:
        exporter_kwargs["headers"] = config.headers

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(**exporter_kwargs),
        export_interval_millis=config.export_interval_ms,
    )
    logger.info(
        "OTel meter provider → %s (service=%s)",
        config.endpoint,
        config.service_name,
    )
    return MeterProvider(resource=resource, metric_readers=[reader])


class OtelObserver(StatObserver):
    def __init__(self, histogram: Any) -> None:
        self.histogram = histogram

    def observe(self, value: float) -> None:
        self.histogram.record(value)


class OtelGauge(StatGauge):
    """Synchronous OTel gauge; ``add`` is applied to the last value set."""

    def __init__(self, gauge: Any) -> None:
        self.instrument = gauge
        self._lock = threading.Lock()
        self._value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self._value = value
            self.instrument.set(value)

    def add(self, value: float) -> None:
        with self._lock:
            self._value += value
            self.instrument.set(self._value)


class OtelRecorder(MetricsRecorder):
    """Recorder that creates instruments on an OTel meter.

    The SDK tolerates duplicate instrument names, so names are tracked here
    to keep the same uniqueness rule as the pull-based backends.
    """

    def __init__(
        self,
        meter_provider: BaseMeterProvider,
        meter_name: str = "monitor_power",
        buckets: list[float] | None = None,
    ) -> None:
        self._meter = meter_provider.get_meter(meter_name)
        self._buckets = list(buckets) if buckets is not None else list(DEFAULT_BUCKETS)
        self._names: set[str] = set()
        self._lock = threading.Lock()

    def _claim(self, name: str) -> None:
        with self._lock:
            if name in self._names:
                raise DuplicateRegistrationError(name, backend="otel")
            self._names.add(name)

    def _histogram(self, name: str, description: str | None) -> StatObserver:
        self._claim(name)
        histogram = self._meter.create_histogram(
            name=name,
            description=resolve_help(description),
            explicit_bucket_boundaries_advisory=self._buckets,
        )
        return OtelObserver(histogram)

    def counter(self, name: str, description: str | None = None) -> StatObserver:
        return self._histogram(name, description)

    def duration(self, name: str, description: str | None = None) -> StatObserver:
        return self._histogram(name, description)

    def gauge(self, name: str, description: str | None = None) -> StatGauge:
        self._claim(name)
        gauge = self._meter.create_gauge(
            name=name,
            description=resolve_help(description),
        )
        return OtelGauge(gauge)
