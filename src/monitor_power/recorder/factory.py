"""Build the fan-out recorder from configuration."""

from __future__ import annotations

import logging

from opentelemetry.metrics import MeterProvider
from prometheus_client import CollectorRegistry

from ..config import RecorderConfig
from .base import MetricsRecorder
from .multi import MultiRecorder
from .prometheus import PrometheusRecorder
from .vars import VarRegistry, VarsRecorder

logger = logging.getLogger(__name__)

BACKENDS = ("vars", "prometheus", "otel")


def build_recorder(
    config: RecorderConfig,
    *,
    var_registry: VarRegistry,
    prometheus_registry: CollectorRegistry,
    meter_provider: MeterProvider | None = None,
) -> MultiRecorder:
    """Create one recorder per configured backend label.

    Raises :class:`ValueError` for an unknown label, or for ``otel`` without a
    meter provider.
    """
    recorders: dict[str, MetricsRecorder] = {}
    for label in config.backends:
        if label == "vars":
            recorders[label] = VarsRecorder(
                var_registry,
                reduce_interval=config.reduce_interval_seconds,
            )
        elif label == "prometheus":
            recorders[label] = PrometheusRecorder(prometheus_registry)
        elif label == "otel":
            if meter_provider is None:
                raise ValueError("the otel backend needs a meter provider")
            from .otel import OtelRecorder

            recorders[label] = OtelRecorder(meter_provider)
        else:
            raise ValueError(
                f"unknown metrics backend {label!r} (expected one of {', '.join(BACKENDS)})"
            )
    logger.info("Metrics backends: %s", ", ".join(recorders) or "(none)")
    return MultiRecorder(recorders)
