"""Collection loop: sample the provider and push values into gauges."""

from __future__ import annotations

import logging
import math
import threading

from ..config import CollectorConfig
from ..recorder.base import MetricsRecorder, StatGauge
from .base import BaseProvider, CollectedMetric, UnknownProviderError
from .fedora import FedoraProvider

logger = logging.getLogger(__name__)

# collected key -> exposed series name
POWER_METRICS = {
    "current": "current_now",
    "voltage": "voltage_now",
    "watts": "watts_now",
}

POWER_DESCRIPTIONS = {
    "current": "Battery current in microamps",
    "voltage": "Battery voltage in microvolts",
    "watts": "Battery power draw in watts",
}


def get_provider(name: str, config: CollectorConfig) -> BaseProvider:
    """Return the sampler for OS variant *name*."""
    if name == "fedora":
        return FedoraProvider(config.power_supply_dir, config.battery)
    raise UnknownProviderError(f"os not found {name!r}")


def register_gauges(recorder: MetricsRecorder) -> dict[str, StatGauge]:
    """Create one gauge per power metric on *recorder*."""
    return {
        key: recorder.gauge(series, POWER_DESCRIPTIONS.get(key))
        for key, series in POWER_METRICS.items()
    }


def apply_collected(
    collected: dict[str, CollectedMetric],
    gauges: dict[str, StatGauge],
) -> list[str]:
    """Parse collected values and set the matching gauges.

    Entries carrying an error or a non-numeric value are logged and skipped.
    Consumed entries are reset to empty. Returns the names that were updated.
    """
    updated: list[str] = []
    for name, metric in collected.items():
        if metric.error is not None:
            logger.warning("failed to collect metric %r: %s", name, metric.error)
            continue
        try:
            value = float(metric.value)
        except ValueError as exc:
            logger.warning("failed to parse metric %r: %s", name, exc)
            continue
        gauge = gauges.get(name)
        if gauge is None:
            continue
        gauge.set(value)
        collected[name] = CollectedMetric()
        updated.append(name)
    return updated


class CollectorManager:
    """Runs the provider on an interval and republishes through gauges.

    Instantiate with a :class:`CollectorConfig`, a provider and the gauges to
    feed, then call :meth:`start` / :meth:`stop`.
    """

    def __init__(
        self,
        config: CollectorConfig,
        provider: BaseProvider,
        gauges: dict[str, StatGauge],
    ) -> None:
        interval = config.interval_seconds
        if not math.isfinite(interval) or interval <= 0:
            raise ValueError(f"collection interval must be positive, got {interval!r}")
        self._config = config
        self._provider = provider
        self._gauges = gauges
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def collect_once(self) -> list[str]:
        """Sample every metric once and update the gauges."""
        collected = {name: CollectedMetric() for name in self._gauges}
        self._provider.collect(collected)
        updated = apply_collected(collected, self._gauges)
        logger.debug("collected %d of %d metrics", len(updated), len(collected))
        return updated

    def _run(self) -> None:
        """Background thread loop."""
        while not self._stop_event.wait(self._config.interval_seconds):
            try:
                self.collect_once()
            except Exception:
                logger.exception("Collection with provider %s failed", self._provider.name)

    def start(self) -> None:
        """Start collecting in the background."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="power-collector", daemon=True)
        self._thread.start()
        logger.info(
            "CollectorManager started (provider=%s, interval=%.3gs)",
            self._provider.name,
            self._config.interval_seconds,
        )

    def stop(self) -> None:
        """Stop background collection."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("CollectorManager stopped")
