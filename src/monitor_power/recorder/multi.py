"""Fan-out recorder: one logical metric, recorded by every configured backend."""

from __future__ import annotations

from collections.abc import Mapping

from .base import MetricsRecorder, StatGauge, StatObserver


class MultiObserver(StatObserver):
    """Forwards every observation to each child observer, in order."""

    def __init__(self, children: list[StatObserver]) -> None:
        self.children = children

    def observe(self, value: float) -> None:
        for observer in self.children:
            observer.observe(value)


class MultiGauge(StatGauge):
    """Forwards every write to each child gauge, in order."""

    def __init__(self, children: list[StatGauge]) -> None:
        self.children = children

    def set(self, value: float) -> None:
        for gauge in self.children:
            gauge.set(value)

    def add(self, value: float) -> None:
        for gauge in self.children:
            gauge.add(value)


class MultiRecorder(MetricsRecorder):
    """A mapping of backend label to recorder behind a single recorder.

    Each factory call creates one child per backend. A failure in any backend
    propagates and aborts the whole call; there is no per-backend isolation.
    """

    def __init__(self, recorders: Mapping[str, MetricsRecorder]) -> None:
        self._recorders = dict(recorders)

    @property
    def backends(self) -> list[str]:
        return list(self._recorders)

    def __getitem__(self, label: str) -> MetricsRecorder:
        return self._recorders[label]

    def __len__(self) -> int:
        return len(self._recorders)

    def counter(self, name: str, description: str | None = None) -> StatObserver:
        return MultiObserver(
            [r.counter(name, description) for r in self._recorders.values()]
        )

    def duration(self, name: str, description: str | None = None) -> StatObserver:
        return MultiObserver(
            [r.duration(name, description) for r in self._recorders.values()]
        )

    def gauge(self, name: str, description: str | None = None) -> StatGauge:
        return MultiGauge(
            [r.gauge(name, description) for r in self._recorders.values()]
        )
