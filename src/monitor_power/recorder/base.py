"""Capability contracts shared by every metrics backend."""

from __future__ import annotations

import abc

DEFAULT_HELP = "no description provided"


class DuplicateRegistrationError(ValueError):
    """Raised when a backend is asked to register the same series name twice."""

    def __init__(self, name: str, backend: str = "") -> None:
        self.name = name
        self.backend = backend
        where = f" in {backend}" if backend else ""
        super().__init__(f"metric {name!r} is already registered{where}")


class StatGauge(abc.ABC):
    """Something that records the current value of a float."""

    @abc.abstractmethod
    def set(self, value: float) -> None:
        """Replace the current value."""

    @abc.abstractmethod
    def add(self, value: float) -> None:
        """Increment the current value by *value*."""


class StatObserver(abc.ABC):
    """Something that observes values of ints, durations or floats."""

    @abc.abstractmethod
    def observe(self, value: float) -> None:
        """Record a single sample."""


class MetricsRecorder(abc.ABC):
    """A provider of named observers and gauges."""

    @abc.abstractmethod
    def counter(self, name: str, description: str | None = None) -> StatObserver:
        """Return an observer of event counts."""

    @abc.abstractmethod
    def duration(self, name: str, description: str | None = None) -> StatObserver:
        """Return an observer of durations."""

    @abc.abstractmethod
    def gauge(self, name: str, description: str | None = None) -> StatGauge:
        """Return a gauge of floats."""


def resolve_help(description: str | None) -> str:
    return description or DEFAULT_HELP
