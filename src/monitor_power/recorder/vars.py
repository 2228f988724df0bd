"""Process-exposed variable tree backend.

A :class:`VarRegistry` holds named, thread-safe variables that can be dumped
as one JSON document (served under ``/debug/vars``). Variables live for the
lifetime of the registry; there is no unregister.
"""

from __future__ import annotations

import json
import logging
import math
import sys
import threading
import time
from typing import Any, Callable

from .base import DuplicateRegistrationError, MetricsRecorder, StatGauge, StatObserver
from .reducers import CounterObserver, DurationObserver

logger = logging.getLogger(__name__)


class FloatVar(StatGauge):
    """A float variable."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def add(self, value: float) -> None:
        with self._lock:
            self._value += value

    @property
    def value(self) -> float:
        with self._lock:
            return self._value


class IntVar(StatGauge):
    """An integer variable; floats are truncated toward zero.

    NaN and infinite values have no integer form and leave the value unchanged.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def set(self, value: float) -> None:
        if not math.isfinite(value):
            logger.debug("Ignoring non-finite value %r", value)
            return
        with self._lock:
            self._value = int(value)

    def add(self, value: float) -> None:
        if not math.isfinite(value):
            logger.debug("Ignoring non-finite value %r", value)
            return
        with self._lock:
            self._value += int(value)

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class FuncVar:
    """A read-only variable computed on every snapshot."""

    def __init__(self, func: Callable[[], Any]) -> None:
        self._func = func

    @property
    def value(self) -> Any:
        return self._func()


class VarRegistry:
    """Named variables published by this process.

    With ``publish_defaults`` the registry starts with a ``cmdline`` entry
    holding the process arguments.
    """

    def __init__(self, publish_defaults: bool = False) -> None:
        self._lock = threading.Lock()
        self._vars: dict[str, Any] = {}
        if publish_defaults:
            self.publish("cmdline", FuncVar(lambda: list(sys.argv)))

    def publish(self, name: str, var: Any) -> None:
        with self._lock:
            if name in self._vars:
                raise DuplicateRegistrationError(name, backend="vars")
            self._vars[name] = var
        logger.debug("Published variable %s", name)

    def new_float(self, name: str) -> FloatVar:
        var = FloatVar()
        self.publish(name, var)
        return var

    def new_int(self, name: str) -> IntVar:
        var = IntVar()
        self.publish(name, var)
        return var

    def get(self, name: str) -> Any | None:
        with self._lock:
            return self._vars.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._vars

    def snapshot(self) -> dict[str, Any]:
        """Return the current value of every variable, sorted by name."""
        with self._lock:
            items = sorted(self._vars.items())
        return {name: var.value for name, var in items}

    def to_json(self) -> str:
        return json.dumps(self.snapshot(), indent=1)


class VarsRecorder(MetricsRecorder):
    """Recorder that publishes into a :class:`VarRegistry`.

    Gauges are plain float variables. Counters and durations are wrapped in
    the reducers so the exposed value is a smoothed rate or average.
    """

    def __init__(
        self,
        registry: VarRegistry,
        reduce_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._reduce_interval = reduce_interval
        self._clock = clock

    @property
    def registry(self) -> VarRegistry:
        return self._registry

    def counter(self, name: str, description: str | None = None) -> StatObserver:
        return CounterObserver(self._registry.new_float(name), clock=self._clock)

    def duration(self, name: str, description: str | None = None) -> StatObserver:
        return DurationObserver(
            self._registry.new_int(name),
            self._reduce_interval,
            clock=self._clock,
        )

    def gauge(self, name: str, description: str | None = None) -> StatGauge:
        return self._registry.new_float(name)
