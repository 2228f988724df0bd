"""Base interface for power sample providers."""

from __future__ import annotations

import abc
from dataclasses import dataclass


@dataclass
class CollectedMetric:
    """Raw result of sampling one metric: a string value or an error."""

    value: str = ""
    error: Exception | None = None


class UnknownProviderError(LookupError):
    """Raised when no provider exists for the requested OS variant."""


class BaseProvider(abc.ABC):
    """Abstract base class for OS-specific power samplers."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Provider name used in configuration."""

    @abc.abstractmethod
    def collect(self, dst: dict[str, CollectedMetric]) -> None:
        """Fill in every key of *dst* this provider knows how to sample.

        Unknown keys are left untouched.
        """
