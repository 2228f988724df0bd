"""Power sampling and the collection loop."""

from .base import BaseProvider, CollectedMetric, UnknownProviderError
from .fedora import FedoraProvider
from .manager import CollectorManager, apply_collected, get_provider, register_gauges

__all__ = [
    "BaseProvider",
    "CollectedMetric",
    "CollectorManager",
    "FedoraProvider",
    "UnknownProviderError",
    "apply_collected",
    "get_provider",
    "register_gauges",
]
