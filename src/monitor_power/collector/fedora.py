"""Battery sampler reading the Linux ``power_supply`` sysfs class."""

from __future__ import annotations

from pathlib import Path

from .base import BaseProvider, CollectedMetric

# sysfs reports microvolts and microamps.
MICRO_SQUARED = 1e12


class FedoraProvider(BaseProvider):
    """Reads voltage, current and derived wattage of one battery."""

    def __init__(
        self,
        power_supply_dir: str | Path = "/sys/class/power_supply",
        battery: str = "BAT0",
    ) -> None:
        self._battery_dir = Path(power_supply_dir) / battery

    @property
    def name(self) -> str:
        return "fedora"

    def collect(self, dst: dict[str, CollectedMetric]) -> None:
        readers = {
            "voltage": self.voltage,
            "current": self.current,
            "watts": self.watts,
        }
        for key in dst:
            reader = readers.get(key)
            if reader is None:
                continue
            try:
                dst[key] = CollectedMetric(reader())
            except (OSError, ValueError) as exc:
                dst[key] = CollectedMetric("", exc)

    def _read(self, filename: str) -> str:
        return (self._battery_dir / filename).read_text(encoding="utf-8").strip()

    def voltage(self) -> str:
        return self._read("voltage_now")

    def current(self) -> str:
        return self._read("current_now")

    def uevents(self) -> dict[str, str]:
        """Parse the battery ``uevent`` file into a ``KEY -> value`` dict."""
        events: dict[str, str] = {}
        for line in self._read("uevent").splitlines():
            key, sep, value = line.strip().partition("=")
            if sep:
                events[key] = value
        return events

    def watts(self) -> str:
        uevents = self.uevents()
        current = float(uevents.get("POWER_SUPPLY_CURRENT_NOW", ""))
        voltage = float(uevents.get("POWER_SUPPLY_VOLTAGE_NOW", ""))
        return str(compute_watts(current, voltage))


def compute_watts(current_ua: float, voltage_uv: float) -> float:
    """Power in watts from a current in µA and a voltage in µV."""
    return (current_ua * voltage_uv) / MICRO_SQUARED
