"""Configuration loading and validation for monitor_power."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class CollectorConfig:
    """Power sampling settings."""

    interval_seconds: float = 1.0
    os: str = "fedora"
    power_supply_dir: str = "/sys/class/power_supply"
    battery: str = "BAT0"


@dataclass
class ServerConfig:
    """HTTP exposition settings."""

    http: str = ":9096"


@dataclass
class RecorderConfig:
    """Metrics backend settings."""

    backends: list[str] = field(default_factory=lambda: ["vars", "prometheus"])
    reduce_interval_seconds: float = 1.0


@dataclass
class OtelExporterConfig:
    """OpenTelemetry exporter settings."""

    endpoint: str = "http://localhost:4318"
    service_name: str = "monitor-power"
    headers: dict[str, str] = field(default_factory=dict)
    export_interval_ms: int = 10000


@dataclass
class MonitorPowerConfig:
    """Top-level monitor_power configuration."""

    collector: CollectorConfig = field(default_factory=CollectorConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    recorder: RecorderConfig = field(default_factory=RecorderConfig)
    otel: OtelExporterConfig = field(default_factory=OtelExporterConfig)


_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str | float) -> float:
    """Parse a duration such as ``"1s"``, ``"1m30s"`` or ``"250ms"`` into seconds.

    A bare number is taken as seconds. Negative, NaN and infinite durations
    raise :class:`ValueError`.
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        seconds = _parse_duration_text(value.strip())
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"invalid duration {value!r}")
    return seconds


def _parse_duration_text(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        pass
    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration {text!r}")
    return total


def format_duration(seconds: float) -> str:
    """Inverse of :func:`parse_duration` for the common cases."""
    if seconds >= 1 and float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds * 1000:g}ms"


def _merge_dict(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *source* into *target*."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_dict(target[key], value)
        else:
            target[key] = value
    return target


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using MONITOR_POWER_ prefix."""
    env_map = {
        "MONITOR_POWER_HTTP": ("server", "http"),
        "MONITOR_POWER_OS": ("collector", "os"),
        "MONITOR_POWER_COLLECT": ("collector", "interval_seconds"),
        "MONITOR_POWER_BATTERY": ("collector", "battery"),
        "MONITOR_POWER_BACKENDS": ("recorder", "backends"),
        "MONITOR_POWER_OTEL_ENDPOINT": ("otel", "endpoint"),
    }
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            final_key = path[-1]
            if final_key == "interval_seconds":
                obj[final_key] = parse_duration(value)
            elif final_key == "backends":
                obj[final_key] = [b.strip() for b in value.split(",") if b.strip()]
            else:
                obj[final_key] = value
    return data


def _dict_to_config(data: dict[str, Any]) -> MonitorPowerConfig:
    """Convert a raw dictionary to a MonitorPowerConfig dataclass."""
    collector_data = dict(data.get("collector", {}))
    server_data = data.get("server", {})
    recorder_data = dict(data.get("recorder", {}))
    otel_data = data.get("otel", {})

    # durations may be written as "1s" / "500ms" in YAML
    if "interval_seconds" in collector_data:
        collector_data["interval_seconds"] = parse_duration(collector_data["interval_seconds"])
    if "reduce_interval_seconds" in recorder_data:
        recorder_data["reduce_interval_seconds"] = parse_duration(
            recorder_data["reduce_interval_seconds"]
        )

    return MonitorPowerConfig(
        collector=CollectorConfig(**{
            k: v for k, v in collector_data.items()
            if k in CollectorConfig.__dataclass_fields__
        }),
        server=ServerConfig(**{
            k: v for k, v in server_data.items()
            if k in ServerConfig.__dataclass_fields__
        }),
        recorder=RecorderConfig(**{
            k: v for k, v in recorder_data.items()
            if k in RecorderConfig.__dataclass_fields__
        }),
        otel=OtelExporterConfig(**{
            k: v for k, v in otel_data.items()
            if k in OtelExporterConfig.__dataclass_fields__
        }),
    )


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> MonitorPowerConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``monitor_power.yaml`` in the current directory if *path* is
    None. *overrides* (typically from command-line flags) are merged last.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("monitor_power.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    if overrides:
        data = _merge_dict(data, overrides)
    return _dict_to_config(data)
