"""Tests for the battery provider and the collection loop."""

import logging
import time
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from monitor_power.collector.base import CollectedMetric, UnknownProviderError
from monitor_power.collector.fedora import FedoraProvider, compute_watts
from monitor_power.collector.manager import (
    CollectorManager,
    apply_collected,
    get_provider,
    register_gauges,
)
from monitor_power.config import CollectorConfig
from monitor_power.recorder.multi import MultiRecorder
from monitor_power.recorder.prometheus import PrometheusRecorder
from monitor_power.recorder.vars import FloatVar, VarRegistry, VarsRecorder

UEVENT = """\
POWER_SUPPLY_NAME=BAT0
POWER_SUPPLY_STATUS=Discharging
POWER_SUPPLY_PRESENT=1
POWER_SUPPLY_VOLTAGE_NOW=4200000
POWER_SUPPLY_CURRENT_NOW=500000
POWER_SUPPLY_CAPACITY=87
"""


def _battery(root: Path, uevent: str = UEVENT) -> Path:
    bat = root / "BAT0"
    bat.mkdir(parents=True)
    (bat / "voltage_now").write_text("4200000\n")
    (bat / "current_now").write_text("500000\n")
    (bat / "uevent").write_text(uevent)
    return root


class TestFedoraProvider:

    def test_reads_voltage_and_current(self, tmp_path):
        provider = FedoraProvider(_battery(tmp_path), "BAT0")
        assert provider.name == "fedora"
        assert provider.voltage() == "4200000"
        assert provider.current() == "500000"

    def test_uevents(self, tmp_path):
        provider = FedoraProvider(_battery(tmp_path), "BAT0")
        events = provider.uevents()
        assert events["POWER_SUPPLY_STATUS"] == "Discharging"
        assert events["POWER_SUPPLY_CAPACITY"] == "87"

    def test_watts(self, tmp_path):
        provider = FedoraProvider(_battery(tmp_path), "BAT0")
        assert provider.watts() == "2.1"
        assert compute_watts(500000, 4200000) == 2.1

    def test_collect_fills_known_keys(self, tmp_path):
        provider = FedoraProvider(_battery(tmp_path), "BAT0")
        dst = {k: CollectedMetric() for k in ("voltage", "current", "watts", "capacity")}
        provider.collect(dst)
        assert dst["voltage"] == CollectedMetric("4200000", None)
        assert dst["current"] == CollectedMetric("500000", None)
        assert dst["watts"] == CollectedMetric("2.1", None)
        assert dst["capacity"] == CollectedMetric()

    def test_missing_battery_reports_errors(self, tmp_path):
        provider = FedoraProvider(tmp_path, "BAT9")
        dst = {k: CollectedMetric() for k in ("voltage", "watts")}
        provider.collect(dst)
        for metric in dst.values():
            assert metric.value == ""
            assert isinstance(metric.error, OSError)

    def test_incomplete_uevent_reports_parse_error(self, tmp_path):
        provider = FedoraProvider(_battery(tmp_path, "POWER_SUPPLY_NAME=BAT0\n"), "BAT0")
        dst = {"watts": CollectedMetric()}
        provider.collect(dst)
        assert dst["watts"].value == ""
        assert isinstance(dst["watts"].error, ValueError)


def test_get_provider():
    provider = get_provider("fedora", CollectorConfig())
    assert isinstance(provider, FedoraProvider)
    with pytest.raises(UnknownProviderError):
        get_provider("plan9", CollectorConfig())


# ---------------------------------------------------------------------------
# apply_collected
# ---------------------------------------------------------------------------

def test_apply_collected_end_to_end(caplog):
    registry = VarRegistry()
    gauges = register_gauges(VarsRecorder(registry))
    collected = {
        "voltage": CollectedMetric("4200000", None),
        "current": CollectedMetric("500000", None),
        "watts": CollectedMetric("", OSError("no such file")),
    }
    with caplog.at_level(logging.WARNING, logger="monitor_power.collector.manager"):
        updated = apply_collected(collected, gauges)

    assert sorted(updated) == ["current", "voltage"]
    snapshot = registry.snapshot()
    assert snapshot["voltage_now"] == 4200000.0
    assert snapshot["current_now"] == 500000.0
    assert snapshot["watts_now"] == 0.0
    assert "'watts'" in caplog.text and "no such file" in caplog.text
    # consumed entries are reset, failed ones keep their error
    assert collected["voltage"] == CollectedMetric()
    assert collected["watts"].error is not None


def test_apply_collected_skips_unparseable(caplog):
    gauge = FloatVar()
    gauge.set(7.0)
    collected = {"voltage": CollectedMetric("n/a", None)}
    with caplog.at_level(logging.WARNING):
        assert apply_collected(collected, {"voltage": gauge}) == []
    assert gauge.value == 7.0
    assert "failed to parse metric 'voltage'" in caplog.text


def test_register_gauges_on_multi_recorder():
    var_registry = VarRegistry()
    prom_registry = CollectorRegistry()
    recorder = MultiRecorder({
        "vars": VarsRecorder(var_registry),
        "prometheus": PrometheusRecorder(prom_registry),
    })
    gauges = register_gauges(recorder)
    assert set(gauges) == {"current", "voltage", "watts"}
    gauges["watts"].set(2.1)
    assert var_registry.snapshot()["watts_now"] == 2.1
    assert prom_registry.get_sample_value("watts_now") == 2.1


# ---------------------------------------------------------------------------
# CollectorManager
# ---------------------------------------------------------------------------

def test_collect_once(tmp_path):
    registry = VarRegistry()
    gauges = register_gauges(VarsRecorder(registry))
    manager = CollectorManager(
        CollectorConfig(),
        FedoraProvider(_battery(tmp_path), "BAT0"),
        gauges,
    )
    assert sorted(manager.collect_once()) == ["current", "voltage", "watts"]
    assert registry.snapshot() == {
        "current_now": 500000.0,
        "voltage_now": 4200000.0,
        "watts_now": 2.1,
    }


def test_manager_background_loop(tmp_path):
    registry = VarRegistry()
    gauges = register_gauges(VarsRecorder(registry))
    manager = CollectorManager(
        CollectorConfig(interval_seconds=0.05),
        FedoraProvider(_battery(tmp_path), "BAT0"),
        gauges,
    )
    manager.start()
    assert manager.running
    try:
        deadline = time.time() + 5
        while registry.snapshot()["watts_now"] == 0.0 and time.time() < deadline:
            time.sleep(0.05)
    finally:
        manager.stop()
    assert not manager.running
    assert registry.snapshot()["watts_now"] == 2.1


def test_manager_stop_without_start():
    manager = CollectorManager(CollectorConfig(), FedoraProvider(), {})
    manager.stop()
    assert not manager.running


@pytest.mark.parametrize("interval", [0.0, -1.0, float("nan"), float("inf")])
def test_manager_rejects_bad_interval(interval):
    with pytest.raises(ValueError, match="collection interval"):
        CollectorManager(CollectorConfig(interval_seconds=interval), FedoraProvider(), {})
