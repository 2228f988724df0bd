"""Tests for the command-line entry point."""

import pytest

from monitor_power import __version__
from monitor_power.cli import build_parser, main


def test_version(capsys):
    main(["version"])
    assert capsys.readouterr().out.strip() == f"monitor-power {__version__}"


def test_global_flags():
    args = build_parser().parse_args(["--http", ":9100", "--os", "fedora", "--collect", "500ms", "run"])
    assert args.http == ":9100"
    assert args.os == "fedora"
    assert args.collect == 0.5
    assert args.command == "run"


def test_no_command_defaults_to_run():
    args = build_parser().parse_args([])
    assert args.command is None
    assert not hasattr(args, "func")


def test_bad_duration_exits():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--collect", "soon"])


def test_sample_prints_table(tmp_path, capsys):
    bat = tmp_path / "BAT0"
    bat.mkdir()
    (bat / "voltage_now").write_text("4200000\n")
    (bat / "current_now").write_text("500000\n")
    (bat / "uevent").write_text(
        "POWER_SUPPLY_VOLTAGE_NOW=4200000\nPOWER_SUPPLY_CURRENT_NOW=500000\n"
    )
    config = tmp_path / "monitor_power.yaml"
    config.write_text(f"collector:\n  power_supply_dir: {tmp_path}\n")

    main(["--config", str(config), "sample"])
    out = capsys.readouterr().out
    assert "voltage_now" in out
    assert "4200000" in out
    assert "2.1" in out


def test_sample_unknown_os(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path / "missing.yaml"), "--os", "plan9", "sample"])
    assert excinfo.value.code == 2


def test_service_error_exits(tmp_path, monkeypatch, capsys):
    from monitor_power import service

    def fail(self):
        raise service.ServiceError("Status Monitor power usage: not installed")

    monkeypatch.setattr(service.SystemdService, "status", fail)
    with pytest.raises(SystemExit) as excinfo:
        main(["status"])
    assert excinfo.value.code == 1
    assert "not installed" in capsys.readouterr().out
