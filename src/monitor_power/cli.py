"""CLI interface for monitor_power."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Callable

from . import __version__
from .config import MonitorPowerConfig, format_duration, load_config, parse_duration

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> MonitorPowerConfig:
    overrides: dict[str, Any] = {}
    if args.http is not None:
        overrides.setdefault("server", {})["http"] = args.http
    if args.os is not None:
        overrides.setdefault("collector", {})["os"] = args.os
    if args.collect is not None:
        overrides.setdefault("collector", {})["interval_seconds"] = args.collect
    return load_config(args.config, overrides)


def _cmd_run(args: argparse.Namespace) -> None:
    """Serve the metrics endpoint and collect until interrupted."""
    cfg = _load(args)

    from prometheus_client import REGISTRY

    from .collector.base import UnknownProviderError
    from .collector.manager import CollectorManager, get_provider, register_gauges
    from .recorder.base import DuplicateRegistrationError
    from .recorder.factory import build_recorder
    from .recorder.vars import VarRegistry
    from .server import MetricsServer, create_app

    var_registry = VarRegistry(publish_defaults=True)
    meter_provider = None
    if "otel" in cfg.recorder.backends:
        from .recorder.otel import build_meter_provider
        meter_provider = build_meter_provider(cfg.otel)

    try:
        provider = get_provider(cfg.collector.os, cfg.collector)
        recorder = build_recorder(
            cfg.recorder,
            var_registry=var_registry,
            prometheus_registry=REGISTRY,
            meter_provider=meter_provider,
        )
        gauges = register_gauges(recorder)
        manager = CollectorManager(cfg.collector, provider, gauges)
    except DuplicateRegistrationError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    except (UnknownProviderError, ValueError) as exc:
        logger.error("%s", exc)
        sys.exit(2)

    server = MetricsServer(cfg.server.http, create_app(REGISTRY, var_registry))
    try:
        server.start()
    except OSError as exc:
        logger.critical("cannot listen on %s: %s", cfg.server.http, exc)
        sys.exit(1)

    stop = threading.Event()

    def _handle_signal(_sig: int, _frame: object) -> None:
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    manager.start()
    try:
        while not stop.wait(0.5):
            pass
    finally:
        manager.stop()
        server.shutdown()
        if meter_provider is not None:
            meter_provider.shutdown()


def _cmd_sample(args: argparse.Namespace) -> None:
    """Run one collection cycle and print what would be exported."""
    cfg = _load(args)

    from rich.console import Console
    from rich.table import Table

    from .collector.base import CollectedMetric, UnknownProviderError
    from .collector.manager import POWER_METRICS, get_provider

    try:
        provider = get_provider(cfg.collector.os, cfg.collector)
    except UnknownProviderError as exc:
        logger.error("%s", exc)
        sys.exit(2)

    collected = {key: CollectedMetric() for key in POWER_METRICS}
    provider.collect(collected)

    table = Table(title=f"Power sample ({provider.name})")
    table.add_column("Metric", style="cyan")
    table.add_column("Series")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Error", style="red")
    for key, metric in collected.items():
        error = str(metric.error) if metric.error is not None else ""
        table.add_row(key, POWER_METRICS[key], metric.value or "-", error)
    Console().print(table)


def _service_args(args: argparse.Namespace, cfg: MonitorPowerConfig) -> list[str]:
    service_args = [
        "--collect", format_duration(cfg.collector.interval_seconds),
        "--http", cfg.server.http,
        "--os", cfg.collector.os,
    ]
    if args.config:
        service_args = ["--config", str(Path(args.config).resolve()), *service_args]
    return service_args


def _query_service(handler: Callable[[], str]) -> None:
    from .service import ServiceError

    try:
        status = handler()
    except ServiceError as exc:
        logger.error("%s", exc)
        print(exc)
        sys.exit(1)
    print(status)


def _cmd_service(args: argparse.Namespace) -> None:
    """Dispatch install/start/stop/status/remove to the service manager."""
    from .service import SystemdService

    service = SystemdService()
    if args.command == "install":
        cfg = _load(args)
        _query_service(lambda: service.install(*_service_args(args, cfg)))
        return
    actions: dict[str, Callable[[], str]] = {
        "start": service.start,
        "stop": service.stop,
        "status": service.status,
        "remove": service.remove,
    }
    _query_service(actions[args.command])


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"monitor-power {__version__}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monitor-power",
        description="Republish battery power usage through several metrics backends",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to monitor_power.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--http", default=None, help="HTTP listen address of the stats (default :9096)")
    parser.add_argument("--os", default=None, help="The underlying OS variant (default fedora)")
    parser.add_argument(
        "--collect",
        type=parse_duration,
        default=None,
        help="Time interval of metrics collect, e.g. 1s or 500ms",
    )
    sub = parser.add_subparsers(dest="command")

    run_p = sub.add_parser("run", help="Serve metrics and collect in the foreground (default)")
    run_p.set_defaults(func=_cmd_run)

    sample_p = sub.add_parser("sample", help="Collect once and print the raw values")
    sample_p.set_defaults(func=_cmd_sample)

    for name, text in (
        ("install", "Install as a systemd service using the current flags"),
        ("start", "Start the installed service"),
        ("stop", "Stop the installed service"),
        ("status", "Show the service status"),
        ("remove", "Stop and uninstall the service"),
    ):
        service_p = sub.add_parser(name, help=text)
        service_p.set_defaults(func=_cmd_service)

    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the monitor-power CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    func = getattr(args, "func", _cmd_run)
    func(args)


if __name__ == "__main__":
    main()
