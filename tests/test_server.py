"""Tests for the HTTP exposition layer."""

import json
import urllib.request
from wsgiref.util import setup_testing_defaults

import pytest
from prometheus_client import CollectorRegistry

from monitor_power.recorder.prometheus import PrometheusRecorder
from monitor_power.recorder.vars import VarRegistry
from monitor_power.server import MetricsServer, create_app, parse_listen_address


def _call(app, path):
    environ = {"PATH_INFO": path}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app(environ, start_response))
    return captured["status"], captured["headers"], body


def _app():
    prom_registry = CollectorRegistry()
    var_registry = VarRegistry()
    PrometheusRecorder(prom_registry).gauge("voltage_now").set(4200000)
    var_registry.new_float("voltage_now").set(4200000)
    return create_app(prom_registry, var_registry)


def _app_call(path):
    return _call(_app(), path)


def test_metrics_endpoint():
    status, headers, body = _app_call("/metrics")
    assert status.startswith("200")
    assert b"voltage_now 4.2e+06" in body
    assert b"# HELP voltage_now no description provided" in body


def test_vars_endpoint():
    status, headers, body = _app_call("/debug/vars")
    assert status.startswith("200")
    assert headers["Content-Type"].startswith("application/json")
    assert json.loads(body) == {"voltage_now": 4200000.0}


def test_unknown_path():
    status, _, body = _app_call("/nope")
    assert status.startswith("404")
    assert b"not found" in body


@pytest.mark.parametrize(
    "listen, expected",
    [
        (":9096", ("0.0.0.0", 9096)),
        ("127.0.0.1:80", ("127.0.0.1", 80)),
        ("localhost:0", ("localhost", 0)),
        ("[::1]:9096", ("::1", 9096)),
    ],
)
def test_parse_listen_address(listen, expected):
    assert parse_listen_address(listen) == expected


@pytest.mark.parametrize("listen", ["9096", "host:http", ":70000"])
def test_parse_listen_address_invalid(listen):
    with pytest.raises(ValueError):
        parse_listen_address(listen)


def test_server_serves_vars():
    server = MetricsServer("127.0.0.1:0", _app())
    server.start()
    try:
        host, port = server.server_address
        assert port != 0
        with urllib.request.urlopen(f"http://{host}:{port}/debug/vars", timeout=5) as resp:
            assert json.loads(resp.read()) == {"voltage_now": 4200000.0}
    finally:
        server.shutdown()
