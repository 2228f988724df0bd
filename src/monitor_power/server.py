"""HTTP exposition of the pull-based backends.

``/metrics`` serves the Prometheus registry and ``/debug/vars`` serves the
variable registry as JSON.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from socketserver import ThreadingMixIn
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

from .recorder.vars import VarRegistry

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
VARS_PATH = "/debug/vars"

WSGIApp = Callable[[dict[str, Any], Callable[..., Any]], Iterable[bytes]]


def parse_listen_address(listen: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; an empty host binds every interface."""
    host, sep, port = listen.rpartition(":")
    if not sep:
        raise ValueError(f"listen address {listen!r} has no port")
    host = host.strip("[]") or "0.0.0.0"
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"invalid port in listen address {listen!r}") from None
    if not 0 <= port_num <= 65535:
        raise ValueError(f"port out of range in listen address {listen!r}")
    return host, port_num


def _respond(start_response: Callable[..., Any], status: str, body: bytes, content_type: str) -> list[bytes]:
    start_response(status, [
        ("Content-Type", content_type),
        ("Content-Length", str(len(body))),
    ])
    return [body]


def create_app(prometheus_registry: CollectorRegistry, var_registry: VarRegistry) -> WSGIApp:
    """WSGI app dispatching to the Prometheus exposition and the variable dump."""
    metrics_app = make_wsgi_app(prometheus_registry)

    def app(environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"
        if path == METRICS_PATH:
            return metrics_app(environ, start_response)
        if path == VARS_PATH:
            body = var_registry.to_json().encode("utf-8") + b"\n"
            return _respond(start_response, "200 OK", body, "application/json; charset=utf-8")
        return _respond(start_response, "404 Not Found", b"404 page not found\n", "text/plain; charset=utf-8")

    return app


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


class MetricsServer:
    """Serves a WSGI app from a background thread."""

    def __init__(self, listen: str, app: WSGIApp) -> None:
        self._host, self._port = parse_listen_address(listen)
        self._app = app
        self._httpd: WSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def server_address(self) -> tuple[str, int]:
        if self._httpd is None:
            return self._host, self._port
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        if self._httpd is not None:
            return
        self._httpd = make_server(
            self._host,
            self._port,
            self._app,
            server_class=_ThreadingWSGIServer,
            handler_class=_QuietHandler,
        )
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name="metrics-http",
            daemon=True,
        )
        self._thread.start()
        host, port = self.server_address
        logger.info("Metrics server listening on %s:%d (%s, %s)", host, port, METRICS_PATH, VARS_PATH)

    def shutdown(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._httpd = None
        self._thread = None
        logger.info("Metrics server stopped")
