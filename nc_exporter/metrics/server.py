"""HTTP listener serving the exporter endpoints.

Endpoints:
 - /metrics -> Prometheus text exposition of the bound CollectorRegistry (scrapes on every request)
 - /healthz -> {"status": "UP"}, no scrape side effect

``MetricsServer`` is the listener handle owned by the supervisor. The socket is
bound at construction, ``start()`` serves on a background thread and ``stop()``
performs a bounded graceful shutdown: the listening socket is closed first,
then in-flight requests are joined. Outcomes of the serve loop (including the
expected "closed" outcome after a stop) are delivered to ``on_error``.
"""
from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from nc_exporter.utils.exceptions import ListenerClosedError, ShutdownTimeoutError

logger = logging.getLogger(__name__)

HEALTH_PAYLOAD = {"status": "UP"}
DEFAULT_SHUTDOWN_TIMEOUT = 5.0

ErrorCallback = Callable[[BaseException | None], None]


class _ExporterHTTPServer(ThreadingHTTPServer):
    # Non-daemon request threads so server_close() waits for in-flight scrapes
    daemon_threads = False
    block_on_close = True
    allow_reuse_address = True

    metrics_registry: CollectorRegistry
    report_error: ErrorCallback


class _Handler(BaseHTTPRequestHandler):
    server: _ExporterHTTPServer

    def _send(self, code: int, body: bytes, content_type: str) -> None:
        self.send_response(code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, code: int, payload: dict[str, Any]) -> None:
        self._send(code, json.dumps(payload).encode("utf-8"), "application/json")

    def log_message(self, format: str, *args) -> None:  # noqa: A003 - BaseHTTPRequestHandler API
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:  # noqa: N802 - stdlib API
        path = urlsplit(self.path or "/").path
        if path == "/metrics":
            self._serve_metrics()
            return
        if path == "/healthz":
            self._send_json(200, HEALTH_PAYLOAD)
            return
        self._send_json(404, {"error": "not found"})

    def _serve_metrics(self) -> None:
        try:
            output = generate_latest(self.server.metrics_registry)
        except Exception as e:  # noqa: BLE001 - forwarded to the supervisor for classification
            logger.error("failed to render metrics: %s", e, exc_info=True)
            self._send(500, f"error collecting metrics: {e}\n".encode("utf-8"), "text/plain; charset=utf-8")
            self.server.report_error(e)
            return
        self._send(200, output, CONTENT_TYPE_LATEST)


class MetricsServer:
    def __init__(self, host: str, port: int, registry: CollectorRegistry,
                 on_error: ErrorCallback | None = None) -> None:
        self._on_error: ErrorCallback = on_error or (lambda err: None)
        self._httpd = _ExporterHTTPServer((host, port), _Handler)
        self._httpd.metrics_registry = registry
        self._httpd.report_error = self._on_error
        self._thread: threading.Thread | None = None
        self._closed = threading.Event()

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._serve, name=f"nc-metrics-http-{self.address[1]}", daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            self._httpd.serve_forever(poll_interval=0.25)
        except Exception as e:  # noqa: BLE001 - reported, not swallowed
            self._on_error(e)
            return
        self._on_error(ListenerClosedError(f"server {self.address[0]}:{self.address[1]} closed"))

    def stop(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Stop accepting connections and wait (bounded) for in-flight requests.

        Raises ListenerClosedError if already stopped and ShutdownTimeoutError
        if in-flight requests outlive ``timeout``; the shutdown is not retried.
        """
        if self._closed.is_set():
            raise ListenerClosedError("server already closed")
        self._closed.set()
        worker = threading.Thread(target=self._shutdown, name="nc-metrics-http-shutdown", daemon=True)
        worker.start()
        worker.join(timeout)
        if worker.is_alive():
            raise ShutdownTimeoutError(timeout)

    def _shutdown(self) -> None:
        if self._thread is not None:
            self._httpd.shutdown()
        self._httpd.server_close()


__all__ = ["MetricsServer", "HEALTH_PAYLOAD", "DEFAULT_SHUTDOWN_TIMEOUT"]
