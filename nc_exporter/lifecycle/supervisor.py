"""Supervisor loop owning the lifetime of the metrics listener.

States: STOPPED -> STARTING -> RUNNING -> STOPPING -> (STARTING | STOPPED)

The loop runs on the calling thread (normally the main thread) and consumes
commands from a queue:

  * reload  (config watcher)   -> stop fully, then start with the latest config
  * error   (listener threads) -> classified; IGNORE / WARN / FATAL
  * shutdown (signal handler)  -> stop, then return from ``run``

Reload requests occupy a single pending slot, so a burst of config changes
collapses into one restart and restarts never overlap. Shutdown is a flag
checked before every command, which keeps ``request_shutdown`` safe to call
from a signal handler.

Every start builds a fresh client, collector and CollectorRegistry; the
template registry and scrape instruments live for the whole process.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

from prometheus_client import CollectorRegistry

from nc_exporter.config import ConfigProvider, ExporterConfig
from nc_exporter.metrics.collector import NextcloudCollector, ScrapeInstruments
from nc_exporter.metrics.registry import TemplateRegistry
from nc_exporter.metrics.server import DEFAULT_SHUTDOWN_TIMEOUT, MetricsServer
from nc_exporter.metrics.walker import FilterPolicy
from nc_exporter.provider.client import NextcloudClient
from nc_exporter.utils.exceptions import (
    ListenerClosedError,
    ShutdownTimeoutError,
    UnclassifiedFatalError,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


class SupervisorState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class ErrorDisposition(Enum):
    IGNORE = "ignore"
    WARN = "warn"
    FATAL = "fatal"


def classify_listener_error(err: BaseException | None) -> ErrorDisposition:
    if err is None or isinstance(err, ListenerClosedError):
        return ErrorDisposition.IGNORE
    if isinstance(err, ShutdownTimeoutError):
        return ErrorDisposition.WARN
    return ErrorDisposition.FATAL


class _Command(Enum):
    RELOAD = "reload"
    ERROR = "error"


def filter_policy_for(cfg: ExporterConfig) -> FilterPolicy:
    return FilterPolicy.build(
        exclude_php=cfg.exclude_php,
        exclude_strings=cfg.exclude_strings,
        excluded_names=cfg.filter_metrics,
    )


def default_client_factory(cfg: ExporterConfig) -> NextcloudClient:
    return NextcloudClient(cfg.url, cfg.token, timeout=cfg.timeout)


class Supervisor:
    def __init__(self, config_provider: ConfigProvider, registry: TemplateRegistry, *,
                 instruments: ScrapeInstruments | None = None,
                 client_factory: Callable[[ExporterConfig], Any] = default_client_factory,
                 host: str = "0.0.0.0",
                 shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
                 poll_interval: float = 0.5) -> None:
        self._config_provider = config_provider
        self._registry = registry
        self._instruments = instruments or ScrapeInstruments()
        self._client_factory = client_factory
        self._host = host
        self._shutdown_timeout = shutdown_timeout
        self._poll_interval = poll_interval

        self._commands: queue.Queue[tuple[_Command, Any]] = queue.Queue()
        self._reload_lock = threading.Lock()
        self._reload_pending = False
        self._shutdown = threading.Event()

        self._state = SupervisorState.STOPPED
        self._listener: MetricsServer | None = None
        self._client: Any = None
        self.fatal_error: UnclassifiedFatalError | None = None

        config_provider.notify(self.request_reload)

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def listener(self) -> MetricsServer | None:
        return self._listener

    # -- producers (any thread) -------------------------------------------------

    def request_reload(self, event: Any = None) -> bool:
        """Queue a restart unless one is already pending. Returns True if queued."""
        with self._reload_lock:
            if self._reload_pending:
                return False
            self._reload_pending = True
        self._commands.put((_Command.RELOAD, event))
        return True

    def report_error(self, err: BaseException | None) -> None:
        self._commands.put((_Command.ERROR, err))

    def request_shutdown(self) -> None:
        self._shutdown.set()

    # -- loop (owning thread) ---------------------------------------------------

    def run(self) -> int:
        """Start the listener and process commands until shutdown or a fatal error."""
        self._start()
        while self.fatal_error is None:
            if self._shutdown.is_set():
                logger.info("received shutdown request")
                self._stop()
                break
            try:
                cmd, payload = self._commands.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if cmd is _Command.RELOAD:
                with self._reload_lock:
                    self._reload_pending = False
                logger.info("detected change to config %s, restarting", _describe_event(payload))
                self._restart()
            else:
                self._handle_error(payload)
        if self.fatal_error is not None:
            logger.error("terminating: %s", self.fatal_error)
            if self._listener is not None:
                self._stop()
            return EXIT_FATAL
        return EXIT_OK

    def _handle_error(self, err: BaseException | None) -> ErrorDisposition:
        disposition = classify_listener_error(err)
        if disposition is ErrorDisposition.IGNORE:
            if err is not None:
                logger.debug("listener: %s", err)
        elif disposition is ErrorDisposition.WARN:
            logger.warning("%s", err)
        else:
            assert err is not None
            self.fatal_error = err if isinstance(err, UnclassifiedFatalError) else UnclassifiedFatalError(err)
        return disposition

    def _start(self) -> None:
        self._state = SupervisorState.STARTING
        cfg = self._config_provider.get_config()
        client = None
        try:
            client = self._client_factory(cfg)
            collector = NextcloudCollector(client, self._registry, filter_policy_for(cfg), self._instruments)
            prom_registry = CollectorRegistry(auto_describe=True)
            prom_registry.register(collector)
            listener = MetricsServer(self._host, cfg.port, prom_registry, on_error=self.report_error)
        except Exception as e:  # noqa: BLE001 - routed through the error channel
            logger.error("failed to start server at %s:%d: %s", self._host, cfg.port, e)
            _close_client(client)
            self._state = SupervisorState.STOPPED
            self.report_error(e)
            return
        listener.start()
        self._client = client
        self._listener = listener
        self._state = SupervisorState.RUNNING
        logger.info("starting server at %s:%d", *listener.address)

    def _stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None:
            return
        self._state = SupervisorState.STOPPING
        logger.info("stopping server")
        try:
            listener.stop(self._shutdown_timeout)
        except Exception as e:  # noqa: BLE001 - classified below
            self._handle_error(e)
        finally:
            _close_client(self._client)
            self._client = None
            self._state = SupervisorState.STOPPED

    def _restart(self) -> None:
        self._stop()
        if self.fatal_error is None:
            self._start()


def _close_client(client: Any) -> None:
    close = getattr(client, "close", None)
    if callable(close):
        close()


def _describe_event(event: Any) -> str:
    if event is None:
        return "(manual)"
    path = getattr(event, "path", None)
    op = getattr(event, "op", None)
    if path is None:
        return repr(event)
    return f'"{path}" ({op})' if op else f'"{path}"'


__all__ = [
    "Supervisor",
    "SupervisorState",
    "ErrorDisposition",
    "classify_listener_error",
    "filter_policy_for",
    "default_client_factory",
    "EXIT_OK",
    "EXIT_FATAL",
]
