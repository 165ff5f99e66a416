"""Config provider with file-change notifications.

``ConfigProvider`` holds the current immutable ``ExporterConfig`` and polls the
config file's mtime/size on a daemon thread. When the file changes and the new
content loads cleanly, the config is swapped and every subscriber registered
via ``notify`` receives a ``ConfigChangeEvent``. A file that fails to load keeps
the previous config in place and notifies nobody.
"""
from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from nc_exporter.utils.exceptions import ConfigError

from .loader import ExporterConfig, load_config

logger = logging.getLogger(__name__)

OP_WRITE = "WRITE"
OP_CREATE = "CREATE"
OP_REMOVE = "REMOVE"


@dataclass(frozen=True)
class ConfigChangeEvent:
    path: str
    op: str


_Signature = tuple[int, int] | None


class ConfigProvider:
    def __init__(self, path: str | os.PathLike[str] | None = None, *,
                 poll_interval: float = 1.0, env: Mapping[str, str] | None = None) -> None:
        self._path = None if path is None else os.fspath(path)
        self._env = env
        self._poll_interval = poll_interval
        self._lock = threading.RLock()
        self._config = load_config(self._path, env=env)
        self._signature = self._stat()
        self._subs: list[Callable[[ConfigChangeEvent], None]] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def path(self) -> str | None:
        return self._path

    def get_config(self) -> ExporterConfig:
        with self._lock:
            return self._config

    def notify(self, callback: Callable[[ConfigChangeEvent], None]) -> None:
        with self._lock:
            self._subs.append(callback)

    def _stat(self) -> _Signature:
        if self._path is None:
            return None
        try:
            st = os.stat(self._path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def check(self) -> bool:
        """Run one poll step. Returns True when a reload was published."""
        if self._path is None:
            return False
        sig = self._stat()
        if sig == self._signature:
            return False
        previous, self._signature = self._signature, sig
        if sig is None:
            logger.warning("config file %s removed; keeping current configuration", self._path)
            return False
        op = OP_CREATE if previous is None else OP_WRITE
        try:
            cfg = load_config(self._path, env=self._env)
        except ConfigError as e:
            logger.error("failed to reload config: %s; keeping current configuration", e)
            return False
        with self._lock:
            self._config = cfg
            subs = list(self._subs)
        event = ConfigChangeEvent(self._path, op)
        for cb in subs:
            try:
                cb(event)
            except Exception:  # noqa: BLE001 - one subscriber must not starve the others
                logger.exception("config change subscriber failed")
        return True

    def _run(self) -> None:
        while not self._stop.wait(self._poll_interval):
            self.check()

    def start(self) -> None:
        if self._path is None or (self._thread and self._thread.is_alive()):
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="nc-config-watch", daemon=True)
        self._thread.start()
        logger.debug("watching config file %s", self._path)

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        self._thread = None


__all__ = ["ConfigProvider", "ConfigChangeEvent", "OP_WRITE", "OP_CREATE", "OP_REMOVE"]
