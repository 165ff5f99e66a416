"""Pytest configuration & shared fixtures for the exporter tests.

Provides:
1. A free loopback port helper for listener tests.
2. A realistic serverinfo payload (``ocs.data``) and snapshot.
3. A scriptable fake source client.
"""
from __future__ import annotations

import contextlib
import copy
import socket
import threading
import time
import urllib.error
import urllib.request
import warnings

import pytest

from nc_exporter.metrics.registry import build_default_registry
from nc_exporter.provider.models import Snapshot

# Silence noisy ResourceWarnings where sockets close at shutdown
warnings.simplefilter("ignore", ResourceWarning)


def _find_free_port() -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


SERVERINFO_DATA = {
    "nextcloud": {
        "system": {
            "version": "27.1.3.2",
            "theme": "",
            "enable_avatars": "yes",
            "enable_previews": "no",
            "memcache.local": "\\OC\\Memcache\\APCu",
            "memcache.distributed": "\\OC\\Memcache\\Redis",
            "filelocking.enabled": "yes",
            "memcache.locking": "\\OC\\Memcache\\Redis",
            "debug": "no",
            "freespace": 52428800000,
            "cpuload": [0.5, 0.4, 0.3],
            "mem_total": 8000000,
            "mem_free": 4000000,
            "swap_total": 0,
            "swap_free": 0,
            "apps": {"num_installed": 52, "num_updates_available": 2, "app_updates": {"calendar": "4.5.2"}},
        },
        "storage": {
            "num_users": 12,
            "num_files": 34567,
            "num_storages": 15,
            "num_storages_local": 1,
            "num_storages_home": 12,
            "num_storages_other": 2,
        },
        "shares": {
            "num_shares": 40,
            "num_shares_user": 20,
            "num_shares_groups": 5,
            "num_shares_link": 10,
            "num_shares_mail": 2,
            "num_shares_room": 3,
            "num_shares_link_no_password": 4,
            "num_fed_shares_sent": 1,
            "num_fed_shares_received": 0,
        },
    },
    "server": {
        "webserver": "nginx/1.24.0",
        "php": {
            "version": "8.2.12",
            "memory_limit": 536870912,
            "max_execution_time": 3600,
            "upload_max_filesize": 536870912,
            "opcache": {
                "opcache_enabled": True,
                "cache_full": False,
                "restart_pending": False,
                "restart_in_progress": False,
                "memory_usage": {
                    "used_memory": 90000000,
                    "free_memory": 40000000,
                    "wasted_memory": 1000,
                    "current_wasted_percentage": 0.001,
                },
                "interned_strings_usage": {
                    "buffer_size": 16777216,
                    "used_memory": 9000000,
                    "free_memory": 7777216,
                    "number_of_strings": 80000,
                },
                "opcache_statistics": {
                    "num_cached_scripts": 3000,
                    "num_cached_keys": 5000,
                    "max_cached_keys": 16229,
                    "hits": 1000000,
                    "start_time": 1700000000,
                    "last_restart_time": 0,
                    "oom_restarts": 0,
                    "hash_restarts": 1,
                    "manual_restarts": 2,
                    "misses": 3100,
                    "blacklist_misses": 0,
                    "blacklist_miss_ratio": 0,
                    "opcache_hit_rate": 99.7,
                },
                "jit": {
                    "enabled": True,
                    "on": False,
                    "kind": 5,
                    "opt_level": 4,
                    "opt_flags": 6,
                    "buffer_size": 0,
                    "buffer_free": 0,
                },
            },
            "apcu": {
                "cache": {
                    "num_slots": 4099,
                    "ttl": 0,
                    "num_hits": 500,
                    "num_misses": 20,
                    "num_inserts": 30,
                    "num_entries": 25,
                    "expunges": 0,
                    "start_time": 1700000000,
                    "mem_size": 120000,
                    "memory_type": "mmap",
                },
                "sma": {"num_seg": 1, "seg_size": 33554312, "avail_mem": 33000000},
            },
        },
        "database": {"type": "pgsql", "version": "PostgreSQL 15.4", "size": "104857600"},
    },
    "activeUsers": {"last5minutes": 2, "last1hour": 4, "last24hours": 9},
}


@pytest.fixture()
def serverinfo_data():
    return copy.deepcopy(SERVERINFO_DATA)


@pytest.fixture()
def serverinfo_body(serverinfo_data):
    return {
        "ocs": {
            "meta": {"status": "ok", "statuscode": 200, "message": "OK"},
            "data": serverinfo_data,
        }
    }


@pytest.fixture()
def registry():
    return build_default_registry()


class FakeClient:
    """Scriptable source client.

    ``outcomes`` is consumed in order; each entry is either a Snapshot to
    return or an exception to raise. When exhausted, ``default`` is used.
    An optional ``delay`` widens race windows in concurrency tests.
    """

    def __init__(self, outcomes=(), default=None, delay: float = 0.0) -> None:
        self._outcomes = list(outcomes)
        self._default = default
        self._delay = delay
        self._lock = threading.Lock()
        self.calls = 0
        self.closed = False

    def fetch(self):
        with self._lock:
            self.calls += 1
            outcome = self._outcomes.pop(0) if self._outcomes else self._default
        if self._delay:
            time.sleep(self._delay)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def free_port():
    return _find_free_port()


@pytest.fixture()
def make_snapshot(serverinfo_data):
    def _make(data=None, status_code: int = 200):
        return Snapshot(status_code=status_code, data=serverinfo_data if data is None else data)
    return _make


@pytest.fixture()
def fake_client_cls():
    return FakeClient


def http_get(url: str, timeout: float = 5.0) -> tuple[int, str, str]:
    """GET ``url`` and return (status, content-type, body) without raising on HTTP errors."""
    try:
        with contextlib.closing(urllib.request.urlopen(url, timeout=timeout)) as resp:  # noqa: S310 - test-only local URL
            return resp.status, resp.headers.get("Content-Type", ""), resp.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8")
        e.close()
        return e.code, e.headers.get("Content-Type", ""), body


@pytest.fixture()
def get():
    return http_get


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture()
def wait_for():
    return wait_until
