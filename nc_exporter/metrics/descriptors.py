"""Metric template descriptors.

Data-driven description of every metric the exporter can project from a
Nextcloud snapshot. ``NEXTCLOUD_DESCRIPTORS`` is the fixed declarative table the
default registry is built from; nothing registers templates after startup.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    Metric,
    UnknownMetricFamily,
)

from nc_exporter.utils.exceptions import LabelArityMismatch

__all__ = [
    "NAMESPACE",
    "ValueKind",
    "MetricTemplate",
    "Observation",
    "NEXTCLOUD_DESCRIPTORS",
    "build_fq_name",
]

NAMESPACE = "nextcloud"


class ValueKind(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"


_FAMILY_MAP = {
    ValueKind.COUNTER: CounterMetricFamily,
    ValueKind.GAUGE: GaugeMetricFamily,
    ValueKind.UNTYPED: UnknownMetricFamily,
}


def build_fq_name(name: str, namespace: str = NAMESPACE, subsystem: str = "") -> str:
    """Join non-empty parts with underscores, the Prometheus naming convention."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class Observation:
    name: str
    value: float
    label_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class MetricTemplate:
    name: str
    documentation: str
    kind: ValueKind
    labels: tuple[str, ...] = ()
    const_labels: tuple[tuple[str, str], ...] = ()

    @classmethod
    def create(cls, name: str, documentation: str, kind: ValueKind,
               labels: Sequence[str] | None = None,
               const_labels: Mapping[str, str] | None = None) -> MetricTemplate:
        return cls(
            name=name,
            documentation=documentation,
            kind=ValueKind(kind),
            labels=tuple(labels or ()),
            const_labels=tuple(sorted((const_labels or {}).items())),
        )

    @property
    def fq_name(self) -> str:
        return build_fq_name(self.name)

    def observe(self, value: float, label_values: Sequence[str] = ()) -> Observation:
        """Build an observation; label values must match the declared label names one-to-one."""
        if len(label_values) != len(self.labels):
            raise LabelArityMismatch(self.name, len(self.labels), len(label_values))
        return Observation(self.name, float(value), tuple(label_values))

    def new_family(self) -> Metric:
        """Empty metric family for this template; const labels follow the variable ones."""
        names = list(self.labels) + [k for k, _ in self.const_labels]
        return _FAMILY_MAP[self.kind](self.fq_name, self.documentation, labels=names)

    def add_sample(self, family: Metric, observation: Observation) -> None:
        values = list(observation.label_values) + [v for _, v in self.const_labels]
        family.add_metric(values, observation.value)


def _d(name: str, documentation: str, kind: ValueKind, labels: Sequence[str] = ()) -> tuple:
    return (name, documentation, kind, tuple(labels), {})


_U = ValueKind.UNTYPED
_G = ValueKind.GAUGE
_C = ValueKind.COUNTER

# (name, help, kind, variable labels, const labels)
NEXTCLOUD_DESCRIPTORS: list[tuple] = [
    # nextcloud.system
    _d("nc_version", "Version of Nextcloud installed on this instance.", _U, ["version"]),
    _d("avatars_enabled", "Flag indicating whether avatars are enabled.", _U),
    _d("previews_enabled", "Flag indicating whether previews are enabled.", _U),
    _d("memcache_type", "Type of cache configured for this instance.", _U, ["cache_location", "cache_type"]),
    _d("file_locking_enabled", "Flag indicating whether file locking is enabled.", _U),
    _d("memcache_locking_type", "Type of memcache used for file locking.", _U, ["cache_type"]),
    _d("debug_mode_enabled", "Flag indicating whether debug mode is enabled.", _U),
    _d("free_space_bytes", "Free storage space in bytes on this instance.", _G),
    _d("installed_apps", "Number of apps installed on this instance.", _G),
    _d("app_updates_available", "Number of app updates available on this instance.", _G),
    # nextcloud.storage / shares
    _d("users", "Number of users on this instance.", _G),
    _d("files", "Number of files on this instance.", _G),
    _d("storages", "Number of storages available on this instance, partitioned by location.", _G, ["storage_location"]),
    _d("shares", "Number of shares on this instance, partitioned by share type.", _G, ["share_type"]),
    _d("fed_shares_sent", "Number of federated shares sent.", _G),
    _d("fed_shares_received", "Number of federated shares received.", _G),
    # server
    _d("web_server_type", "Type of web server hosting this instance.", _U, ["server_type"]),
    _d("php_version", "Version of PHP installed on this instance.", _U, ["version"]),
    _d("php_memory_limit_bytes", "Configured PHP memory limit.", _G),
    _d("php_max_execution_time_seconds", "Configured PHP max execution time.", _G),
    _d("php_upload_max_file_size_bytes", "Configured PHP upload max file size.", _G),
    # php opcache
    _d("php_opcache_enabled", "Flag indicating whether PHP OPcache is enabled.", _U),
    _d("php_opcache_full", "Flag indicating whether PHP OPcache is full.", _U),
    _d("php_opcache_restart_pending", "Flag indicating whether PHP OPcache is pending a restart.", _U),
    _d("php_opcache_restart_in_progress", "Flag indicating whether PHP OPcache is restarting.", _U),
    _d("php_opcache_memory_used_bytes", "Memory usage of PHP OPcache.", _G),
    _d("php_opcache_memory_free_bytes", "Memory available to PHP OPcache.", _G),
    _d("php_opcache_memory_wasted_bytes", "Memory wasted by PHP OPcache.", _G),
    _d("php_opcache_interned_strings_buffer_size_bytes", "Size of PHP OPcache interned strings buffer.", _G),
    _d("php_opcache_interned_strings_memory_used_bytes", "Memory used by PHP OPcache interned strings buffer.", _G),
    _d("php_opcache_interned_strings_memory_free_bytes", "Memory available to PHP OPcache interned strings buffer.", _G),
    _d("php_opcache_interned_strings_count", "Count of interned strings in PHP OPcache interned strings buffer.", _C),
    _d("php_opcache_cached_scripts_count", "Count of cached scripts in PHP OPcache.", _C),
    _d("php_opcache_cached_keys_count", "Count of cached keys in PHP OPcache.", _C),
    _d("php_opcache_hits_count", "Count of PHP OPcache hits.", _C),
    _d("php_opcache_misses_count", "Count of PHP OPcache misses.", _C),
    _d("php_opcache_blacklist_misses_count", "Count of PHP OPcache blacklist misses.", _C),
    _d("php_opcache_start_time_ticks", "Start time of PHP OPcache.", _C),
    _d("php_opcache_last_restart_time_ticks", "Last restart time of PHP OPcache.", _C),
    _d("php_opcache_restart_count", "Count of PHP OPcache restarts, partitioned by restart type.", _C, ["restart_type"]),
    # php jit
    _d("php_jit_enabled", "Flag indicating whether PHP JIT is enabled.", _U),
    _d("php_jit_on", "Flag indicating whether PHP JIT is on.", _U),
    _d("php_jit_kind", "Kind of PHP JIT.", _U),
    _d("php_jit_optimization_level", "Optimization level of PHP JIT.", _U),
    _d("php_jit_optimization_flags", "Optimization flags of PHP JIT.", _U),
    _d("php_jit_buffer_size_bytes", "Size of PHP JIT buffer.", _G),
    _d("php_jit_buffer_free_bytes", "Free space in PHP JIT buffer.", _G),
    # php apcu
    _d("php_apcu_cache_slots", "Number of slots in PHP APCU cache.", _G),
    _d("php_apcu_cache_ttl", "TTL for entries in PHP APCU cache.", _G),
    _d("php_apcu_cache_hits_count", "Count of PHP APCU cache hits.", _C),
    _d("php_apcu_cache_misses_count", "Count of PHP APCU cache misses.", _C),
    _d("php_apcu_cache_inserts_count", "Count of PHP APCU cache inserts.", _C),
    _d("php_apcu_cache_expunges_count", "Count of PHP APCU cache expunges.", _C),
    _d("php_apcu_cache_entries", "Number of entries in PHP APCU cache.", _G),
    _d("php_apcu_cache_start_time_ticks", "Start time of PHP APCU cache.", _C),
    _d("php_apcu_cache_memory_free_bytes", "Free memory available to PHP APCU cache.", _G),
    _d("php_apcu_cache_memory_type", "PHP APCU cache memory type.", _U, ["memory_type"]),
    _d("php_apcu_sma_seg", "Number of PHP APCU shared memory allocation segments.", _G),
    _d("php_apcu_sma_seg_size_bytes", "Size of PHP APCU shared memory allocation segments.", _G),
    _d("php_apcu_sma_memory_free_bytes", "Free memory available to PHP APCU shared memory allocation.", _G),
    # database
    _d("database_type", "Type of database backing this instance.", _U, ["database_type"]),
    _d("database_version", "Version of database backing this instance.", _U, ["version"]),
    _d("database_size_bytes", "Size of database backing this instance.", _G),
    # activeUsers
    _d("active_users", "Number of active users on this instance, partitioned by last active window.", _G, ["t"]),
]
