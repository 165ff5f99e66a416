"""Nextcloud serverinfo snapshot and its projection table.

``SERVERINFO_SPEC`` mirrors the ``ocs.data`` object returned by
``/ocs/v2.php/apps/serverinfo/api/v1/info?format=json``. Only the fields
carrying a metric name are exported; the rest are listed so the shape stays
documented in one place.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nc_exporter.metrics.walker import FieldKind, RecordSpec, leaf, nested

B = FieldKind.BOOL
N = FieldKind.NUMBER
S = FieldKind.STRING


@dataclass
class Snapshot:
    """One fetched serverinfo payload (``ocs.data``) plus the HTTP status it arrived with."""

    status_code: int
    data: Mapping[str, Any] = field(default_factory=dict)
    meta: Mapping[str, Any] = field(default_factory=dict)


SERVERINFO_SPEC = RecordSpec((
    nested("nextcloud",
        nested("system",
            leaf("version", S, "nc_version"),
            leaf("theme", S),
            leaf("enable_avatars", B, "avatars_enabled"),
            leaf("enable_previews", B, "previews_enabled"),
            leaf("memcache.local", S, "memcache_type", "local"),
            leaf("memcache.distributed", S, "memcache_type", "distributed"),
            leaf("filelocking.enabled", B, "file_locking_enabled"),
            leaf("memcache.locking", S, "memcache_locking_type"),
            leaf("debug", B, "debug_mode_enabled"),
            leaf("freespace", N, "free_space_bytes"),
            leaf("mem_total", N),
            leaf("mem_free", N),
            leaf("swap_total", N),
            leaf("swap_free", N),
            nested("apps",
                leaf("num_installed", N, "installed_apps"),
                leaf("num_updates_available", N, "app_updates_available"),
            ),
        ),
        nested("storage",
            leaf("num_users", N, "users"),
            leaf("num_files", N, "files"),
            leaf("num_storages", N),
            leaf("num_storages_local", N, "storages", "local"),
            leaf("num_storages_home", N, "storages", "home"),
            leaf("num_storages_other", N, "storages", "other"),
        ),
        nested("shares",
            leaf("num_shares", N),
            leaf("num_shares_user", N, "shares", "user"),
            leaf("num_shares_groups", N, "shares", "groups"),
            leaf("num_shares_link", N, "shares", "link"),
            leaf("num_shares_mail", N, "shares", "mail"),
            leaf("num_shares_room", N, "shares", "room"),
            leaf("num_shares_link_no_password", N, "shares", "no_password"),
            leaf("num_fed_shares_sent", N, "fed_shares_sent"),
            leaf("num_fed_shares_received", N, "fed_shares_received"),
        ),
    ),
    nested("server",
        leaf("webserver", S, "web_server_type"),
        nested("php",
            leaf("version", S, "php_version"),
            leaf("memory_limit", N, "php_memory_limit_bytes"),
            leaf("max_execution_time", N, "php_max_execution_time_seconds"),
            leaf("upload_max_filesize", N, "php_upload_max_file_size_bytes"),
            nested("opcache",
                leaf("opcache_enabled", B, "php_opcache_enabled"),
                leaf("cache_full", B, "php_opcache_full"),
                leaf("restart_pending", B, "php_opcache_restart_pending"),
                leaf("restart_in_progress", B, "php_opcache_restart_in_progress"),
                nested("memory_usage",
                    leaf("used_memory", N, "php_opcache_memory_used_bytes"),
                    leaf("free_memory", N, "php_opcache_memory_free_bytes"),
                    leaf("wasted_memory", N, "php_opcache_memory_wasted_bytes"),
                    leaf("current_wasted_percentage", N),
                ),
                nested("interned_strings_usage",
                    leaf("buffer_size", N, "php_opcache_interned_strings_buffer_size_bytes"),
                    leaf("used_memory", N, "php_opcache_interned_strings_memory_used_bytes"),
                    leaf("free_memory", N, "php_opcache_interned_strings_memory_free_bytes"),
                    leaf("number_of_strings", N, "php_opcache_interned_strings_count"),
                ),
                nested("opcache_statistics",
                    leaf("num_cached_scripts", N, "php_opcache_cached_scripts_count"),
                    leaf("num_cached_keys", N, "php_opcache_cached_keys_count"),
                    leaf("max_cached_keys", N),
                    leaf("hits", N, "php_opcache_hits_count"),
                    leaf("start_time", N, "php_opcache_start_time_ticks"),
                    leaf("last_restart_time", N, "php_opcache_last_restart_time_ticks"),
                    leaf("oom_restarts", N, "php_opcache_restart_count", "oom"),
                    leaf("hash_restarts", N, "php_opcache_restart_count", "hash"),
                    leaf("manual_restarts", N, "php_opcache_restart_count", "manual"),
                    leaf("misses", N, "php_opcache_misses_count"),
                    leaf("blacklist_misses", N, "php_opcache_blacklist_misses_count"),
                    leaf("blacklist_miss_ratio", N),
                    leaf("opcache_hit_rate", N),
                ),
                nested("jit",
                    leaf("enabled", B, "php_jit_enabled"),
                    leaf("on", B, "php_jit_on"),
                    leaf("kind", N, "php_jit_kind"),
                    leaf("opt_level", N, "php_jit_optimization_level"),
                    leaf("opt_flags", N, "php_jit_optimization_flags"),
                    leaf("buffer_size", N, "php_jit_buffer_size_bytes"),
                    leaf("buffer_free", N, "php_jit_buffer_free_bytes"),
                ),
            ),
            nested("apcu",
                nested("cache",
                    leaf("num_slots", N, "php_apcu_cache_slots"),
                    leaf("ttl", N, "php_apcu_cache_ttl"),
                    leaf("num_hits", N, "php_apcu_cache_hits_count"),
                    leaf("num_misses", N, "php_apcu_cache_misses_count"),
                    leaf("num_inserts", N, "php_apcu_cache_inserts_count"),
                    leaf("num_entries", N, "php_apcu_cache_entries"),
                    leaf("expunges", N, "php_apcu_cache_expunges_count"),
                    leaf("start_time", N, "php_apcu_cache_start_time_ticks"),
                    leaf("mem_size", N, "php_apcu_cache_memory_free_bytes"),
                    leaf("memory_type", S, "php_apcu_cache_memory_type"),
                ),
                nested("sma",
                    leaf("num_seg", N, "php_apcu_sma_seg"),
                    leaf("seg_size", N, "php_apcu_sma_seg_size_bytes"),
                    leaf("avail_mem", N, "php_apcu_sma_memory_free_bytes"),
                ),
            ),
        ),
        nested("database",
            leaf("type", S, "database_type"),
            leaf("version", S, "database_version"),
            # reported as a string by most database backends
            leaf("size", N, "database_size_bytes"),
        ),
    ),
    nested("activeUsers",
        leaf("last5minutes", N, "active_users", "5min"),
        leaf("last1hour", N, "active_users", "60min"),
        leaf("last24hours", N, "active_users", "1440min"),
    ),
))

__all__ = ["Snapshot", "SERVERINFO_SPEC"]
