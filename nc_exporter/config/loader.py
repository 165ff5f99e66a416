"""Config loading & normalization entrypoint.

Responsibilities:
  * Locate and load the YAML config file (``config.yaml`` in the working directory by default).
  * Apply ``NC_*`` environment overrides on top of file values.
  * Reject unknown keys and invalid values with ``ConfigError``.

Environment Overrides:
  NC_PORT=9205                 -> listen port
  NC_URL=https://cloud.local/  -> base URL of the Nextcloud instance
  NC_TOKEN=...                 -> serverinfo token (sent as NC-Token header)
  NC_FILTER=a,b                -> fully-qualified metric names to drop
  NC_EXCLUDE_PHP=1             -> drop php_* metrics
  NC_EXCLUDE_STRINGS=1         -> drop string-valued (enum) metrics
  NC_TIMEOUT=10                -> request timeout in seconds

Public API:
  load_config(path) -> ExporterConfig
  find_config_file() -> str | None
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from nc_exporter.utils.env_flags import parse_bool, split_csv
from nc_exporter.utils.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "NC"
CONFIG_NAME = "config"
CONFIG_EXTENSIONS = (".yaml", ".yml")
CONFIG_PATHS = (".",)

DEFAULTS: dict[str, Any] = {
    "port": 9205,
    "token": "",
    "url": "http://localhost/",
    "exclude_php": False,
    "exclude_strings": False,
    "filter": [],
    "timeout": 10.0,
}


@dataclass(frozen=True)
class ExporterConfig:
    port: int = 9205                    # Port that the exporter listens on
    url: str = "http://localhost/"      # Base URL of the Nextcloud instance to target
    token: str = ""                     # Token to authenticate to Nextcloud with
    filter_metrics: tuple[str, ...] = ()  # Fully-qualified metric names to drop from collection
    exclude_php: bool = False           # Exclude PHP related metrics from collection
    exclude_strings: bool = False       # Exclude string-type metrics (e.g. version information)
    timeout: float = 10.0               # Request timeout towards Nextcloud, seconds


def find_config_file(paths: Sequence[str | os.PathLike[str]] = CONFIG_PATHS) -> str | None:
    for base in paths:
        for ext in CONFIG_EXTENSIONS:
            candidate = Path(base) / f"{CONFIG_NAME}{ext}"
            if candidate.is_file():
                return str(candidate)
    return None


def _read_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must be a mapping, got {type(raw).__name__}")
    unknown = sorted(set(raw) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(map(str, unknown))}")
    return raw


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in DEFAULTS:
        name = f"{ENV_PREFIX}_{key.upper()}"
        if name in env:
            out[key] = split_csv(env[name]) if key == "filter" else env[name]
    return out


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return parse_bool(value)
        except ValueError as e:
            raise ConfigError(f"invalid value for '{key}': {e}") from e
    raise ConfigError(f"invalid value for '{key}': expected bool, got {value!r}")


def _normalize(raw: Mapping[str, Any]) -> ExporterConfig:
    try:
        port = int(raw["port"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid value for 'port': {raw['port']!r}") from e
    if not 0 <= port <= 65535:
        raise ConfigError(f"invalid value for 'port': {port} out of range")

    url = str(raw["url"])
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"invalid value for 'url': {url!r}")

    filters = raw["filter"]
    if isinstance(filters, str):
        filters = split_csv(filters)
    if not isinstance(filters, list) or not all(isinstance(f, str) for f in filters):
        raise ConfigError(f"invalid value for 'filter': {filters!r}")

    try:
        timeout = float(raw["timeout"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid value for 'timeout': {raw['timeout']!r}") from e
    if timeout <= 0:
        raise ConfigError("invalid value for 'timeout': must be positive")

    token = raw["token"]
    return ExporterConfig(
        port=port,
        url=url,
        token="" if token is None else str(token),
        filter_metrics=tuple(filters),
        exclude_php=_as_bool("exclude_php", raw["exclude_php"]),
        exclude_strings=_as_bool("exclude_strings", raw["exclude_strings"]),
        timeout=timeout,
    )


def load_config(path: str | os.PathLike[str] | None = None, *,
                env: Mapping[str, str] | None = None) -> ExporterConfig:
    """Merge defaults, file values and environment overrides (highest precedence)."""
    merged: dict[str, Any] = dict(DEFAULTS)
    if path is not None:
        merged.update(_read_file(path))
    merged.update(_env_overrides(os.environ if env is None else env))
    cfg = _normalize(merged)
    logger.debug("loaded configuration from %s: port=%s url=%s", path or "<defaults>", cfg.port, cfg.url)
    return cfg


__all__ = ["ExporterConfig", "DEFAULTS", "load_config", "find_config_file"]
