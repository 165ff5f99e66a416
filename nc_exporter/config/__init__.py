"""Exporter configuration: YAML file + NC_* environment overrides, with reload notifications."""
from __future__ import annotations

from .loader import ExporterConfig, find_config_file, load_config
from .watcher import ConfigChangeEvent, ConfigProvider

__all__ = ["ExporterConfig", "ConfigChangeEvent", "ConfigProvider", "find_config_file", "load_config"]
