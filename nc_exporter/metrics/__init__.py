"""Metrics package public interface.

Stable import surfaces:
	from nc_exporter.metrics import TemplateRegistry, build_default_registry
	from nc_exporter.metrics.walker import project, FilterPolicy
	from nc_exporter.metrics.collector import NextcloudCollector
	from nc_exporter.metrics.server import MetricsServer

The collector and server modules are not re-exported here; they depend on the
provider package, which itself imports the walker.
"""
from __future__ import annotations

from .descriptors import NAMESPACE, MetricTemplate, Observation, ValueKind, build_fq_name
from .registry import TemplateRegistry, build_default_registry, build_registry

__all__ = [
	"NAMESPACE",
	"MetricTemplate",
	"Observation",
	"ValueKind",
	"build_fq_name",
	"TemplateRegistry",
	"build_default_registry",
	"build_registry",
]
