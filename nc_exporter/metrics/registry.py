"""Template registry.

Holds the catalog of ``MetricTemplate`` objects keyed by short metric name.
Built once at startup (``build_default_registry``) and read-only afterwards, so
lookups from concurrent scrape threads need no locking.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence

from prometheus_client.core import Metric

from nc_exporter.utils.exceptions import DuplicateTemplateError

from .descriptors import NEXTCLOUD_DESCRIPTORS, MetricTemplate, ValueKind

logger = logging.getLogger(__name__)


class TemplateRegistry:
    def __init__(self) -> None:
        self._templates: dict[str, MetricTemplate] = {}

    def register(self, name: str, documentation: str, kind: ValueKind,
                 labels: Sequence[str] | None = None,
                 const_labels: Mapping[str, str] | None = None) -> MetricTemplate:
        """Insert a new template. Raises DuplicateTemplateError (registry unchanged) if present."""
        if name in self._templates:
            raise DuplicateTemplateError(name)
        template = MetricTemplate.create(name, documentation, kind, labels, const_labels)
        self._templates[name] = template
        return template

    def lookup(self, name: str) -> MetricTemplate | None:
        return self._templates.get(name)

    def describe(self) -> Iterator[Metric]:
        """Yield an empty, fully namespaced family per registered template."""
        for template in self._templates.values():
            yield template.new_family()

    def names(self) -> list[str]:
        return list(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)


def build_registry(rows: Iterable[tuple]) -> TemplateRegistry:
    registry = TemplateRegistry()
    for name, documentation, kind, labels, const_labels in rows:
        registry.register(name, documentation, kind, labels, const_labels)
    logger.debug("template registry built with %d templates", len(registry))
    return registry


def build_default_registry() -> TemplateRegistry:
    return build_registry(NEXTCLOUD_DESCRIPTORS)


__all__ = ["TemplateRegistry", "build_registry", "build_default_registry"]
