"""Structural walker: project a nested snapshot into metric observations.

A snapshot shape is described once by a statically declared ``RecordSpec``
(see ``nc_exporter.provider.models``). Each ``FieldSpec`` names a key in the
decoded payload, the kind of value expected there and, for exported leaves, the
target metric name plus an optional fixed label value. ``project`` walks the
payload alongside the spec:

  * nested records recurse;
  * annotated leaves pass through the ``FilterPolicy``;
  * surviving leaves resolve their template in the ``TemplateRegistry``
    (unknown names are skipped with a warning);
  * values are coerced by kind: bool -> 1/0, number -> unchanged,
    string -> 1 with the string appended as the last label value.

Malformed substructure (missing keys, unexpected types, unparsable values) is
skipped, never raised. Label arity mismatches are programming errors and raise
``LabelArityMismatch``; ``validate_spec`` catches them at startup.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nc_exporter.utils.exceptions import LabelArityMismatch

from .descriptors import NAMESPACE, Observation, build_fq_name
from .registry import TemplateRegistry

logger = logging.getLogger(__name__)

__all__ = [
    "FieldKind",
    "FieldSpec",
    "RecordSpec",
    "FilterPolicy",
    "leaf",
    "nested",
    "project",
    "validate_spec",
]

_TRUE_STRINGS = {"yes", "true"}


class FieldKind(str, Enum):
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    RECORD = "record"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    kind: FieldKind
    metric: str | None = None
    label: str | None = None
    record: RecordSpec | None = None


@dataclass(frozen=True)
class RecordSpec:
    fields: tuple[FieldSpec, ...] = ()

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)


def leaf(key: str, kind: FieldKind, metric: str | None = None, label: str | None = None) -> FieldSpec:
    return FieldSpec(key, FieldKind(kind), metric, label)


def nested(key: str, *fields: FieldSpec) -> FieldSpec:
    return FieldSpec(key, FieldKind.RECORD, record=RecordSpec(tuple(fields)))


@dataclass(frozen=True)
class FilterPolicy:
    """Which annotated fields to drop before template lookup."""

    excluded_prefixes: frozenset[str] = field(default_factory=frozenset)
    excluded_kinds: frozenset[FieldKind] = field(default_factory=frozenset)
    excluded_names: frozenset[str] = field(default_factory=frozenset)  # fully-qualified
    namespace: str = NAMESPACE

    @classmethod
    def build(cls, *, exclude_php: bool = False, exclude_strings: bool = False,
              excluded_names: Iterable[str] = ()) -> FilterPolicy:
        return cls(
            excluded_prefixes=frozenset({"php"} if exclude_php else ()),
            excluded_kinds=frozenset({FieldKind.STRING} if exclude_strings else ()),
            excluded_names=frozenset(excluded_names),
        )

    def skips(self, metric: str, kind: FieldKind) -> bool:
        if any(metric.startswith(p) for p in self.excluded_prefixes):
            return True
        if build_fq_name(metric, self.namespace) in self.excluded_names:
            return True
        return kind in self.excluded_kinds


def _coerce_bool(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, str):
        # Nextcloud reports most system flags as "yes"/"no"
        return 1.0 if value.strip().lower() in _TRUE_STRINGS else 0.0
    raise TypeError(f"expected bool, got {type(value).__name__}")


def _coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("expected number, got bool")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value)
    raise TypeError(f"expected number, got {type(value).__name__}")


def _emit(spec: FieldSpec, value: Any, registry: TemplateRegistry) -> Observation | None:
    assert spec.metric is not None
    template = registry.lookup(spec.metric)
    if template is None:
        logger.warning("%s tagged for export but no corresponding metric template found", spec.metric)
        return None
    # Fixed label first, observed string (if any) last
    label_values: list[str] = [spec.label] if spec.label is not None else []
    try:
        if spec.kind is FieldKind.BOOL:
            number = _coerce_bool(value)
        elif spec.kind is FieldKind.NUMBER:
            number = _coerce_number(value)
        else:
            if not isinstance(value, str):
                raise TypeError(f"expected string, got {type(value).__name__}")
            label_values.append(value)
            number = 1.0
    except (TypeError, ValueError) as e:
        logger.debug("skipping field '%s' (%s): %s", spec.key, spec.metric, e)
        return None
    return template.observe(number, label_values)


def project(root: Any, spec: RecordSpec, registry: TemplateRegistry,
            policy: FilterPolicy | None = None) -> Iterator[Observation]:
    """Lazily yield observations for every exported leaf under ``root``."""
    if policy is None:
        policy = FilterPolicy()
    if not isinstance(root, Mapping):
        logger.debug("expected a record, got %s; skipping subtree", type(root).__name__)
        return
    for fs in spec:
        if fs.key not in root:
            continue
        value = root[fs.key]
        if fs.kind is FieldKind.RECORD:
            if fs.record is not None:
                yield from project(value, fs.record, registry, policy)
            continue
        if fs.metric is None or policy.skips(fs.metric, fs.kind):
            continue
        obs = _emit(fs, value, registry)
        if obs is not None:
            yield obs


def validate_spec(spec: RecordSpec, registry: TemplateRegistry) -> list[str]:
    """Check every annotated leaf against the registry.

    Returns the metric names that have no template (these are skipped at
    scrape time). Raises LabelArityMismatch when a leaf would emit a different
    number of label values than its template declares.
    """
    missing: list[str] = []
    for fs in spec:
        if fs.kind is FieldKind.RECORD:
            if fs.record is not None:
                missing.extend(validate_spec(fs.record, registry))
            continue
        if fs.metric is None:
            continue
        template = registry.lookup(fs.metric)
        if template is None:
            missing.append(fs.metric)
            continue
        supplied = int(fs.label is not None) + int(fs.kind is FieldKind.STRING)
        if supplied != len(template.labels):
            raise LabelArityMismatch(fs.metric, len(template.labels), supplied)
    return missing
