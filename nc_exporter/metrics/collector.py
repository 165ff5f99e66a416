"""Scrape orchestrator.

``NextcloudCollector`` is a custom prometheus_client collector: every call to
``collect()`` (one per ``/metrics`` request) fetches a fresh snapshot, projects
it through the structural walker and returns the resulting metric families
together with the exporter's own instruments:

  nextcloud_exporter_scrape_duration_seconds   histogram
  nextcloud_exporter_scrape_count{status_code} counter
  nextcloud_exporter_up                        gauge (1 = last scrape succeeded)

Scrapes are serialized by a FIFO lock; concurrent requests wait their turn and
then perform their own fetch (no result sharing). Scrape failures never
propagate out of ``collect()``; they only show up in ``up`` and the counter.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Union

from prometheus_client import Counter, Gauge, Histogram
from prometheus_client.core import Metric

from nc_exporter.provider.errors import ScrapeError
from nc_exporter.provider.models import SERVERINFO_SPEC

from .descriptors import NAMESPACE, Observation
from .registry import TemplateRegistry
from .walker import FilterPolicy, RecordSpec, project

logger = logging.getLogger(__name__)

EXPORTER_SUBSYSTEM = "exporter"
UNKNOWN_OUTCOME = "unknown"

PolicySource = Union[FilterPolicy, Callable[[], FilterPolicy]]


class ScrapeInstruments:
    """Self-instrumentation shared by every collector built during the process lifetime.

    Created with ``registry=None`` so the collector (not the default
    prometheus registry) decides when they are exposed.
    """

    def __init__(self, namespace: str = NAMESPACE) -> None:
        self.scrape_duration = Histogram(
            "scrape_duration_seconds", "Duration of scrapes for Nextcloud metrics.",
            namespace=namespace, subsystem=EXPORTER_SUBSYSTEM, registry=None,
        )
        self.scrape_count = Counter(
            "scrape_count", "Count of scrapes partitioned by response code.", ["status_code"],
            namespace=namespace, subsystem=EXPORTER_SUBSYSTEM, registry=None,
        )
        self.up = Gauge(
            "up", "Flag indicating whether last scrape was successful.",
            namespace=namespace, subsystem=EXPORTER_SUBSYSTEM, registry=None,
        )

    def _all(self):
        return (self.scrape_duration, self.scrape_count, self.up)

    def collect(self) -> list[Metric]:
        out: list[Metric] = []
        for instrument in self._all():
            out.extend(instrument.collect())
        return out

    def describe(self) -> list[Metric]:
        out: list[Metric] = []
        for instrument in self._all():
            out.extend(instrument.describe())
        return out


class FifoLock:
    """Exclusive, non-reentrant lock granting ownership in arrival order."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._next_ticket = 0
        self._serving = 0

    def acquire(self) -> None:
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._serving:
                self._cond.wait()

    def release(self) -> None:
        with self._cond:
            self._serving += 1
            self._cond.notify_all()

    def __enter__(self) -> FifoLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class NextcloudCollector:
    def __init__(self, client, registry: TemplateRegistry, policy: PolicySource,
                 instruments: ScrapeInstruments, *, spec: RecordSpec = SERVERINFO_SPEC) -> None:
        self._client = client
        self._registry = registry
        self._policy = policy
        self._instruments = instruments
        self._spec = spec
        self._lock = FifoLock()

    def _current_policy(self) -> FilterPolicy:
        if isinstance(self._policy, FilterPolicy):
            return self._policy
        return self._policy()

    def collect(self) -> list[Metric]:
        with self._lock:
            logger.info("collecting metrics")
            families = self._scrape()
            families.extend(self._instruments.collect())
        return families

    def describe(self) -> list[Metric]:
        families = list(self._registry.describe())
        families.extend(self._instruments.describe())
        return families

    def _scrape(self) -> list[Metric]:
        outcome = UNKNOWN_OUTCOME
        start = time.perf_counter()
        try:
            try:
                snapshot = self._client.fetch()
            except ScrapeError as e:
                outcome = e.outcome
                self._instruments.up.set(0)
                logger.error("scrape failed: %s", e)
                return []
            except Exception as e:  # noqa: BLE001 - client is an external collaborator
                self._instruments.up.set(0)
                logger.error("scrape failed with unexpected error: %s", e, exc_info=True)
                return []
            outcome = str(snapshot.status_code)
            self._instruments.up.set(1)
            families: dict[str, Metric] = {}
            for obs in project(snapshot.data, self._spec, self._registry, self._current_policy()):
                self._add(families, obs)
            return list(families.values())
        finally:
            self._instruments.scrape_duration.observe(time.perf_counter() - start)
            self._instruments.scrape_count.labels(status_code=outcome).inc()

    def _add(self, families: dict[str, Metric], obs: Observation) -> None:
        template = self._registry.lookup(obs.name)
        if template is None:  # walker only emits registered names
            return
        family = families.get(obs.name)
        if family is None:
            family = families[obs.name] = template.new_family()
        template.add_sample(family, obs)


__all__ = ["NextcloudCollector", "ScrapeInstruments", "FifoLock", "UNKNOWN_OUTCOME"]
