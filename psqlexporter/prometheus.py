"""Bridge from scrape cycles to a prometheus_client registry."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Iterable, Iterator

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from .connections import ConnectError
from .exporter import Exporter
from .models import COUNTER, MetricIdentity, Observation
from .sink import CollectingSink

LOG = logging.getLogger(__name__)


class PrometheusCollector(Collector):
    """Runs one scrape cycle per registry collection."""

    def __init__(self, exporter: Exporter) -> None:
        self._exporter = exporter
        # HTTP requests are served on separate threads, each with its own loop.
        self._cycle_lock = threading.Lock()
        self._up = MetricIdentity(
            name=f"{exporter.namespace}_up" if exporter.namespace else "up",
            documentation="Whether the last scrape was able to connect to the server (1 for yes, 0 for no).",
        )

    def describe(self) -> Iterator[Metric]:
        for identity in (*self._exporter.describe(), self._up):
            yield _family(identity)

    def collect(self) -> Iterator[Metric]:
        sink = CollectingSink()
        up = 1.0
        try:
            with self._cycle_lock:
                asyncio.run(self._exporter.collect(sink))
        except ConnectError as exc:
            LOG.error("Cannot connect to target", extra={"target": exc.target, "error": str(exc)})
            up = 0.0
        yield from families(sink.observations)
        up_family = _family(self._up)
        up_family.add_metric([], up)
        yield up_family


def families(observations: Iterable[Observation]) -> list[Metric]:
    """Group observations into metric families, preserving first-seen order."""

    grouped: dict[str, Metric] = {}
    for observation in observations:
        identity = observation.identity
        family = grouped.get(identity.name)
        if family is None:
            family = grouped[identity.name] = _family(identity)
        family.add_metric(list(observation.label_values), observation.value)
    return list(grouped.values())


def _family(identity: MetricIdentity) -> Metric:
    if identity.kind == COUNTER:
        return CounterMetricFamily(identity.name, identity.documentation, labels=list(identity.label_names))
    return GaugeMetricFamily(identity.name, identity.documentation, labels=list(identity.label_names))


__all__ = ["PrometheusCollector", "families"]
