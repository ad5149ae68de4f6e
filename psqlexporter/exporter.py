"""Public entry point implementing the describe/collect collector contract."""

from __future__ import annotations

from typing import Iterable, Sequence

from .cancel import CancellationToken
from .connections import ConnectionManager
from .custom_query import CustomQuery, CustomQueryBridge, CustomQueryRunner
from .descriptor import ConnectionDescriptor
from .models import ExporterMetrics, MetricIdentity
from .orchestrator import CycleResult, ScrapeOrchestrator
from .scrapers import Scraper, ScraperRegistry
from .sink import MetricSink

DEFAULT_NAMESPACE = "pg"
DEFAULT_LOCK_WAIT_TIMEOUT = 2


class Exporter:
    """Collects PostgreSQL metrics, one scrape cycle per `collect` call."""

    def __init__(
        self,
        dsn: str,
        scrapers: Iterable[Scraper],
        queries: Sequence[CustomQuery] = (),
        *,
        namespace: str = DEFAULT_NAMESPACE,
        lock_wait_timeout: int = DEFAULT_LOCK_WAIT_TIMEOUT,
        log_slow_filter: bool = False,
        scrape_timeout: float | None = None,
        connections: ConnectionManager | None = None,
        custom_queries: CustomQueryBridge | None = None,
    ) -> None:
        self.descriptor = ConnectionDescriptor.build(
            dsn,
            lock_wait_timeout=lock_wait_timeout,
            log_slow_filter=log_slow_filter,
        )
        self.namespace = namespace
        self.metrics = ExporterMetrics.for_namespace(namespace)
        self.registry = ScraperRegistry(scrapers)
        self._scrape_timeout = scrape_timeout
        self._orchestrator = ScrapeOrchestrator(
            self.descriptor,
            self.registry,
            self.metrics,
            queries=queries,
            connections=connections,
            custom_queries=custom_queries or CustomQueryRunner(namespace),
        )

    @property
    def target(self) -> str:
        return self.descriptor.target

    def describe(self) -> tuple[MetricIdentity, MetricIdentity]:
        """Identities of the meta-metrics this exporter may emit."""

        return self.metrics.duration, self.metrics.success

    async def collect(self, sink: MetricSink, token: CancellationToken | None = None) -> CycleResult:
        """Run one cycle into ``sink``; raises `ConnectError` if the target is unreachable."""

        if token is None:
            token = CancellationToken(self._scrape_timeout)
        return await self._orchestrator.run_cycle(sink, token)


__all__ = ["DEFAULT_LOCK_WAIT_TIMEOUT", "DEFAULT_NAMESPACE", "Exporter"]
