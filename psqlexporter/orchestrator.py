"""Scrape cycle orchestration: connect, gate by version, fan out, drain."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from .cancel import CancellationToken
from .connections import ConnectError, ConnectionManager, PingError, ScrapeConnection
from .custom_query import CustomQuery, CustomQueryBridge, CustomQueryRunner
from .descriptor import ConnectionDescriptor
from .models import ExporterMetrics, Observation
from .scrapers import Scraper, ScraperRegistry
from .sink import MetricSink
from . import version as version_probe

LOG = logging.getLogger(__name__)

CONNECTION_LABEL = "connection"


class CycleState(str, Enum):
    """Progress of a single scrape cycle."""

    INIT = "init"
    CONNECTED = "connected"
    VERSIONED = "versioned"
    FANNED_OUT = "fanned_out"
    DRAINED = "drained"
    DONE = "done"
    CONNECT_FAILED = "connect_failed"
    PING_FAILED = "ping_failed"


@dataclass(slots=True)
class CycleResult:
    """Summary of a finished cycle."""

    state: CycleState = CycleState.INIT
    level: float | None = None
    eligible: tuple[str, ...] = ()
    failed: list[str] = field(default_factory=list)
    elapsed: float = 0.0


def scraper_label(scraper: Scraper) -> str:
    return f"collect.{scraper.name}"


class ScrapeOrchestrator:
    """Runs one scrape cycle per call against a fresh single-connection pool."""

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        registry: ScraperRegistry,
        metrics: ExporterMetrics,
        *,
        queries: Sequence[CustomQuery] = (),
        connections: ConnectionManager | None = None,
        custom_queries: CustomQueryBridge | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._registry = registry
        self._metrics = metrics
        self._queries = tuple(queries)
        self._connections = connections or ConnectionManager()
        self._custom_queries = custom_queries or CustomQueryRunner()
        # Cycles sharing this orchestrator never overlap, so the target sees
        # at most one physical connection at a time.
        self._cycle_lock = asyncio.Lock()

    @property
    def target(self) -> str:
        return self._descriptor.target

    async def run_cycle(self, sink: MetricSink, token: CancellationToken | None = None) -> CycleResult:
        """Run a full cycle; raise `ConnectError` if the target is unreachable.

        Every other failure is contained: scrapers report success=0 and the
        custom query bridge handles its own errors. Overlapping calls wait for
        the running cycle to release its connection.
        """

        token = token or CancellationToken()
        async with self._cycle_lock:
            return await self._run_locked(sink, token)

    async def _run_locked(self, sink: MetricSink, token: CancellationToken) -> CycleResult:
        result = CycleResult()
        started = time.perf_counter()
        try:
            async with self._connections.acquire(token, self._descriptor) as connection:
                result.state = CycleState.CONNECTED
                self._observe_duration(sink, CONNECTION_LABEL, started)
                await self._scrape(token, connection, sink, result)
            result.state = CycleState.DONE
        except PingError:
            result.state = CycleState.PING_FAILED
            raise
        except ConnectError:
            result.state = CycleState.CONNECT_FAILED
            raise
        finally:
            result.elapsed = time.perf_counter() - started
            sink.close()
            LOG.debug(
                "Scrape cycle finished",
                extra={"target": self.target, "state": result.state.value, "elapsed": result.elapsed},
            )
        return result

    async def _scrape(
        self,
        token: CancellationToken,
        connection: ScrapeConnection,
        sink: MetricSink,
        result: CycleResult,
    ) -> None:
        try:
            level = await token.run(version_probe.detect(connection))
        except Exception:
            level = version_probe.UNKNOWN_VERSION
        result.level = level
        result.state = CycleState.VERSIONED

        eligible = self._registry.eligible(level)
        result.eligible = tuple(scraper.name for scraper in eligible)
        async with asyncio.TaskGroup() as group:
            for scraper in eligible:
                group.create_task(
                    self._run_scraper(token, connection, sink, scraper, result),
                    name=scraper_label(scraper),
                )
            result.state = CycleState.FANNED_OUT
        result.state = CycleState.DRAINED

        await self._custom_queries.run(connection, sink, self._queries)

    async def _run_scraper(
        self,
        token: CancellationToken,
        connection: ScrapeConnection,
        sink: MetricSink,
        scraper: Scraper,
        result: CycleResult,
    ) -> None:
        label = scraper_label(scraper)
        started = time.perf_counter()
        success = 1.0
        try:
            await token.run(scraper.scrape(token, connection, sink))
        except Exception as exc:
            LOG.error(
                "Error from scraper",
                extra={"scraper": scraper.name, "target": self.target, "error": str(exc)},
            )
            result.failed.append(scraper.name)
            success = 0.0
        sink.emit(Observation(identity=self._metrics.success, value=success, label_values=(label,)))
        self._observe_duration(sink, label, started)

    def _observe_duration(self, sink: MetricSink, label: str, started: float) -> None:
        elapsed = time.perf_counter() - started
        sink.emit(Observation(identity=self._metrics.duration, value=elapsed, label_values=(label,)))


__all__ = ["CONNECTION_LABEL", "CycleResult", "CycleState", "ScrapeOrchestrator", "scraper_label"]
