"""Scraper contract shared between the registry, orchestrator and scrapers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, runtime_checkable

from psqlexporter.cancel import CancellationToken
from psqlexporter.connections import ScrapeConnection
from psqlexporter.sink import MetricSink

ScrapeHandler = Callable[[CancellationToken, ScrapeConnection, MetricSink], Awaitable[None]]


class ScraperError(RuntimeError):
    """Raised by scrapers for failures they detect themselves."""


@runtime_checkable
class Scraper(Protocol):
    """Contract implemented by pluggable scrapers."""

    name: str
    min_version: float

    async def scrape(self, token: CancellationToken, connection: ScrapeConnection, sink: MetricSink) -> None:
        """Query the target and write observations; raise on failure."""


@dataclass(frozen=True, slots=True)
class ScraperDescriptor:
    """Stateless scraper built from a plain coroutine function."""

    name: str
    handler: ScrapeHandler
    min_version: float = 0.0
    description: str = ""

    async def scrape(self, token: CancellationToken, connection: ScrapeConnection, sink: MetricSink) -> None:
        await self.handler(token, connection, sink)
