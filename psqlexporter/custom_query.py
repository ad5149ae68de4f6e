"""User-defined SQL queries turned into gauge observations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from .models import MetricIdentity, Observation
from .sink import MetricSink

LOG = logging.getLogger(__name__)


class CustomQueryError(RuntimeError):
    """Raised when a custom query fails; contained by the runner."""


@dataclass(frozen=True, slots=True)
class CustomQuery:
    """A SQL statement and the columns mapped to metric values and labels."""

    metric: str
    sql: str
    values: tuple[str, ...]
    labels: tuple[str, ...] = ()
    help: str = ""
    timeout: float | None = None


class CustomQueryBridge(Protocol):
    """Interface the orchestrator calls once per cycle after the barrier."""

    async def run(self, connection: Any, sink: MetricSink, queries: Sequence[CustomQuery]) -> int: ...


class CustomQueryRunner:
    """Runs custom queries sequentially, logging and skipping failures."""

    def __init__(self, namespace: str = "pg") -> None:
        self._namespace = namespace

    async def run(self, connection: Any, sink: MetricSink, queries: Sequence[CustomQuery]) -> int:
        """Execute every query; return how many failed."""

        failed = 0
        for query in queries:
            try:
                await self._run_one(connection, sink, query)
            except CustomQueryError as exc:
                failed += 1
                LOG.error(
                    "Custom query failed",
                    extra={"metric": query.metric, "target": getattr(connection, "target", ""), "error": str(exc)},
                )
        return failed

    def identity_for(self, query: CustomQuery, column: str) -> MetricIdentity:
        prefix = f"{self._namespace}_" if self._namespace else ""
        return MetricIdentity(
            name=f"{prefix}{query.metric}_{column}",
            documentation=query.help or f"Custom query column {column} of {query.metric}.",
            label_names=query.labels,
        )

    async def _run_one(self, connection: Any, sink: MetricSink, query: CustomQuery) -> None:
        try:
            rows = await connection.fetch(query.sql, timeout=query.timeout)
        except Exception as exc:
            raise CustomQueryError(str(exc)) from exc
        identities = {column: self.identity_for(query, column) for column in query.values}
        for row in rows:
            try:
                labels = tuple("" if row[name] is None else str(row[name]) for name in query.labels)
                for column, identity in identities.items():
                    value = row[column]
                    if value is None:
                        continue
                    sink.emit(Observation(identity=identity, value=float(value), label_values=labels))
            except (KeyError, TypeError, ValueError) as exc:
                raise CustomQueryError(f"Cannot map row of '{query.metric}': {exc}") from exc


__all__ = ["CustomQuery", "CustomQueryBridge", "CustomQueryError", "CustomQueryRunner"]
