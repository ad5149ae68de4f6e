"""Tests for the exporter facade."""

from __future__ import annotations

import asyncio

import pytest

from psqlexporter.connections import ConnectError
from psqlexporter.custom_query import CustomQuery
from psqlexporter.exporter import Exporter
from psqlexporter.scrapers import ScraperDescriptor
from psqlexporter.sink import CollectingSink

from fakes import FakePool, PoolFactory


async def _noop(token, connection, sink) -> None:  # type: ignore[no-untyped-def]
    return None


def test_descriptor_is_built_once_at_construction() -> None:
    exporter = Exporter("postgresql://db/app?sslmode=disable", [], lock_wait_timeout=5, log_slow_filter=True)

    assert exporter.descriptor.dsn == (
        "postgresql://db/app?sslmode=disable&lock_wait_timeout=5&log_min_duration_statement=-1"
    )
    assert exporter.target == "db:5432"


def test_describe_returns_meta_metric_identities() -> None:
    exporter = Exporter("postgresql://db/app", [], namespace="pg")

    duration, success = exporter.describe()

    assert duration.name == "pg_exporter_collector_duration_seconds"
    assert success.name == "pg_exporter_collector_success"
    assert duration.label_names == success.label_names == ("collector",)


def test_duplicate_scrapers_are_rejected() -> None:
    scraper = ScraperDescriptor(name="settings", handler=_noop)

    with pytest.raises(ValueError):
        Exporter("postgresql://db/app", [scraper, scraper])


@pytest.mark.anyio
async def test_collect_runs_one_cycle(patch_pool, fake_pool: FakePool) -> None:
    fake_pool.connection.responses["SELECT 2 AS two"] = [{"two": 2}]
    queries = [CustomQuery(metric="probe", sql="SELECT 2 AS two", values=("two",))]
    exporter = Exporter(
        "postgresql://db/app",
        [ScraperDescriptor(name="settings", handler=_noop)],
        queries,
        namespace="pg",
    )
    sink = CollectingSink()

    result = await exporter.collect(sink)

    assert result.eligible == ("settings",)
    names = {obs.identity.name for obs in sink.observations}
    assert names == {
        "pg_exporter_collector_duration_seconds",
        "pg_exporter_collector_success",
        "pg_probe_two",
    }


@pytest.mark.anyio
async def test_collect_raises_only_for_connection_failure(patch_pool) -> None:
    patch_pool(OSError("no route to host"))
    exporter = Exporter("postgresql://user:pw@db/app", [ScraperDescriptor(name="settings", handler=_noop)])
    sink = CollectingSink()

    with pytest.raises(ConnectError):
        await exporter.collect(sink)

    assert sink.observations == ()


@pytest.mark.anyio
async def test_concurrent_collects_are_serialized(pool_factory: PoolFactory) -> None:
    async def _slow(token, connection, sink) -> None:  # type: ignore[no-untyped-def]
        await asyncio.sleep(0.05)

    exporter = Exporter("postgresql://db/app", [ScraperDescriptor(name="slow", handler=_slow)])

    await asyncio.gather(exporter.collect(CollectingSink()), exporter.collect(CollectingSink()))

    assert len(pool_factory.pools) == 2
    assert pool_factory.max_open == 1
