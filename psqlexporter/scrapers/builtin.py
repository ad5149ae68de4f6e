"""Scrapers shipped with the exporter."""

from __future__ import annotations

from typing import Iterable

from psqlexporter.cancel import CancellationToken
from psqlexporter.connections import ScrapeConnection
from psqlexporter.models import COUNTER, GAUGE, MetricIdentity, Observation
from psqlexporter.sink import MetricSink

from .types import ScraperDescriptor, ScraperError

STAT_DATABASE_QUERY = """
    SELECT datname, numbackends, xact_commit, xact_rollback, blks_read, blks_hit, deadlocks
    FROM pg_stat_database
    WHERE datname IS NOT NULL
"""

STAT_ACTIVITY_QUERY = """
    SELECT datname, COALESCE(state, 'unknown') AS state, count(*) AS count
    FROM pg_stat_activity
    WHERE datname IS NOT NULL
    GROUP BY datname, state
"""

REPLICATION_QUERY = """
    SELECT application_name,
           COALESCE(client_addr::text, '') AS client_addr,
           pg_wal_lsn_diff(
               CASE WHEN pg_is_in_recovery() THEN pg_last_wal_receive_lsn() ELSE pg_current_wal_lsn() END,
               replay_lsn
           ) AS replay_lag_bytes
    FROM pg_stat_replication
"""

SETTINGS_QUERY = """
    SELECT name, setting, vartype
    FROM pg_settings
    WHERE vartype IN ('bool', 'integer', 'real')
"""

_STAT_DATABASE_COLUMNS: dict[str, tuple[str, str]] = {
    "numbackends": (GAUGE, "Number of backends currently connected to this database."),
    "xact_commit": (COUNTER, "Number of transactions in this database that have been committed."),
    "xact_rollback": (COUNTER, "Number of transactions in this database that have been rolled back."),
    "blks_read": (COUNTER, "Number of disk blocks read in this database."),
    "blks_hit": (COUNTER, "Number of times disk blocks were found already in the buffer cache."),
    "deadlocks": (COUNTER, "Number of deadlocks detected in this database."),
}


def builtin_scrapers(namespace: str = "pg") -> tuple[ScraperDescriptor, ...]:
    """Return the built-in scrapers with metric names under ``namespace``."""

    return (
        _stat_database(namespace),
        _stat_activity(namespace),
        _replication(namespace),
        _settings(namespace),
    )


def _stat_database(namespace: str) -> ScraperDescriptor:
    identities = {
        column: MetricIdentity(
            name=f"{namespace}_stat_database_{column}",
            documentation=doc,
            label_names=("datname",),
            kind=kind,
        )
        for column, (kind, doc) in _STAT_DATABASE_COLUMNS.items()
    }

    async def _scrape(token: CancellationToken, connection: ScrapeConnection, sink: MetricSink) -> None:
        rows = await token.run(connection.fetch(STAT_DATABASE_QUERY))
        for row in rows:
            for column, identity in identities.items():
                _emit(sink, identity, row[column], (str(row["datname"]),))

    return ScraperDescriptor(
        name="stat_database",
        handler=_scrape,
        description="Per-database statistics from pg_stat_database.",
    )


def _stat_activity(namespace: str) -> ScraperDescriptor:
    identity = MetricIdentity(
        name=f"{namespace}_stat_activity_count",
        documentation="Number of backends per database and state.",
        label_names=("datname", "state"),
    )

    async def _scrape(token: CancellationToken, connection: ScrapeConnection, sink: MetricSink) -> None:
        rows = await token.run(connection.fetch(STAT_ACTIVITY_QUERY))
        for row in rows:
            _emit(sink, identity, row["count"], (str(row["datname"]), str(row["state"])))

    return ScraperDescriptor(
        name="stat_activity",
        handler=_scrape,
        description="Backend counts from pg_stat_activity.",
    )


def _replication(namespace: str) -> ScraperDescriptor:
    identity = MetricIdentity(
        name=f"{namespace}_stat_replication_replay_lag_bytes",
        documentation="Replay lag of each standby in bytes.",
        label_names=("application_name", "client_addr"),
    )

    async def _scrape(token: CancellationToken, connection: ScrapeConnection, sink: MetricSink) -> None:
        rows = await token.run(connection.fetch(REPLICATION_QUERY))
        for row in rows:
            _emit(
                sink,
                identity,
                row["replay_lag_bytes"],
                (str(row["application_name"]), str(row["client_addr"])),
            )

    # pg_wal_lsn_diff and replay_lsn appeared in 10.
    return ScraperDescriptor(
        name="stat_replication",
        handler=_scrape,
        min_version=10.0,
        description="Standby replay lag from pg_stat_replication.",
    )


def _settings(namespace: str) -> ScraperDescriptor:
    identity = MetricIdentity(
        name=f"{namespace}_settings",
        documentation="Numeric and boolean server settings from pg_settings.",
        label_names=("name",),
    )

    async def _scrape(token: CancellationToken, connection: ScrapeConnection, sink: MetricSink) -> None:
        rows = await token.run(connection.fetch(SETTINGS_QUERY))
        for row in rows:
            _emit(sink, identity, _setting_value(row["setting"], row["vartype"]), (str(row["name"]),))

    return ScraperDescriptor(
        name="settings",
        handler=_scrape,
        description="Server configuration values from pg_settings.",
    )


def _setting_value(setting: str, vartype: str) -> float:
    if vartype == "bool":
        return 1.0 if setting == "on" else 0.0
    return float(setting)


def _emit(sink: MetricSink, identity: MetricIdentity, value: object, labels: Iterable[str]) -> None:
    if value is None:
        return
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ScraperError(f"Non-numeric value for '{identity.name}': {value!r}") from exc
    sink.emit(Observation(identity=identity, value=number, label_values=tuple(labels)))


__all__ = ["builtin_scrapers"]
