"""Tests for server version detection."""

from __future__ import annotations

import pytest

from psqlexporter.version import UNKNOWN_VERSION, VERSION_QUERY, detect, parse_version

from fakes import FakeConnection


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("16.2 (Debian 16.2-1.pgdg120+2)", 16.2),
        ("9.6.24", 9.6),
        ("10.1", 10.1),
        ("devel", 0.0),
        ("", 0.0),
        (None, 0.0),
    ],
)
def test_parse_version(raw: str | None, expected: float) -> None:
    assert parse_version(raw) == expected


@pytest.mark.anyio
async def test_detect_reads_server_version() -> None:
    connection = FakeConnection({VERSION_QUERY: "13.4"})

    assert await detect(connection) == 13.4
    assert connection.queries == [VERSION_QUERY]


@pytest.mark.anyio
async def test_detect_falls_back_on_unparsable_version() -> None:
    connection = FakeConnection({VERSION_QUERY: "CockroachDB CCL v23.1"})

    assert await detect(connection) == UNKNOWN_VERSION


@pytest.mark.anyio
async def test_detect_falls_back_on_query_error() -> None:
    connection = FakeConnection({VERSION_QUERY: RuntimeError("permission denied")})

    assert await detect(connection) == UNKNOWN_VERSION


def test_sentinel_exceeds_real_versions() -> None:
    assert UNKNOWN_VERSION > parse_version("99.9")
