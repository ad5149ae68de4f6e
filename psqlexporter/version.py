"""Capability level detection for the monitored server."""

from __future__ import annotations

import logging
import re
from typing import Any

LOG = logging.getLogger(__name__)

VERSION_QUERY = "SHOW server_version"
VERSION_RE = re.compile(r"^\d+\.\d+")

# Larger than any real server version: every scraper becomes eligible.
UNKNOWN_VERSION = 999.0


class VersionProbeError(RuntimeError):
    """Raised internally when the version query fails; never leaves `detect`."""


async def detect(connection: Any) -> float:
    """Return the server's ``major.minor`` as a float, or `UNKNOWN_VERSION`."""

    try:
        version = await _query_version(connection)
    except VersionProbeError as exc:
        LOG.debug("Error querying version", extra={"error": str(exc)})
        return UNKNOWN_VERSION
    level = parse_version(version)
    if level == 0:
        LOG.debug("Error parsing version string", extra={"version": version})
        return UNKNOWN_VERSION
    return level


def parse_version(value: str | None) -> float:
    """Parse the leading ``<digits>.<digits>`` of a version string; 0 if absent."""

    match = VERSION_RE.match(value or "")
    if not match:
        return 0.0
    return float(match.group(0))


async def _query_version(connection: Any) -> str:
    try:
        value = await connection.fetchval(VERSION_QUERY)
    except Exception as exc:
        raise VersionProbeError(str(exc)) from exc
    return "" if value is None else str(value)


__all__ = ["UNKNOWN_VERSION", "VERSION_QUERY", "VersionProbeError", "detect", "parse_version"]
