"""Connection descriptor augmented with session-scoped safety parameters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

LOG = logging.getLogger(__name__)

TIMEOUT_PARAM = "lock_wait_timeout"
# Keeps scrape statements out of the server's slow query log. Needs superuser.
SESSION_SETTINGS_PARAM = "log_min_duration_statement=-1"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5432


@dataclass(frozen=True, slots=True)
class ConnectionDescriptor:
    """Immutable DSN used for every cycle."""

    dsn: str = field(repr=False)

    @classmethod
    def build(cls, dsn: str, *, lock_wait_timeout: int, log_slow_filter: bool = False) -> ConnectionDescriptor:
        """Append the lock timeout and, when requested, the slow log filter."""

        params = [f"{TIMEOUT_PARAM}={int(lock_wait_timeout)}"]
        if log_slow_filter:
            params.append(SESSION_SETTINGS_PARAM)
        separator = "&" if "?" in dsn else "?"
        return cls(dsn=dsn + separator + "&".join(params))

    @property
    def target(self) -> str:
        """Host and port of the target; credentials are never included."""

        return target_from_dsn(self.dsn)

    def connect_kwargs(self) -> dict[str, object]:
        """Translate the descriptor into keyword arguments for asyncpg."""

        parts = urlsplit(self.dsn)
        query: list[tuple[str, str]] = []
        server_settings: dict[str, str] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            if key == TIMEOUT_PARAM:
                # PostgreSQL spells it lock_timeout and wants a unit.
                server_settings["lock_timeout"] = f"{value}s"
            else:
                query.append((key, value))
        dsn = urlunsplit(parts._replace(query=urlencode(query)))
        kwargs: dict[str, object] = {"dsn": dsn}
        if server_settings:
            kwargs["server_settings"] = server_settings
        return kwargs

    def __str__(self) -> str:
        return self.target


def target_from_dsn(dsn: str) -> str:
    """Extract ``host:port`` from a PostgreSQL URI; empty string if unparsable."""

    try:
        parts = urlsplit(dsn)
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        LOG.error("Error parsing DSN", extra={"error": str(exc)})
        return ""
    if not host:
        # Unix socket style: postgresql:///db?host=/var/run/postgresql
        host = dict(parse_qsl(parts.query)).get("host") or DEFAULT_HOST
    return f"{host}:{port or DEFAULT_PORT}"


__all__ = [
    "ConnectionDescriptor",
    "SESSION_SETTINGS_PARAM",
    "TIMEOUT_PARAM",
    "target_from_dsn",
]
