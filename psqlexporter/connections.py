"""Single bounded connection to the monitored PostgreSQL target."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from .cancel import CancellationToken
from .descriptor import ConnectionDescriptor

LOG = logging.getLogger(__name__)

# One physical connection per cycle, one open and one idle at most.
POOL_SIZE = 1
MAX_CONNECTION_LIFETIME = 60.0
PING_QUERY = "SELECT 1"


class ConnectError(RuntimeError):
    """Raised when the physical connection cannot be established."""

    def __init__(self, message: str, *, target: str) -> None:
        super().__init__(message)
        self.target = target


class PingError(ConnectError):
    """Raised when the connection opened but the liveness check failed."""


class ScrapeConnection:
    """Handle shared by all scrapers of a cycle.

    Every statement checks the single pooled connection out and back in, so
    concurrent scrapers queue at the pool instead of holding the connection
    across their own awaits. The raw connection is never handed out: holding
    the only slot while issuing statements here would never return.
    """

    def __init__(self, pool: Any, *, target: str) -> None:
        self._pool = pool
        self.target = target

    async def fetch(self, query: str, *args: object, timeout: float | None = None) -> list[Any]:
        async with self._pool.acquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def fetchrow(self, query: str, *args: object, timeout: float | None = None) -> Any:
        async with self._pool.acquire() as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def fetchval(self, query: str, *args: object, timeout: float | None = None) -> Any:
        async with self._pool.acquire() as conn:
            return await conn.fetchval(query, *args, timeout=timeout)

    async def execute(self, query: str, *args: object, timeout: float | None = None) -> str:
        async with self._pool.acquire() as conn:
            return await conn.execute(query, *args, timeout=timeout)


class ConnectionManager:
    """Opens, validates and always releases the per-cycle connection."""

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout

    @asynccontextmanager
    async def acquire(
        self,
        token: CancellationToken,
        descriptor: ConnectionDescriptor,
    ) -> AsyncIterator[ScrapeConnection]:
        target = descriptor.target
        pool = await self._open(token, descriptor)
        try:
            await self._ping(token, pool, target)
            yield ScrapeConnection(pool, target=target)
        finally:
            try:
                await pool.close()
            except Exception:  # pragma: no cover - best effort cleanup
                LOG.warning("Failed to close connection", extra={"target": target}, exc_info=True)

    async def _open(self, token: CancellationToken, descriptor: ConnectionDescriptor) -> Any:
        kwargs = descriptor.connect_kwargs()
        kwargs.update(
            min_size=POOL_SIZE,
            max_size=POOL_SIZE,
            max_inactive_connection_lifetime=MAX_CONNECTION_LIFETIME,
            timeout=self._connect_timeout,
        )
        try:
            return await token.run(asyncpg.create_pool(**kwargs))
        except Exception as exc:
            raise ConnectError(
                f"cannot open connection to {descriptor.target}: {exc}",
                target=descriptor.target,
            ) from exc

    async def _ping(self, token: CancellationToken, pool: Any, target: str) -> None:
        async def _check() -> None:
            async with pool.acquire() as conn:
                await conn.fetchval(PING_QUERY)

        try:
            await token.run(_check())
        except Exception as exc:
            raise PingError(f"cannot ping {target}: {exc}", target=target) from exc


__all__ = [
    "ConnectError",
    "ConnectionManager",
    "PingError",
    "ScrapeConnection",
]
