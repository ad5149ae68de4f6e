"""Shared fixtures routing asyncpg to the in-memory fakes."""

from __future__ import annotations

from typing import Callable

import pytest

from fakes import FakeConnection, FakePool, PoolFactory


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_pool(fake_connection: FakeConnection) -> FakePool:
    return FakePool(fake_connection)


@pytest.fixture
def pool_kwargs() -> dict[str, object]:
    return {}


@pytest.fixture
def patch_pool(
    monkeypatch: pytest.MonkeyPatch,
    fake_pool: FakePool,
    pool_kwargs: dict[str, object],
) -> Callable[[BaseException | None], None]:
    """Route asyncpg.create_pool to the fake pool; call with an error to fail instead."""

    def _install(error: BaseException | None = None) -> None:
        async def _create_pool(**kwargs: object) -> FakePool:
            pool_kwargs.update(kwargs)
            if error is not None:
                raise error
            return fake_pool

        monkeypatch.setattr("psqlexporter.connections.asyncpg.create_pool", _create_pool)

    _install()
    return _install


@pytest.fixture
def pool_factory(monkeypatch: pytest.MonkeyPatch) -> PoolFactory:
    """Route asyncpg.create_pool to a factory that opens a new pool per cycle."""

    factory = PoolFactory()
    monkeypatch.setattr("psqlexporter.connections.asyncpg.create_pool", factory.create_pool)
    return factory
