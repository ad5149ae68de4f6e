"""Tests for the cycle cancellation token."""

from __future__ import annotations

import asyncio

import pytest

from psqlexporter.cancel import CancellationToken, CycleCancelledError


@pytest.mark.anyio
async def test_run_returns_result() -> None:
    async def _work() -> int:
        await asyncio.sleep(0)
        return 42

    assert await CancellationToken().run(_work()) == 42


@pytest.mark.anyio
async def test_run_propagates_errors() -> None:
    async def _work() -> None:
        raise LookupError("missing")

    with pytest.raises(LookupError):
        await CancellationToken().run(_work())


@pytest.mark.anyio
async def test_cancel_interrupts_in_flight_work() -> None:
    token = CancellationToken()
    started = asyncio.Event()
    interrupted: list[bool] = []

    async def _work() -> None:
        started.set()
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            interrupted.append(True)
            raise

    runner = asyncio.ensure_future(token.run(_work()))
    await started.wait()
    token.cancel()

    with pytest.raises(CycleCancelledError, match="cancelled"):
        await runner
    assert interrupted == [True]
    assert token.cancelled is True


@pytest.mark.anyio
async def test_deadline_interrupts_work() -> None:
    token = CancellationToken(timeout=0.05)

    with pytest.raises(CycleCancelledError, match="deadline"):
        await token.run(asyncio.sleep(30))
    assert token.remaining() == 0.0


@pytest.mark.anyio
async def test_already_cancelled_token_does_not_start_work() -> None:
    token = CancellationToken()
    token.cancel()
    ran: list[bool] = []

    async def _work() -> None:
        ran.append(True)

    with pytest.raises(CycleCancelledError):
        await token.run(_work())
    assert ran == []


def test_token_without_deadline_has_no_remaining_time() -> None:
    token = CancellationToken()

    assert token.remaining() is None
    assert token.cancelled is False


@pytest.mark.anyio
async def test_run_leaves_no_pending_tasks() -> None:
    before = asyncio.all_tasks()
    token = CancellationToken(timeout=0.05)

    assert await token.run(asyncio.sleep(0, result="done")) == "done"
    with pytest.raises(CycleCancelledError):
        await token.run(asyncio.sleep(30))

    assert asyncio.all_tasks() - before == set()
