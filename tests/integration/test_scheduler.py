"""Integration tests for the scheduler."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from prismos.services.scheduler import Scheduler


@pytest.fixture()
def position_loop() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def settlement() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def scheduler(position_loop: AsyncMock, settlement: AsyncMock) -> Scheduler:
    return Scheduler(position_loop, settlement, position_interval_s=60, settlement_interval_s=3600)


class TestScheduler:
    @pytest.mark.asyncio
    async def test_run_once(
        self, scheduler: Scheduler, position_loop: AsyncMock, settlement: AsyncMock
    ) -> None:
        await scheduler.run_once()

        position_loop.run.assert_awaited_once()
        settlement.settlement_loop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_position_loop_crash_is_contained(
        self, scheduler: Scheduler, position_loop: AsyncMock, settlement: AsyncMock
    ) -> None:
        position_loop.run.side_effect = RuntimeError("boom")

        await scheduler.run_once()

        settlement.settlement_loop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_run_forever_repeats_each_job_on_its_interval(
        self, scheduler: Scheduler, position_loop: AsyncMock, settlement: AsyncMock
    ) -> None:
        sleeps: list[float] = []
        real_sleep = asyncio.sleep

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            if len(sleeps) >= 4:
                raise asyncio.CancelledError
            await real_sleep(0)

        position_loop.run.side_effect = [RuntimeError("first pass fails"), None, None]

        with patch("prismos.services.scheduler.asyncio.sleep", side_effect=fake_sleep):
            with pytest.raises(asyncio.CancelledError):
                await scheduler.run_forever()

        assert position_loop.run.await_count >= 2
        assert settlement.settlement_loop.await_count >= 1
        assert set(sleeps) == {60, 3600}
