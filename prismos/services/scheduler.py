"""Scheduler — drives the position loop and settlement on fixed cadences."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .position_loop import PositionLoop
from .settlement import SettlementRunner

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs both jobs immediately, then every interval, until cancelled."""

    def __init__(
        self,
        position_loop: PositionLoop,
        settlement: SettlementRunner,
        position_interval_s: float = 3600,
        settlement_interval_s: float = 86400,
    ) -> None:
        self._position_loop = position_loop
        self._settlement = settlement
        self.position_interval_s = position_interval_s
        self.settlement_interval_s = settlement_interval_s

    async def run_position_loop(self) -> None:
        try:
            await self._position_loop.run()
        except Exception:
            logger.exception("Position loop crashed")

    async def run_settlement(self) -> None:
        try:
            await self._settlement.settlement_loop()
        except Exception:
            logger.exception("Settlement loop crashed")

    async def _every(
        self, interval_s: float, job: Callable[[], Awaitable[None]]
    ) -> None:
        while True:
            await job()
            await asyncio.sleep(interval_s)

    async def run_once(self) -> None:
        await self.run_position_loop()
        await self.run_settlement()

    async def run_forever(self) -> None:
        logger.info(
            "Starting scheduler (position check every %.0fm, settlement every %.0fh)",
            self.position_interval_s / 60,
            self.settlement_interval_s / 3600,
        )
        await asyncio.gather(
            self._every(self.position_interval_s, self.run_position_loop),
            self._every(self.settlement_interval_s, self.run_settlement),
        )
