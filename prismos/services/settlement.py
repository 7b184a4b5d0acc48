"""Settlement trigger — flushes accumulated agent fees through a strategy."""
from __future__ import annotations

import logging

from ..interfaces.settlement import SettlementStrategy
from ..models import SettlementSummary
from .fees import FeeAccumulator, summarize

logger = logging.getLogger(__name__)


class LoggingSettlementStrategy:
    """Settlement stub: records the batch in the log and reports success.

    A production strategy submits an idempotent batch-settle transaction and
    returns only once it is confirmed.
    """

    async def settle(self, summary: SettlementSummary) -> None:
        logger.info(
            "Settlement batch of %d agent(s), $%.4f total (not submitted on-chain)",
            len(summary.agents),
            summary.grand_total_usd,
        )


class SettlementRunner:
    def __init__(
        self, fees: FeeAccumulator, strategy: SettlementStrategy | None = None
    ) -> None:
        self._fees = fees
        self._strategy = strategy or LoggingSettlementStrategy()

    async def run_settlement(self) -> SettlementSummary | None:
        """Settle all accumulated fees.

        Returns the settled summary, or ``None`` when there was nothing to
        settle. Only the entries captured here are removed once the strategy
        returns, so fees tracked while it runs wait for the next pass. If it
        raises, the exception propagates and the fees stay.
        """
        snapshot = self._fees.get_accumulated_fees()
        agents = tuple(summarize(snapshot))
        if not agents:
            logger.info("No fees to settle")
            return None

        summary = SettlementSummary(
            agents=agents,
            grand_total_usd=sum(a.total_usd for a in agents),
        )

        logger.info("Running settlement")
        for agent in agents:
            logger.info(
                "  %s: $%.4f (%d entries)",
                agent.agent_id,
                agent.total_usd,
                agent.entry_count,
            )
        logger.info("  Grand total: $%.4f", summary.grand_total_usd)

        await self._strategy.settle(summary)
        self._fees.remove_settled(snapshot)
        logger.info("Settlement complete")
        return summary

    async def settlement_loop(self) -> None:
        """Scheduled wrapper; never raises."""
        try:
            await self.run_settlement()
        except Exception:
            logger.exception("Settlement failed; fees retained for next run")
