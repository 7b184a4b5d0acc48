"""Position loop — one pass over every active subscription."""
from __future__ import annotations

import logging
import time

from ..agent.source import DecisionSource
from ..interfaces.agent_directory import AgentDirectory
from ..interfaces.market_data import MarketDataSource
from ..interfaces.position_reader import PositionReader
from ..interfaces.subscription_store import SubscriptionStore
from ..models import STATE_CHANGING_ACTIONS, DecisionContext, MarketData, Subscription
from .executor import ActionExecutor
from .fees import FeeAccumulator
from .settlement import SettlementRunner

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONSECUTIVE_ERRORS = 3


class PositionLoop:
    """Decides and executes actions for each active subscriber in turn.

    Consecutive failures are counted per smart account in memory; reaching
    ``max_consecutive_errors`` persists ``status="error"``, which removes the
    subscriber from later passes until it is reactivated.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        market: MarketDataSource,
        positions: PositionReader,
        agents: AgentDirectory,
        decisions: DecisionSource,
        executor: ActionExecutor,
        fees: FeeAccumulator,
        settlement: SettlementRunner,
        max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_ERRORS,
    ) -> None:
        self._store = store
        self._market = market
        self._positions = positions
        self._agents = agents
        self._decisions = decisions
        self._executor = executor
        self._fees = fees
        self._settlement = settlement
        self.max_consecutive_errors = max_consecutive_errors
        self._error_counts: dict[str, int] = {}

    def error_count(self, smart_account: str) -> int:
        return self._error_counts.get(smart_account.lower(), 0)

    async def run(self) -> None:
        """Run one pass."""
        start = time.monotonic()
        subscriptions = [s for s in await self._store.get_all() if s.status == "active"]
        if not subscriptions:
            logger.info("No active subscriptions, skipping")
            return

        logger.info("Processing %d active subscription(s)", len(subscriptions))
        market = await self._market.get_market_data()

        for sub in subscriptions:
            try:
                await self.process_subscription(sub, market)
                self._error_counts[sub.key] = 0
            except Exception as e:
                logger.error("Error processing %s: %s", sub.smart_account, e)
                await self._record_failure(sub)

        if self._fees.should_settle():
            logger.info("Fee threshold reached, triggering early settlement")
            await self._settlement.settlement_loop()

        logger.info("Position loop completed in %.1fs", time.monotonic() - start)

    async def _record_failure(self, sub: Subscription) -> None:
        count = self._error_counts.get(sub.key, 0) + 1
        self._error_counts[sub.key] = count
        if count >= self.max_consecutive_errors:
            logger.error(
                "%s hit %d consecutive errors, marking as error",
                sub.smart_account,
                count,
            )
            await self._store.update(sub.smart_account, status="error")

    async def process_subscription(self, sub: Subscription, market: MarketData) -> None:
        tag = sub.smart_account[:10]

        profile = await self._agents.get_agent_profile(sub.agent_ens)
        position = await self._positions.get_position(sub.smart_account)
        logger.info(
            "[%s] Position: has_lp=%s wallet=$%.2f positions=%d",
            tag,
            position.has_position,
            position.wallet_value_usd,
            position.position_count,
        )

        ctx = DecisionContext(
            position=position,
            agent_profile=profile,
            market=market,
            subscription=sub,
            timestamp=time.time(),
        )
        response = await self._decisions.get_agent_decisions(ctx)
        logger.info("[%s] Agent (%s): %s", tag, response.source, " -> ".join(response.actions))

        current = position
        for decision in response.decisions:
            result = await self._executor.execute(sub, decision, current, profile, market)
            if result.executed and decision.action in STATE_CHANGING_ACTIONS:
                current = await self._positions.get_position(sub.smart_account)
