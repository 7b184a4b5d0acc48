"""Action executor — turns one decision into a submitted batch of calls."""
from __future__ import annotations

import logging
import time

from ..config import PoolConfig
from ..interfaces.calldata import CalldataBuilder
from ..interfaces.position_reader import PositionReader
from ..interfaces.submitter import Submitter
from ..interfaces.subscription_store import SubscriptionStore
from ..models import (
    AgentDecision,
    AgentProfile,
    CollectDecision,
    CompoundDecision,
    DistributeDecision,
    ExecutionResult,
    MarketData,
    PositionSnapshot,
    Subscription,
)
from .fees import FeeAccumulator

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000
MIN_COMPOUND_USD = 1.0


def _portion(balance: int, percent: float) -> int:
    """Integer share of ``balance``; percent is honoured to two decimals."""
    return balance * round(percent * 100) // BPS_DENOMINATOR


def _tag(subscription: Subscription) -> str:
    return subscription.smart_account[:10]


class ActionExecutor:
    """Executes decisions for one subscriber.

    Submission failures are reported in the returned ``ExecutionResult``;
    errors from position reads or the store propagate to the caller.
    """

    def __init__(
        self,
        position_reader: PositionReader,
        calldata: CalldataBuilder,
        submitter: Submitter,
        fees: FeeAccumulator,
        store: SubscriptionStore,
        pool: PoolConfig,
    ) -> None:
        self._positions = position_reader
        self._calldata = calldata
        self._submitter = submitter
        self._fees = fees
        self._store = store
        self._pool = pool

    def _usd(self, amount0: int, amount1: int, price: float) -> float:
        return (
            amount0 / 10**self._pool.token0.decimals
            + amount1 / 10**self._pool.token1.decimals
        ) * price

    async def _add_to_totals(self, subscription: Subscription, field: str, usd: float) -> None:
        current = await self._store.get(subscription.smart_account) or subscription
        await self._store.update(
            subscription.smart_account,
            last_action_at=time.time(),
            **{field: getattr(current, field) + usd},
        )

    async def execute(
        self,
        subscription: Subscription,
        decision: AgentDecision,
        position_before: PositionSnapshot,
        agent_profile: AgentProfile,
        market: MarketData,
    ) -> ExecutionResult:
        if isinstance(decision, CollectDecision):
            return await self._collect(subscription, decision, position_before, agent_profile)
        if isinstance(decision, CompoundDecision):
            return await self._compound(subscription, decision, position_before, market)
        if isinstance(decision, DistributeDecision):
            return await self._distribute(subscription, decision, position_before, market)

        if decision.action in ("rebalance", "adjustRange"):
            logger.info(
                "[%s] %s requested (not yet supported): %s",
                _tag(subscription),
                decision.action,
                decision.reason,
            )
        elif decision.action == "hold":
            logger.info("[%s] Holding: %s", _tag(subscription), decision.reason)
        else:
            logger.warning("[%s] Unknown action: %s", _tag(subscription), decision.action)
        return ExecutionResult(executed=False)

    async def _collect(
        self,
        subscription: Subscription,
        decision: CollectDecision,
        before: PositionSnapshot,
        agent_profile: AgentProfile,
    ) -> ExecutionResult:
        tag = _tag(subscription)
        token_id = decision.token_id or subscription.position_token_id
        if not token_id:
            logger.info("[%s] No position id for collect, skipping", tag)
            return ExecutionResult(executed=False, error="No position id")
        if not before.has_position:
            logger.info("[%s] No LP position, skipping collect", tag)
            return ExecutionResult(executed=False, error="No LP position")

        logger.info("[%s] Collecting fees for position #%s", tag, token_id)
        calls = self._calldata.build_collect_calls(token_id, subscription.smart_account)
        result = await self._submitter.submit(subscription, calls)
        if not result.success:
            logger.error("[%s] Collect failed: %s", tag, result.error)
            return ExecutionResult(executed=False, error=result.error)
        logger.info("[%s] Collect tx: %s", tag, result.tx_hash)

        after = await self._positions.get_position(subscription.smart_account)
        collected_usd = self._usd(
            after.token0_balance - before.token0_balance,
            after.token1_balance - before.token1_balance,
            before.reference_price,
        )
        logger.info("[%s] Collected $%.2f", tag, collected_usd)

        if collected_usd > 0:
            agent_fee = collected_usd * agent_profile.fee_collect_bps / BPS_DENOMINATOR
            self._fees.track_fee(subscription.agent_ens, subscription.smart_account, agent_fee)
            logger.info(
                "[%s] Agent fee: $%.4f (%dbps)", tag, agent_fee, agent_profile.fee_collect_bps
            )

        await self._add_to_totals(
            subscription, "total_fees_collected", max(collected_usd, 0.0)
        )
        return ExecutionResult(executed=True, collected_usd=collected_usd)

    async def _compound(
        self,
        subscription: Subscription,
        decision: CompoundDecision,
        position: PositionSnapshot,
        market: MarketData,
    ) -> ExecutionResult:
        tag = _tag(subscription)
        percent = decision.percent or subscription.compound_percent
        if percent <= 0:
            logger.info("[%s] Compound percent is 0, skipping", tag)
            return ExecutionResult(executed=False)

        total_usd = self._usd(
            position.token0_balance, position.token1_balance, market.reference_price
        )
        if total_usd < MIN_COMPOUND_USD:
            logger.info("[%s] Balance too low to compound ($%.2f)", tag, total_usd)
            return ExecutionResult(executed=False)

        amount0 = _portion(position.token0_balance, percent)
        amount1 = _portion(position.token1_balance, percent)
        logger.info("[%s] Compounding %g%%: %d / %d raw units", tag, percent, amount0, amount1)

        calls = self._calldata.build_mint_calls(amount0, amount1, subscription.smart_account)
        result = await self._submitter.submit(subscription, calls)
        if not result.success:
            logger.error("[%s] Compound mint failed: %s", tag, result.error)
            return ExecutionResult(executed=False, error=result.error)
        logger.info("[%s] Compound tx: %s", tag, result.tx_hash)

        await self._add_to_totals(
            subscription, "total_fees_compounded", total_usd * percent / 100
        )
        return ExecutionResult(executed=True)

    async def _distribute(
        self,
        subscription: Subscription,
        decision: DistributeDecision,
        position: PositionSnapshot,
        market: MarketData,
    ) -> ExecutionResult:
        tag = _tag(subscription)
        percent = decision.percent or subscription.distribute_percent
        destination = decision.destination or subscription.distribution_address
        if percent <= 0 or not destination:
            logger.info("[%s] Distribution not configured, skipping", tag)
            return ExecutionResult(executed=False)

        amount0 = _portion(position.token0_balance, percent)
        amount1 = _portion(position.token1_balance, percent)
        calls = [
            self._calldata.build_transfer_call(token.address, destination, amount)
            for token, amount in ((self._pool.token0, amount0), (self._pool.token1, amount1))
            if amount > 0
        ]
        if not calls:
            logger.info("[%s] Nothing to distribute", tag)
            return ExecutionResult(executed=False)

        logger.info("[%s] Distributing %g%% to %s", tag, percent, destination)
        result = await self._submitter.submit(subscription, calls)
        if not result.success:
            logger.error("[%s] Distribution failed: %s", tag, result.error)
            return ExecutionResult(executed=False, error=result.error)
        logger.info("[%s] Distribution tx: %s", tag, result.tx_hash)

        await self._add_to_totals(
            subscription,
            "total_distributed",
            self._usd(amount0, amount1, market.reference_price),
        )
        return ExecutionResult(executed=True)
