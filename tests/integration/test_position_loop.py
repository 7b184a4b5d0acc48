"""Integration tests for the position loop."""
from __future__ import annotations

from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from prismos.agent.source import DecisionSource
from prismos.models import (
    AgentProfile,
    AgentResponse,
    CollectDecision,
    ExecutionResult,
    HoldDecision,
    MarketData,
    PositionSnapshot,
    Subscription,
)
from prismos.services.fees import FeeAccumulator
from prismos.services.position_loop import PositionLoop


@pytest.fixture()
def store(sample_subscription: Subscription) -> AsyncMock:
    store = AsyncMock()
    store.get_all.return_value = [sample_subscription]
    return store


@pytest.fixture()
def market(sample_market: MarketData) -> AsyncMock:
    market = AsyncMock()
    market.get_market_data.return_value = sample_market
    return market


@pytest.fixture()
def positions(sample_position: PositionSnapshot) -> AsyncMock:
    positions = AsyncMock()
    positions.get_position.return_value = sample_position
    return positions


@pytest.fixture()
def agents(sample_profile: AgentProfile) -> AsyncMock:
    agents = AsyncMock()
    agents.get_agent_profile.return_value = sample_profile
    return agents


@pytest.fixture()
def executor() -> AsyncMock:
    executor = AsyncMock()
    executor.execute.return_value = ExecutionResult(executed=True)
    return executor


@pytest.fixture()
def fees() -> FeeAccumulator:
    return FeeAccumulator(settlement_threshold_usd=10.0)


@pytest.fixture()
def settlement() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def loop(store, market, positions, agents, executor, fees, settlement) -> PositionLoop:
    return PositionLoop(
        store=store,
        market=market,
        positions=positions,
        agents=agents,
        decisions=DecisionSource(None),
        executor=executor,
        fees=fees,
        settlement=settlement,
        max_consecutive_errors=3,
    )


class TestRun:
    @pytest.mark.asyncio
    async def test_no_active_subscriptions(
        self, loop: PositionLoop, store: AsyncMock, market: AsyncMock, sample_subscription: Subscription
    ) -> None:
        store.get_all.return_value = [
            replace(sample_subscription, status="paused"),
            replace(sample_subscription, smart_account="0x99", status="revoked"),
        ]

        await loop.run()

        market.get_market_data.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_executes_rule_plan_and_resnapshots(
        self,
        loop: PositionLoop,
        positions: AsyncMock,
        executor: AsyncMock,
        sample_subscription: Subscription,
    ) -> None:
        await loop.run()

        actions = [c.args[1].action for c in executor.execute.await_args_list]
        assert actions == ["collect", "distribute", "compound"]
        # One snapshot up front plus one after each state-changing action.
        assert positions.get_position.await_count == 4
        assert loop.error_count(sample_subscription.smart_account) == 0

    @pytest.mark.asyncio
    async def test_later_actions_see_fresh_snapshot(
        self,
        loop: PositionLoop,
        positions: AsyncMock,
        executor: AsyncMock,
        sample_position: PositionSnapshot,
    ) -> None:
        after_collect = replace(sample_position, token0_balance=2_000_000)
        positions.get_position.side_effect = [sample_position, after_collect, after_collect, after_collect]

        await loop.run()

        first, second, _ = executor.execute.await_args_list
        assert first.args[2] == sample_position
        assert second.args[2] == after_collect

    @pytest.mark.asyncio
    async def test_unexecuted_action_keeps_snapshot(
        self,
        loop: PositionLoop,
        positions: AsyncMock,
        executor: AsyncMock,
    ) -> None:
        executor.execute.return_value = ExecutionResult(executed=False)

        await loop.run()

        assert positions.get_position.await_count == 1


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_marks_error_after_consecutive_failures(
        self,
        loop: PositionLoop,
        positions: AsyncMock,
        store: AsyncMock,
        sample_subscription: Subscription,
    ) -> None:
        positions.get_position.side_effect = RuntimeError("All RPC endpoints failed")

        await loop.run()
        await loop.run()
        store.update.assert_not_awaited()

        await loop.run()

        assert loop.error_count(sample_subscription.smart_account) == 3
        store.update.assert_awaited_once_with(sample_subscription.smart_account, status="error")

    @pytest.mark.asyncio
    async def test_success_resets_count(
        self,
        loop: PositionLoop,
        positions: AsyncMock,
        store: AsyncMock,
        sample_position: PositionSnapshot,
        sample_subscription: Subscription,
    ) -> None:
        positions.get_position.side_effect = RuntimeError("down")
        await loop.run()
        await loop.run()
        assert loop.error_count(sample_subscription.smart_account) == 2

        positions.get_position.side_effect = None
        positions.get_position.return_value = sample_position
        await loop.run()

        assert loop.error_count(sample_subscription.smart_account) == 0
        store.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(
        self,
        loop: PositionLoop,
        store: AsyncMock,
        agents: AsyncMock,
        executor: AsyncMock,
        sample_profile: AgentProfile,
        sample_subscription: Subscription,
    ) -> None:
        other = replace(sample_subscription, smart_account="0x9999999999999999999999999999999999999999", agent_ens="other.eth")
        store.get_all.return_value = [sample_subscription, other]

        async def profile_for(agent_ens: str) -> AgentProfile:
            if agent_ens == "yield.prismos.eth":
                raise RuntimeError("directory down")
            return sample_profile

        agents.get_agent_profile.side_effect = profile_for

        await loop.run()

        assert loop.error_count(sample_subscription.smart_account) == 1
        assert loop.error_count(other.smart_account) == 0
        subscribers = {c.args[0].smart_account for c in executor.execute.await_args_list}
        assert subscribers == {other.smart_account}


class TestInlineSettlement:
    @pytest.mark.asyncio
    async def test_settles_when_threshold_reached(
        self, loop: PositionLoop, fees: FeeAccumulator, settlement: AsyncMock
    ) -> None:
        fees.track_fee("yield.prismos.eth", "0xabc", 12.0)

        await loop.run()

        settlement.settlement_loop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_settlement_below_threshold(
        self, loop: PositionLoop, fees: FeeAccumulator, settlement: AsyncMock
    ) -> None:
        fees.track_fee("yield.prismos.eth", "0xabc", 1.0)

        await loop.run()

        settlement.settlement_loop.assert_not_awaited()


class TestAiPlan:
    @pytest.mark.asyncio
    async def test_uses_decision_source(
        self, loop: PositionLoop, executor: AsyncMock
    ) -> None:
        decisions = MagicMock(spec=DecisionSource)
        decisions.get_agent_decisions = AsyncMock(
            return_value=AgentResponse(
                decisions=(CollectDecision("fees", 80), HoldDecision("then wait", 90)),
                reasoning="plan",
                source="ai",
            )
        )
        loop._decisions = decisions

        await loop.run()

        actions = [c.args[1].action for c in executor.execute.await_args_list]
        assert actions == ["collect", "hold"]
