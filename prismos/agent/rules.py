"""Deterministic rule-based decisions.

Rules run in order and every match is collected. ``hold`` is only emitted
when no rule produced anything.
"""
from __future__ import annotations

from typing import Callable

from ..models import (
    AdjustRangeDecision,
    AgentDecision,
    AgentResponse,
    CollectDecision,
    CompoundDecision,
    DecisionContext,
    DistributeDecision,
    HoldDecision,
    RebalanceDecision,
)

DUST_THRESHOLD = 0.0001  # combined pool-asset units
TARGET_RATIO = 0.5
RATIO_TOLERANCE = 0.05
SPREAD_THRESHOLD_PCT = 0.5

Rule = Callable[[DecisionContext, tuple[int, int]], list[AgentDecision]]


def _units(raw: int, decimals: int) -> float:
    return raw / 10**decimals


def _collect_rule(ctx: DecisionContext, decimals: tuple[int, int]) -> list[AgentDecision]:
    sub = ctx.subscription
    if not (ctx.position.has_position and sub.position_token_id):
        return []

    # Distribute and compound split freshly collected fees, so they only
    # follow a collect.
    decisions: list[AgentDecision] = [
        CollectDecision(
            reason="Position has potential fees to collect",
            confidence=80,
            token_id=sub.position_token_id,
        )
    ]
    if sub.distribute_percent > 0 and sub.distribution_address:
        decisions.append(
            DistributeDecision(
                reason=f"Distributing {sub.distribute_percent:g}% per user config",
                confidence=90,
                percent=sub.distribute_percent,
                destination=sub.distribution_address,
            )
        )
    if sub.compound_percent > 0:
        decisions.append(
            CompoundDecision(
                reason=f"Compounding {sub.compound_percent:g}% per user config",
                confidence=90,
                percent=sub.compound_percent,
            )
        )
    return decisions


def _rebalance_rule(
    ctx: DecisionContext, decimals: tuple[int, int]
) -> list[AgentDecision]:
    amount0 = _units(ctx.position.token0_balance, decimals[0])
    amount1 = _units(ctx.position.token1_balance, decimals[1])
    total = amount0 + amount1
    if total <= DUST_THRESHOLD:
        return []

    ratio = amount0 / total
    if abs(ratio - TARGET_RATIO) <= RATIO_TOLERANCE:
        return []
    return [
        RebalanceDecision(
            reason=f"Token ratio is {ratio * 100:.1f}% token0, needs rebalancing",
            confidence=70,
            current_ratio=ratio,
            target_ratio=TARGET_RATIO,
        )
    ]


def _adjust_range_rule(
    ctx: DecisionContext, decimals: tuple[int, int]
) -> list[AgentDecision]:
    spread = ctx.market.spread_pct
    if abs(spread) <= SPREAD_THRESHOLD_PCT:
        return []
    return [
        AdjustRangeDecision(
            reason=f"High spread volatility ({spread:.3f}%)",
            confidence=50,
            current_spread=spread,
        )
    ]


RULES: tuple[Rule, ...] = (_collect_rule, _rebalance_rule, _adjust_range_rule)


def rule_based_decisions(
    ctx: DecisionContext, decimals: tuple[int, int] = (8, 8)
) -> AgentResponse:
    """Evaluate every rule against ``ctx``; never returns an empty plan."""
    decisions: list[AgentDecision] = []
    for rule in RULES:
        decisions.extend(rule(ctx, decimals))

    if not decisions:
        decisions.append(
            HoldDecision(reason="No actions needed at this time", confidence=95)
        )

    return AgentResponse(
        decisions=tuple(decisions),
        reasoning="Rule-based decisions based on position state and user config",
        source="rules",
    )
