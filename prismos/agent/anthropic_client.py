"""Reasoning client backed by the Anthropic Messages API.

The model is forced to answer through the ``submit_decisions`` tool so the
output is bounded to the enumerated action tags.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from anthropic import AsyncAnthropic

from ..config import AgentConfig
from ..models import DECISION_TYPES, DecisionContext

logger = logging.getLogger(__name__)

DECISION_TOOL: dict[str, Any] = {
    "name": "submit_decisions",
    "description": (
        "Submit the agent's decisions for LP position management. "
        "Call this once with all decisions for this cycle."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "decisions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "action": {
                            "type": "string",
                            "enum": list(DECISION_TYPES),
                            "description": "The action to take",
                        },
                        "reason": {
                            "type": "string",
                            "description": "Brief explanation for this decision",
                        },
                        "confidence": {
                            "type": "number",
                            "minimum": 0,
                            "maximum": 100,
                            "description": "Confidence level 0-100",
                        },
                        "params": {
                            "type": "object",
                            "description": "Action-specific parameters",
                            "additionalProperties": True,
                        },
                    },
                    "required": ["action", "reason", "confidence"],
                },
                "description": "Ordered list of actions to execute",
            },
            "reasoning": {
                "type": "string",
                "description": "Overall reasoning for this decision set",
            },
        },
        "required": ["decisions", "reasoning"],
    },
}

SYSTEM_PROMPT = """\
You are an AI agent managing Uniswap V4 LP positions for users. You analyze \
market data and position state to make optimal decisions.

## Available Actions
- collect: Collect accrued LP fees. Do this when fees > $1. Params: tokenId.
- compound: Re-invest collected fees into the LP position. Respect the user's \
compound percent. Params: percent.
- distribute: Send a portion of collected fees to the user's distribution \
address. Respect the user's distribute percent. Params: percent, destination.
- rebalance: Swap tokens to restore a 50:50 ratio when it deviates by more \
than 5%. Params: currentRatio, targetRatio.
- adjustRange: Withdraw and re-enter with a new tick range when spread \
volatility is high (> 0.5%). Params: currentSpread.
- hold: Take no action.

## Decision Rules
1. Always collect first if there are fees > $1 to collect.
2. After collecting, split according to the user's compound/distribute percentages.
3. Only suggest rebalance if the ratio is significantly off and there are tokens to rebalance.
4. Only suggest adjustRange in high volatility periods; it is expensive.
5. Consider gas costs; don't suggest actions for tiny amounts.

Decisions execute in the order given. Be conservative: when in doubt, hold.
"""


def build_user_prompt(ctx: DecisionContext, decimals: tuple[int, int] = (8, 8)) -> str:
    """Render the decision context as the user turn."""
    position, profile, market, sub = (
        ctx.position,
        ctx.agent_profile,
        ctx.market,
        ctx.subscription,
    )
    amount0 = position.token0_balance / 10 ** decimals[0]
    amount1 = position.token1_balance / 10 ** decimals[1]
    total = amount0 + amount1
    ratio0 = amount0 / total * 100 if total > 0 else 50.0

    pool_apy = (
        f"{market.pool_yield.apy:.2f}%" if market.pool_yield is not None else "Unknown"
    )
    alternatives = ", ".join(
        f"{p.symbol}: {p.apy:.2f}%" for p in market.alternative_yields
    ) or "None"
    last_action = (
        datetime.fromtimestamp(sub.last_action_at, timezone.utc).isoformat()
        if sub.last_action_at
        else "Never"
    )

    return f"""\
## Current Position State
- Smart Account: {sub.smart_account}
- Has LP Position: {position.has_position}
- Position Token ID: {sub.position_token_id or "None"}
- LP Position Count: {position.position_count}
- Wallet Value: ${position.wallet_value_usd:.2f}
- Token0 Balance: {amount0:.8f} (${amount0 * market.token0_price:.2f})
- Token1 Balance: {amount1:.8f} (${amount1 * market.token1_price:.2f})
- Token0/Token1 Ratio: {ratio0:.1f}% / {100 - ratio0:.1f}%

## User Configuration
- Compound Percent: {sub.compound_percent:g}%
- Distribute Percent: {sub.distribute_percent:g}%
- Distribution Address: {sub.distribution_address or "Not set"}
- Distribution Mode: {sub.distribution_mode}

## Agent Strategy
- Strategy: {profile.strategy_id or "default"}
- Risk Profile: {profile.strategy_risk or "moderate"}
- Protocol: {profile.strategy_protocol or "uniswap-v4"}
- Pool: {profile.strategy_pool or "WBTC/cbBTC"}

## Market Conditions
- Reference Price: ${market.reference_price:.2f}
- Token0 Price: ${market.token0_price:.2f}
- Token1 Price: ${market.token1_price:.2f}
- Token0/Token1 Spread: {market.spread_pct:.4f}%
- Pool APY: {pool_apy}
- Alternative Pool APYs: {alternatives}
- Protocol TVL: ${market.protocol_tvl / 1e9:.2f}B

## Historical Stats
- Total Fees Collected: ${sub.total_fees_collected:.2f}
- Total Compounded: ${sub.total_fees_compounded:.2f}
- Total Distributed: ${sub.total_distributed:.2f}
- Last Action: {last_action}

Analyze the position and market conditions, then submit your decisions \
using the submit_decisions tool."""


class AnthropicReasoningClient:
    """Calls Claude with a forced tool choice and returns the tool input."""

    def __init__(
        self,
        config: AgentConfig,
        client: AsyncAnthropic | None = None,
        decimals: tuple[int, int] = (8, 8),
    ) -> None:
        self._config = config
        self._client = client or AsyncAnthropic(api_key=config.api_key)
        self._decimals = decimals

    async def decide(self, context: DecisionContext) -> dict[str, Any]:
        response = await asyncio.wait_for(
            self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                system=SYSTEM_PROMPT,
                tools=[DECISION_TOOL],
                tool_choice={"type": "tool", "name": DECISION_TOOL["name"]},
                messages=[
                    {
                        "role": "user",
                        "content": build_user_prompt(context, self._decimals),
                    }
                ],
            ),
            timeout=self._config.timeout_seconds,
        )

        for block in response.content:
            if block.type == "tool_use" and block.name == DECISION_TOOL["name"]:
                if not isinstance(block.input, dict):
                    raise ValueError("submit_decisions input is not an object")
                return block.input

        raise ValueError("No submit_decisions tool use in response")
