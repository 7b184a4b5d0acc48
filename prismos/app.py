"""Wires the configured adapters into the running service objects."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .agent.anthropic_client import AnthropicReasoningClient
from .agent.source import DecisionSource
from .agents import ConfigAgentDirectory
from .chains.evm import EvmClient, EvmPositionReader
from .config import AppConfig
from .execution import RelaySubmitter
from .ledger import ChannelLedger, PaymentGate
from .market import DefiLlamaClient
from .protocols.uniswap_v4 import UniswapV4CalldataBuilder
from .services import (
    ActionExecutor,
    FeeAccumulator,
    PositionLoop,
    Scheduler,
    SettlementRunner,
)
from .store import JsonSubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class Kernel:
    """Process-owned state and services, constructed once at startup."""

    store: JsonSubscriptionStore
    fees: FeeAccumulator
    ledger: ChannelLedger
    payment_gate: PaymentGate
    settlement: SettlementRunner
    position_loop: PositionLoop
    scheduler: Scheduler


def build_kernel(config: AppConfig) -> Kernel:
    pool = config.pool
    decimals = (pool.token0.decimals, pool.token1.decimals)

    store = JsonSubscriptionStore(config.store.subscriptions_path)
    fees = FeeAccumulator(config.fees.settlement_threshold_usd)
    ledger = ChannelLedger(
        initial_credit=config.ledger.initial_credit,
        min_signature_length=config.ledger.min_signature_length,
    )
    settlement = SettlementRunner(fees)

    positions = EvmPositionReader(EvmClient(config.chain), pool, config.chain)

    reasoning = None
    if config.agent.api_key:
        reasoning = AnthropicReasoningClient(config.agent, decimals=decimals)
    else:
        logger.warning("No reasoning model API key configured; using rule-based decisions")

    executor = ActionExecutor(
        position_reader=positions,
        calldata=UniswapV4CalldataBuilder(pool),
        submitter=RelaySubmitter(config.executor),
        fees=fees,
        store=store,
        pool=pool,
    )
    position_loop = PositionLoop(
        store=store,
        market=DefiLlamaClient(config.market, pool),
        positions=positions,
        agents=ConfigAgentDirectory(config.agents),
        decisions=DecisionSource(reasoning, decimals),
        executor=executor,
        fees=fees,
        settlement=settlement,
        max_consecutive_errors=config.loop.max_consecutive_errors,
    )
    scheduler = Scheduler(
        position_loop,
        settlement,
        position_interval_s=config.scheduler.position_check_minutes * 60,
        settlement_interval_s=config.scheduler.settlement_interval_hours * 3600,
    )
    return Kernel(
        store=store,
        fees=fees,
        ledger=ledger,
        payment_gate=PaymentGate(ledger, config.ledger),
        settlement=settlement,
        position_loop=position_loop,
        scheduler=scheduler,
    )
