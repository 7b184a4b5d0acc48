"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
import time
from pathlib import Path

import pytest

from prismos.config import PoolConfig, TokenConfig
from prismos.models import (
    AgentProfile,
    DecisionContext,
    MarketData,
    PositionSnapshot,
    Subscription,
)

TOKEN0 = "0x0555e30da8f98308edb960aa94c0db47230d2b9c"
TOKEN1 = "0xcbb7c0000ab88b473b1f5afd9ef808440eed33bf"
STABLE = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
POSITION_MANAGER = "0x7c5f5a4bbd8fd63184577525326123b519429bdc"
PERMIT2 = "0x000000000022d473030f116ddee9f6b43ac78ba3"

SMART_ACCOUNT = "0x1111111111111111111111111111111111111111"
USER = "0x2222222222222222222222222222222222222222"
SESSION_KEY = "0x3333333333333333333333333333333333333333"
DESTINATION = "0x4444444444444444444444444444444444444444"


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pool() -> PoolConfig:
    return PoolConfig(
        token0=TokenConfig(symbol="WBTC", address=TOKEN0, decimals=8),
        token1=TokenConfig(symbol="cbBTC", address=TOKEN1, decimals=8),
        stable=TokenConfig(symbol="USDC", address=STABLE, decimals=6),
        position_manager=POSITION_MANAGER,
        permit2=PERMIT2,
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_subscription() -> Subscription:
    return Subscription(
        smart_account=SMART_ACCOUNT,
        user_address=USER,
        session_key_address=SESSION_KEY,
        serialized_session_key="serialized-key",
        agent_ens="yield.prismos.eth",
        subscribed_at=1_700_000_000.0,
        distribution_address=DESTINATION,
        compound_percent=70,
        distribute_percent=30,
        position_token_id="42",
    )


@pytest.fixture()
def sample_position() -> PositionSnapshot:
    return PositionSnapshot(
        token0_balance=1_000_000,  # 0.01 WBTC
        token1_balance=1_000_000,  # 0.01 cbBTC
        stable_balance=0,
        has_position=True,
        position_count=1,
        wallet_value_usd=2000.0,
        reference_price=100_000.0,
    )


@pytest.fixture()
def sample_market() -> MarketData:
    return MarketData(
        reference_price=100_000.0,
        token0_price=100_000.0,
        token1_price=100_000.0,
        spread_pct=0.0,
        fetched_at=time.time(),
    )


@pytest.fixture()
def sample_profile() -> AgentProfile:
    return AgentProfile(name="Yield Agent", strategy_id="wbtc-cbbtc")


@pytest.fixture()
def sample_context(
    sample_position: PositionSnapshot,
    sample_profile: AgentProfile,
    sample_market: MarketData,
    sample_subscription: Subscription,
) -> DecisionContext:
    return DecisionContext(
        position=sample_position,
        agent_profile=sample_profile,
        market=sample_market,
        subscription=sample_subscription,
        timestamp=time.time(),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    scheduler:
      position_check_minutes: 30
      settlement_interval_hours: 12
    fees:
      settlement_threshold_usd: 5.0
    ledger:
      skip_payment: "false"
    agent:
      api_key: "${TEST_ANTHROPIC_KEY}"
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    pool:
      token0: {symbol: WBTC, address: "0xaaa", decimals: 8}
      token1: {symbol: cbBTC, address: "0xbbb", decimals: 8}
      position_manager: "0xccc"
    store:
      subscriptions_path: /tmp/subs.json
    agents:
      Yield.Prismos.eth:
        name: Yield Agent
        fee_collect_bps: 500
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
