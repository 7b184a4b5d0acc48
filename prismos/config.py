"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import AgentProfile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SchedulerConfig:
    position_check_minutes: int = 60
    settlement_interval_hours: int = 24


@dataclass(frozen=True)
class LoopConfig:
    max_consecutive_errors: int = 3


@dataclass(frozen=True)
class FeesConfig:
    settlement_threshold_usd: float = 10.0


@dataclass(frozen=True)
class LedgerConfig:
    initial_credit: int = 10_000_000
    min_signature_length: int = 10
    skip_payment: bool = False
    token: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
    recipient: str = "0xF4874485E3e8844b04577A646EdB0a9E6a5E0c68"


@dataclass(frozen=True)
class AgentConfig:
    api_key: str = ""
    model: str = "claude-haiku-4-5"
    max_tokens: int = 1024
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class MarketConfig:
    prices_url: str = "https://coins.llama.fi/prices/current"
    yields_url: str = "https://yields.llama.fi/pools"
    tvl_url: str = "https://api.llama.fi/protocol"
    protocol: str = "uniswap"
    chain: str = "Base"
    coin_ids: dict[str, str] = field(default_factory=dict)
    price_timeout: float = 10.0
    yields_timeout: float = 15.0
    tvl_timeout: float = 10.0
    cache_ttl_seconds: float = 300.0


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 15
    price_url: str = "https://api.coingecko.com/api/v3/simple/price?ids=bitcoin&vs_currencies=usd"
    fallback_price: float = 100000.0


@dataclass(frozen=True)
class TokenConfig:
    symbol: str = ""
    address: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class PoolConfig:
    token0: TokenConfig = field(default_factory=TokenConfig)
    token1: TokenConfig = field(default_factory=TokenConfig)
    stable: TokenConfig = field(default_factory=TokenConfig)
    fee: int = 100
    tick_spacing: int = 1
    hooks: str = "0x0000000000000000000000000000000000000000"
    tick_lower: int = -50000
    tick_upper: int = 50000
    position_manager: str = ""
    permit2: str = "0x000000000022D473030F116dDEE9F6B43aC78BA3"


@dataclass(frozen=True)
class ExecutorConfig:
    relay_url: str = ""
    timeout_seconds: float = 300.0


@dataclass(frozen=True)
class StoreConfig:
    subscriptions_path: str = "data/subscriptions.json"


@dataclass(frozen=True)
class AppConfig:
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    fees: FeesConfig = field(default_factory=FeesConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    agents: dict[str, AgentProfile] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _as_bool(value: Any) -> bool:
    # Interpolated env values arrive as strings.
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_scheduler(raw: dict[str, Any]) -> SchedulerConfig:
    return SchedulerConfig(
        position_check_minutes=int(raw.get("position_check_minutes", 60)),
        settlement_interval_hours=int(raw.get("settlement_interval_hours", 24)),
    )


def _build_ledger(raw: dict[str, Any]) -> LedgerConfig:
    return LedgerConfig(
        initial_credit=int(raw.get("initial_credit", 10_000_000)),
        min_signature_length=int(raw.get("min_signature_length", 10)),
        skip_payment=_as_bool(raw.get("skip_payment", False)),
        token=raw.get("token", LedgerConfig.token),
        recipient=raw.get("recipient") or LedgerConfig.recipient,
    )


def _build_agent(raw: dict[str, Any]) -> AgentConfig:
    return AgentConfig(
        api_key=raw.get("api_key", ""),
        model=raw.get("model") or AgentConfig.model,
        max_tokens=int(raw.get("max_tokens", 1024)),
        timeout_seconds=float(raw.get("timeout_seconds", 60.0)),
    )


def _build_market(raw: dict[str, Any]) -> MarketConfig:
    return MarketConfig(
        prices_url=raw.get("prices_url", MarketConfig.prices_url),
        yields_url=raw.get("yields_url", MarketConfig.yields_url),
        tvl_url=raw.get("tvl_url", MarketConfig.tvl_url),
        protocol=raw.get("protocol", "uniswap"),
        chain=raw.get("chain", "Base"),
        coin_ids=dict(raw.get("coin_ids", {})),
        price_timeout=float(raw.get("price_timeout", 10.0)),
        yields_timeout=float(raw.get("yields_timeout", 15.0)),
        tvl_timeout=float(raw.get("tvl_timeout", 10.0)),
        cache_ttl_seconds=float(raw.get("cache_ttl_seconds", 300.0)),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 15)),
        price_url=raw.get("price_url", ChainConfig.price_url),
        fallback_price=float(raw.get("fallback_price", 100000.0)),
    )


def _build_token(raw: dict[str, Any]) -> TokenConfig:
    return TokenConfig(
        symbol=raw.get("symbol", ""),
        address=raw.get("address", ""),
        decimals=int(raw.get("decimals", 18)),
    )


def _build_pool(raw: dict[str, Any]) -> PoolConfig:
    return PoolConfig(
        token0=_build_token(raw.get("token0", {})),
        token1=_build_token(raw.get("token1", {})),
        stable=_build_token(raw.get("stable", {})),
        fee=int(raw.get("fee", 100)),
        tick_spacing=int(raw.get("tick_spacing", 1)),
        hooks=raw.get("hooks", PoolConfig.hooks),
        tick_lower=int(raw.get("tick_lower", -50000)),
        tick_upper=int(raw.get("tick_upper", 50000)),
        position_manager=raw.get("position_manager", ""),
        permit2=raw.get("permit2", PoolConfig.permit2),
    )


def _build_agents(raw: dict[str, Any]) -> dict[str, AgentProfile]:
    agents: dict[str, AgentProfile] = {}
    for ens, cfg in raw.items():
        cfg = cfg or {}
        agents[ens.lower()] = AgentProfile(
            name=cfg.get("name", ens),
            strategy_id=cfg.get("strategy_id"),
            strategy_risk=cfg.get("strategy_risk"),
            strategy_protocol=cfg.get("strategy_protocol"),
            strategy_pool=cfg.get("strategy_pool"),
            fee_collect_bps=int(cfg.get("fee_collect_bps", 1000)),
            fee_compound_bps=int(cfg.get("fee_compound_bps", 1000)),
            fee_rebalance_bps=int(cfg.get("fee_rebalance_bps", 0)),
            fee_range_adjust_bps=int(cfg.get("fee_range_adjust_bps", 0)),
        )
    return agents


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from the package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        scheduler=_build_scheduler(raw.get("scheduler", {})),
        loop=LoopConfig(
            max_consecutive_errors=int(
                raw.get("loop", {}).get("max_consecutive_errors", 3)
            )
        ),
        fees=FeesConfig(
            settlement_threshold_usd=float(
                raw.get("fees", {}).get("settlement_threshold_usd", 10.0)
            )
        ),
        ledger=_build_ledger(raw.get("ledger", {})),
        agent=_build_agent(raw.get("agent", {})),
        market=_build_market(raw.get("market", {})),
        chain=_build_chain(raw.get("chain", {})),
        pool=_build_pool(raw.get("pool", {})),
        executor=ExecutorConfig(
            relay_url=raw.get("executor", {}).get("relay_url", ""),
            timeout_seconds=float(
                raw.get("executor", {}).get("timeout_seconds", 300.0)
            ),
        ),
        store=StoreConfig(
            subscriptions_path=raw.get("store", {}).get(
                "subscriptions_path", StoreConfig.subscriptions_path
            )
        ),
        agents=_build_agents(raw.get("agents", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if cfg.scheduler.position_check_minutes <= 0:
        raise ValueError("position_check_minutes must be positive")
    if cfg.scheduler.settlement_interval_hours <= 0:
        raise ValueError("settlement_interval_hours must be positive")

    if cfg.fees.settlement_threshold_usd <= 0:
        raise ValueError("settlement_threshold_usd must be positive")
    if cfg.loop.max_consecutive_errors < 1:
        raise ValueError("max_consecutive_errors must be at least 1")

    for name, token in (("token0", cfg.pool.token0), ("token1", cfg.pool.token1)):
        if not token.address:
            raise ValueError(f"Pool {name} has no address")
