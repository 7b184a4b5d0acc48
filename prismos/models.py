"""Data models — value types are frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Literal

SubscriptionStatus = Literal[
    "active", "paused", "pending_deposit", "creating_position", "error", "revoked"
]
DistributionMode = Literal["compound", "distribute", "mixed"]
DecisionSourceTag = Literal["ai", "rules"]

# Actions whose successful execution changes balances and forces a re-snapshot.
STATE_CHANGING_ACTIONS = frozenset({"collect", "compound", "distribute"})


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Subscription:
    """One subscriber's configuration and running totals."""

    smart_account: str
    user_address: str = ""
    session_key_address: str | None = None
    session_private_key: str | None = None
    serialized_session_key: str | None = None
    agent_ens: str = ""
    subscribed_at: float = 0.0
    distribution_address: str = ""
    distribution_mode: DistributionMode = "mixed"
    compound_percent: float = 70
    distribute_percent: float = 30
    destination_chain: int | None = None
    position_token_id: str | None = None
    position_tx_hash: str | None = None
    status: SubscriptionStatus = "active"
    last_action_at: float | None = None
    total_fees_collected: float = 0.0
    total_fees_compounded: float = 0.0
    total_distributed: float = 0.0

    @property
    def key(self) -> str:
        return self.smart_account.lower()


# ---------------------------------------------------------------------------
# Position & market snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionSnapshot:
    """Point-in-time read of a smart account's holdings (raw integer units)."""

    token0_balance: int
    token1_balance: int
    stable_balance: int
    has_position: bool
    position_count: int
    wallet_value_usd: float
    reference_price: float


@dataclass(frozen=True)
class PoolYield:
    pool: str
    chain: str
    project: str
    symbol: str
    tvl_usd: float
    apy: float
    apy_base: float | None = None
    apy_reward: float | None = None


@dataclass(frozen=True)
class MarketData:
    """Cached market snapshot for the managed pool."""

    reference_price: float
    token0_price: float
    token1_price: float
    spread_pct: float
    pool_yield: PoolYield | None = None
    alternative_yields: tuple[PoolYield, ...] = ()
    protocol_tvl: float = 0.0
    fetched_at: float = 0.0


@dataclass(frozen=True)
class AgentProfile:
    """Decision-source configuration published by an agent."""

    name: str | None = None
    strategy_id: str | None = None
    strategy_risk: str | None = None
    strategy_protocol: str | None = None
    strategy_pool: str | None = None
    fee_collect_bps: int = 1000
    fee_compound_bps: int = 1000
    fee_rebalance_bps: int = 0
    fee_range_adjust_bps: int = 0


# ---------------------------------------------------------------------------
# Decisions (one variant per action kind)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AgentDecision:
    action: ClassVar[str] = ""

    reason: str
    confidence: float


@dataclass(frozen=True)
class CollectDecision(AgentDecision):
    action: ClassVar[str] = "collect"

    token_id: str | None = None


@dataclass(frozen=True)
class CompoundDecision(AgentDecision):
    action: ClassVar[str] = "compound"

    percent: float | None = None


@dataclass(frozen=True)
class DistributeDecision(AgentDecision):
    action: ClassVar[str] = "distribute"

    percent: float | None = None
    destination: str | None = None


@dataclass(frozen=True)
class RebalanceDecision(AgentDecision):
    action: ClassVar[str] = "rebalance"

    current_ratio: float | None = None
    target_ratio: float = 0.5


@dataclass(frozen=True)
class AdjustRangeDecision(AgentDecision):
    action: ClassVar[str] = "adjustRange"

    current_spread: float | None = None


@dataclass(frozen=True)
class HoldDecision(AgentDecision):
    action: ClassVar[str] = "hold"


DECISION_TYPES: dict[str, type[AgentDecision]] = {
    cls.action: cls
    for cls in (
        CollectDecision,
        CompoundDecision,
        DistributeDecision,
        RebalanceDecision,
        AdjustRangeDecision,
        HoldDecision,
    )
}


@dataclass(frozen=True)
class AgentResponse:
    decisions: tuple[AgentDecision, ...]
    reasoning: str
    source: DecisionSourceTag

    @property
    def actions(self) -> list[str]:
        return [d.action for d in self.decisions]


@dataclass(frozen=True)
class DecisionContext:
    """Everything the decision source sees for one subscriber on one tick."""

    position: PositionSnapshot
    agent_profile: AgentProfile
    market: MarketData
    subscription: Subscription
    timestamp: float


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Call:
    to: str
    data: str
    value: int = 0


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    tx_hash: str | None = None
    user_op_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    executed: bool
    collected_usd: float | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Fees & settlement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeeEntry:
    agent_ens: str
    smart_account: str
    amount_usd: float
    timestamp: float


@dataclass
class AccumulatedFees:
    """Running total per agent; ``total_usd`` always equals the sum of entries."""

    total_usd: float = 0.0
    entries: list[FeeEntry] = field(default_factory=list)


@dataclass(frozen=True)
class AgentFeeSummary:
    agent_id: str
    total_usd: float
    entry_count: int


@dataclass(frozen=True)
class SettlementSummary:
    agents: tuple[AgentFeeSummary, ...]
    grand_total_usd: float


# ---------------------------------------------------------------------------
# Payment channels
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentProof:
    channel_id: str
    amount: int
    nonce: int
    new_caller_balance: int
    signature: str
    caller: str


@dataclass(frozen=True)
class ChannelState:
    channel_id: str
    nonce: int
    caller_balance: int
    counterparty_balance: int
    last_update: float
    signature: str | None = None
