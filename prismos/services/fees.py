"""In-memory fee accumulator, one running total per agent."""
from __future__ import annotations

import logging
import time
from dataclasses import replace

from ..models import AccumulatedFees, AgentFeeSummary, FeeEntry

logger = logging.getLogger(__name__)

DEFAULT_SETTLEMENT_THRESHOLD_USD = 10.0


def summarize(fees: dict[str, AccumulatedFees]) -> list[AgentFeeSummary]:
    return [
        AgentFeeSummary(
            agent_id=agent, total_usd=acc.total_usd, entry_count=len(acc.entries)
        )
        for agent, acc in fees.items()
    ]


class FeeAccumulator:
    """Tracks agent fees earned from collected position fees.

    Any single agent reaching the threshold makes :meth:`should_settle` true,
    and a settlement pass then flushes every agent.
    """

    def __init__(
        self, settlement_threshold_usd: float = DEFAULT_SETTLEMENT_THRESHOLD_USD
    ) -> None:
        self.settlement_threshold_usd = settlement_threshold_usd
        self._fees: dict[str, AccumulatedFees] = {}

    def track_fee(self, agent_id: str, smart_account: str, amount_usd: float) -> None:
        key = agent_id.lower()
        entry = FeeEntry(
            agent_ens=key,
            smart_account=smart_account,
            amount_usd=amount_usd,
            timestamp=time.time(),
        )
        acc = self._fees.setdefault(key, AccumulatedFees())
        acc.entries.append(entry)
        acc.total_usd += amount_usd
        logger.info(
            "Fee tracked for %s: $%.4f (total $%.4f)", key, amount_usd, acc.total_usd
        )

    def should_settle(self) -> bool:
        return any(
            acc.total_usd >= self.settlement_threshold_usd
            for acc in self._fees.values()
        )

    def get_accumulated_fees(self) -> dict[str, AccumulatedFees]:
        """Snapshot of every agent's fees; mutating it does not affect the accumulator."""
        return {
            agent: replace(acc, entries=list(acc.entries))
            for agent, acc in self._fees.items()
        }

    def get_fee_summary(self) -> list[AgentFeeSummary]:
        return summarize(self._fees)

    def clear_accumulated_fees(self) -> None:
        self._fees.clear()

    def remove_settled(self, settled: dict[str, AccumulatedFees]) -> None:
        """Drop the entries in ``settled`` and keep anything tracked since.

        ``settled`` is a snapshot taken with :meth:`get_accumulated_fees`.
        """
        for agent, snapshot in settled.items():
            acc = self._fees.get(agent)
            if acc is None:
                continue
            done = {id(e) for e in snapshot.entries}
            acc.entries = [e for e in acc.entries if id(e) not in done]
            acc.total_usd = sum(e.amount_usd for e in acc.entries)
            if not acc.entries:
                del self._fees[agent]
