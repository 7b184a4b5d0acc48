"""Settlement strategy protocol — flushes accumulated fees somewhere final."""
from typing import Protocol

from ..models import SettlementSummary


class SettlementStrategy(Protocol):
    """Raises if the flush did not complete; fees are then kept for the next run."""

    async def settle(self, summary: SettlementSummary) -> None: ...
