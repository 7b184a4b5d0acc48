"""Position reader protocol — on-chain holdings snapshot."""
from typing import Protocol

from ..models import PositionSnapshot


class PositionReader(Protocol):
    """Reads a smart account's pool-asset balances and position count.

    Must not raise for an account with zero balances.
    """

    async def get_position(self, address: str) -> PositionSnapshot: ...
