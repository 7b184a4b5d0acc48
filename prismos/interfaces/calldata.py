"""Calldata builder protocol — pure call construction, no I/O."""
from typing import Protocol

from ..models import Call


class CalldataBuilder(Protocol):
    """Builds contract calls for each state-changing action."""

    def build_collect_calls(self, token_id: str, recipient: str) -> list[Call]: ...

    def build_mint_calls(
        self, amount0: int, amount1: int, recipient: str
    ) -> list[Call]: ...

    def build_transfer_call(self, token: str, to: str, amount: int) -> Call: ...
