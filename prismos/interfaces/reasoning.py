"""Reasoning client protocol — external decision model."""
from typing import Any, Protocol

from ..models import DecisionContext


class ReasoningClient(Protocol):
    """Returns the model's raw ``{"decisions": [...], "reasoning": str}`` output.

    Raises on transport failure or when the model produced no decision payload.
    """

    async def decide(self, context: DecisionContext) -> dict[str, Any]: ...
