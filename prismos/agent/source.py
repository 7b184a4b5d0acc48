"""Decision source — asks the reasoning client, falls back to rules."""
from __future__ import annotations

import logging

from ..interfaces.reasoning import ReasoningClient
from ..models import AgentResponse, DecisionContext
from .rules import rule_based_decisions
from .translate import translate_decisions

logger = logging.getLogger(__name__)


class DecisionSource:
    """Produces the ordered decision plan for one subscriber on one tick.

    ``client`` is ``None`` when no model credential is configured, in which
    case every plan comes from the rules.
    """

    def __init__(
        self,
        client: ReasoningClient | None = None,
        decimals: tuple[int, int] = (8, 8),
    ) -> None:
        self._client = client
        self._decimals = decimals

    def _rules(self, ctx: DecisionContext) -> AgentResponse:
        return rule_based_decisions(ctx, self._decimals)

    async def get_agent_decisions(self, ctx: DecisionContext) -> AgentResponse:
        """Never raises."""
        if self._client is None:
            logger.info("No reasoning client configured, using rule-based decisions")
            return self._rules(ctx)

        try:
            raw = await self._client.decide(ctx)
            if not isinstance(raw, dict):
                raw = {}
            decisions = translate_decisions(raw.get("decisions"))
        except Exception as e:
            logger.warning("Reasoning client failed, falling back to rules: %s", e)
            return self._rules(ctx)

        if not decisions:
            logger.warning("No valid decisions from reasoning client, falling back to rules")
            return self._rules(ctx)

        reasoning = raw.get("reasoning")
        response = AgentResponse(
            decisions=tuple(decisions),
            reasoning=reasoning if isinstance(reasoning, str) and reasoning else "AI-generated decisions",
            source="ai",
        )
        logger.info("AI decisions: %s", " -> ".join(response.actions))
        return response
