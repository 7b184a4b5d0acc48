"""Translate raw model output into typed decisions.

Entries with an unknown action, a non-string reason, a non-numeric confidence
or a malformed parameter are dropped here rather than carried forward.
"""
from __future__ import annotations

import logging
from typing import Any

from eth_utils import is_address

from ..models import (
    AdjustRangeDecision,
    AgentDecision,
    CollectDecision,
    CompoundDecision,
    DECISION_TYPES,
    DistributeDecision,
    HoldDecision,
    RebalanceDecision,
)

logger = logging.getLogger(__name__)


class _MalformedParam(ValueError):
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number(params: dict[str, Any], key: str) -> float | None:
    value = params.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise _MalformedParam(f"{key} must be numeric, got {value!r}")
    return float(value)


def _string(params: dict[str, Any], key: str) -> str | None:
    value = params.get(key)
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise _MalformedParam(f"{key} must be a string, got {value!r}")
    return value


def _token_id(params: dict[str, Any]) -> str | None:
    value = _string(params, "tokenId")
    if value is not None and not (value.isascii() and value.isdigit()):
        raise _MalformedParam(f"tokenId must be a decimal integer, got {value!r}")
    return value


def _percent(params: dict[str, Any]) -> float | None:
    value = _number(params, "percent")
    if value is not None and not 0 < value <= 100:
        raise _MalformedParam(f"percent must be in (0, 100], got {value!r}")
    return value


def _destination(params: dict[str, Any]) -> str | None:
    value = _string(params, "destination")
    if value is not None and not is_address(value):
        raise _MalformedParam(f"destination is not an address: {value!r}")
    return value


def _build(
    action: str, reason: str, confidence: float, params: dict[str, Any]
) -> AgentDecision:
    if action == "collect":
        return CollectDecision(reason, confidence, token_id=_token_id(params))
    if action == "compound":
        return CompoundDecision(reason, confidence, percent=_percent(params))
    if action == "distribute":
        return DistributeDecision(
            reason,
            confidence,
            percent=_percent(params),
            destination=_destination(params),
        )
    if action == "rebalance":
        target = _number(params, "targetRatio")
        return RebalanceDecision(
            reason,
            confidence,
            current_ratio=_number(params, "currentRatio"),
            target_ratio=0.5 if target is None else target,
        )
    if action == "adjustRange":
        return AdjustRangeDecision(
            reason, confidence, current_spread=_number(params, "currentSpread")
        )
    return HoldDecision(reason, confidence)


def translate_decisions(raw: Any) -> list[AgentDecision]:
    """Convert a raw ``decisions`` array into typed decisions, in order."""
    if not isinstance(raw, list):
        return []

    decisions: list[AgentDecision] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        action = item.get("action")
        reason = item.get("reason")
        confidence = item.get("confidence")
        params = item.get("params") or {}

        if not isinstance(action, str) or action not in DECISION_TYPES:
            logger.debug("Dropping decision with unknown action %r", action)
            continue
        if not isinstance(reason, str) or not _is_number(confidence):
            logger.debug("Dropping %s decision with invalid reason/confidence", action)
            continue
        if not isinstance(params, dict):
            logger.debug("Dropping %s decision with non-object params", action)
            continue

        try:
            decisions.append(_build(action, reason, float(confidence), params))
        except _MalformedParam as e:
            logger.debug("Dropping %s decision: %s", action, e)
    return decisions
