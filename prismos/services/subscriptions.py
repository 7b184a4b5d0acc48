"""Subscription lifecycle (subscribe, revoke) and subscriber listings."""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any

from eth_utils import is_address

from ..interfaces.subscription_store import SubscriptionStore
from ..models import DistributionMode, Subscription

logger = logging.getLogger(__name__)

DEFAULT_COMPOUND_PERCENT = 70
_REQUIRED_FIELDS = (
    "userAddress",
    "smartAccount",
    "sessionKeyAddress",
    "serializedSessionKey",
    "agentEns",
)
_ADDRESS_FIELDS = ("userAddress", "smartAccount", "sessionKeyAddress")


class SubscriptionError(Exception):
    """Client-facing error with a stable machine-readable ``code``."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _invalid(message: str) -> SubscriptionError:
    return SubscriptionError("INVALID_REQUEST", message)


def distribution_mode(compound_percent: float) -> DistributionMode:
    if compound_percent >= 90:
        return "compound"
    if compound_percent <= 10:
        return "distribute"
    return "mixed"


def _validate_subscribe(request: Any) -> dict[str, Any]:
    if not isinstance(request, dict):
        raise _invalid("Request body must be an object")
    for name in _REQUIRED_FIELDS:
        value = request.get(name)
        if not value or not isinstance(value, str):
            raise _invalid(f"Missing or invalid field: {name}")
    for name in _ADDRESS_FIELDS:
        if not is_address(request[name]):
            raise _invalid(f"Invalid address: {name}")

    config = request.get("config") or {}
    if not isinstance(config, dict):
        raise _invalid("config must be an object")
    compound = config.get("compound", DEFAULT_COMPOUND_PERCENT)
    if isinstance(compound, bool) or not isinstance(compound, (int, float)):
        raise _invalid("config.compound must be a number")
    if not 0 <= compound <= 100:
        raise _invalid("config.compound must be between 0 and 100")
    destination = config.get("destination")
    if destination and not is_address(destination):
        raise _invalid("Invalid address: config.destination")
    return config


async def subscribe(
    store: SubscriptionStore, request: dict[str, Any]
) -> tuple[Subscription, bool]:
    """Create or update a subscription from a client request.

    Returns the stored subscription and whether it was newly created.
    """
    config = _validate_subscribe(request)

    compound = config.get("compound", DEFAULT_COMPOUND_PERCENT)
    dest_chain = config.get("destChain")
    smart_account = request["smartAccount"]

    fields: dict[str, Any] = {
        "user_address": request["userAddress"],
        "session_key_address": request["sessionKeyAddress"],
        "serialized_session_key": request["serializedSessionKey"],
        "agent_ens": request["agentEns"],
        "distribution_mode": distribution_mode(compound),
        "compound_percent": compound,
        "distribute_percent": 100 - compound,
        "distribution_address": config.get("destination") or request["userAddress"],
        "destination_chain": int(dest_chain) if dest_chain else None,
        "status": "active",
    }

    existing = await store.get(smart_account)
    if existing is not None:
        if fields["destination_chain"] is None:
            fields["destination_chain"] = existing.destination_chain
        subscription = replace(existing, **fields)
    else:
        subscription = Subscription(
            smart_account=smart_account, subscribed_at=time.time(), **fields
        )

    await store.save(subscription)
    logger.info("%s subscription %s", "Updated" if existing else "Created", smart_account)
    return subscription, existing is None


async def revoke(
    store: SubscriptionStore, smart_account: str, user_address: str
) -> Subscription:
    """Revoke a subscription on behalf of its owner and clear its key material."""
    if not is_address(smart_account) or not is_address(user_address):
        raise _invalid("Invalid address")

    existing = await store.get(smart_account)
    if existing is None:
        raise SubscriptionError("NOT_FOUND", "Subscription not found")
    if existing.user_address.lower() != user_address.lower():
        raise SubscriptionError("UNAUTHORIZED", "Unauthorized")

    revoked = await store.update(
        smart_account,
        status="revoked",
        session_key_address=None,
        session_private_key=None,
        serialized_session_key=None,
    )
    logger.info("Revoked subscription %s", smart_account)
    return revoked


def subscriber_view(sub: Subscription) -> dict[str, Any]:
    """Agent-facing view of a subscription; session key material is left out."""
    return {
        "smartAccount": sub.smart_account,
        "userAddress": sub.user_address,
        "sessionKeyAddress": sub.session_key_address,
        "agentEns": sub.agent_ens,
        "config": {
            "compound": sub.compound_percent,
            "distribute": sub.distribute_percent,
            "destination": sub.distribution_address or None,
            "destChain": sub.destination_chain or None,
        },
        "positionTokenId": sub.position_token_id,
        "positionTxHash": sub.position_tx_hash,
        "subscribedAt": sub.subscribed_at,
        "lastActionAt": sub.last_action_at,
        "status": sub.status,
    }


def owner_view(sub: Subscription) -> dict[str, Any]:
    """Owner-facing summary with running totals."""
    return {
        "smartAccount": sub.smart_account,
        "agentEns": sub.agent_ens,
        "status": sub.status,
        "subscribedAt": sub.subscribed_at,
        "positionTokenId": sub.position_token_id,
        "totalFeesCollected": sub.total_fees_collected,
        "totalFeesCompounded": sub.total_fees_compounded,
        "totalDistributed": sub.total_distributed,
        "compoundPercent": sub.compound_percent,
        "distributePercent": sub.distribute_percent,
    }


async def list_subscribers(
    store: SubscriptionStore, agent_ens: str | None
) -> list[dict[str, Any]]:
    """Subscribers of one agent, matched case-insensitively."""
    if not agent_ens:
        raise SubscriptionError("MISSING_AGENT", "Missing agent")
    wanted = agent_ens.lower()
    return [
        subscriber_view(s)
        for s in await store.get_all()
        if s.agent_ens.lower() == wanted
    ]


async def list_user_subscriptions(
    store: SubscriptionStore, user_address: str | None
) -> list[dict[str, Any]]:
    """Every subscription owned by ``user_address``."""
    if not user_address or not is_address(user_address):
        raise SubscriptionError("INVALID_ADDRESS", "Invalid or missing user address")
    wanted = user_address.lower()
    return [
        owner_view(s)
        for s in await store.get_all()
        if s.user_address.lower() == wanted
    ]
