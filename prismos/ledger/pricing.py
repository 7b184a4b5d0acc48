"""Per-endpoint pricing and the payment gate in front of priced endpoints."""
from __future__ import annotations

import logging
import math
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..config import LedgerConfig
from .channel import ChannelLedger
from .header import HEADER_FORMAT, parse_payment_header

logger = logging.getLogger(__name__)

# USD price per call.
ENDPOINT_PRICES: dict[str, float] = {
    "/api/subscribers": 0.001,
    "/api/subscribe": 0.001,
    "/api/position": 0.005,
    "/api/build": 0.01,
    "/api/build/settle": 0.01,
}

STABLE_DECIMALS = 6


def required_amount(price_usd: float) -> int:
    """USD price -> raw stable-token units."""
    return math.floor(price_usd * 10**STABLE_DECIMALS)


def _payment_id() -> str:
    return f"pay_{int(time.time() * 1000):x}_{secrets.token_hex(3)}"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of authorizing one request.

    ``status`` is 200 when the request may proceed, otherwise the HTTP status
    the caller should answer with and ``body`` is the structured error.
    """

    status: int
    payment_id: str | None = None
    price: float | None = None
    bypassed: bool = False
    caller: str | None = None
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.status == 200


class PaymentGate:
    """Decides whether a request to a priced endpoint has been paid for."""

    def __init__(
        self,
        ledger: ChannelLedger,
        config: LedgerConfig,
        prices: dict[str, float] | None = None,
    ) -> None:
        self._ledger = ledger
        self._config = config
        self._prices = dict(ENDPOINT_PRICES if prices is None else prices)

    def payment_requirements(self, endpoint: str) -> dict[str, Any]:
        return {
            "price": self._prices.get(endpoint, 0.01),
            "token": self._config.token,
            "recipient": self._config.recipient,
            "endpoint": endpoint,
        }

    def authorize(self, endpoint: str, header: str | None) -> GateDecision:
        price = self._prices.get(endpoint)
        if not price:
            return GateDecision(status=200)

        if self._config.skip_payment:
            return GateDecision(
                status=200, payment_id=f"dev_{_payment_id()}", price=price, bypassed=True
            )

        if not header:
            return GateDecision(
                status=402,
                body={
                    "error": "Payment Required",
                    "code": 402,
                    "payment": self.payment_requirements(endpoint),
                    "message": "Include X-Payment header with valid state channel payment",
                },
            )

        proof = parse_payment_header(header)
        if proof is None:
            return GateDecision(
                status=400,
                body={
                    "error": "Invalid Payment Format",
                    "code": 400,
                    "expected": HEADER_FORMAT,
                },
            )

        result = self._ledger.verify_payment(proof, required_amount(price))
        if not result.valid:
            return GateDecision(
                status=402,
                body={
                    "error": "Payment Verification Failed",
                    "code": 402,
                    "reason": result.reason.value if result.reason else None,
                    "message": result.error,
                    "payment": self.payment_requirements(endpoint),
                },
            )

        return GateDecision(
            status=200, payment_id=_payment_id(), price=price, caller=proof.caller
        )


def generate_receipt(
    payment_id: str | None,
    endpoint: str,
    amount: float,
    actions: list[str] | None = None,
) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "id": payment_id or f"receipt_{int(now.timestamp() * 1000)}",
        "timestamp": now.isoformat(),
        "endpoint": endpoint,
        "amount": f"{amount:.6f}",
        "currency": "USDC",
        "status": "paid",
        "actions": actions,
    }
