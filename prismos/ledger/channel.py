"""In-memory payment channel ledger.

Each channel is keyed by ``<caller>:<channelId>`` and tracks a strictly
increasing nonce plus the balances on both sides. The ledger is an explicit
state object owned by the service process; nothing is persisted, so a restart
loses all channel balances.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum

from eth_abi.packed import encode_packed
from eth_utils import keccak, to_bytes

from ..models import ChannelState, PaymentProof

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CREDIT = 10_000_000  # 10 USDC, 6 decimals
DEFAULT_MIN_SIGNATURE_LENGTH = 10


class PaymentRejection(str, Enum):
    """Machine-readable reasons a payment proof was refused."""

    AMOUNT_TOO_LOW = "AMOUNT_TOO_LOW"
    STALE_NONCE = "STALE_NONCE"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    BALANCE_MISMATCH = "BALANCE_MISMATCH"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    reason: PaymentRejection | None = None
    error: str | None = None


def compute_payment_hash(
    channel_id: str, nonce: int, caller_balance: int, counterparty_balance: int
) -> str:
    """Canonical keccak digest a caller signs over for a channel update."""
    packed = encode_packed(
        ["bytes32", "uint256", "uint256", "uint256"],
        [to_bytes(hexstr=channel_id), nonce, caller_balance, counterparty_balance],
    )
    return "0x" + keccak(packed).hex()


def _channel_key(caller: str, channel_id: str) -> str:
    return f"{caller}:{channel_id}"


class ChannelLedger:
    """Verifies payment proofs and applies them to channel state."""

    def __init__(
        self,
        initial_credit: int = DEFAULT_INITIAL_CREDIT,
        min_signature_length: int = DEFAULT_MIN_SIGNATURE_LENGTH,
    ) -> None:
        self.initial_credit = initial_credit
        self.min_signature_length = min_signature_length
        self._channels: dict[str, ChannelState] = {}

    def verify_payment(
        self, proof: PaymentProof, required_amount: int
    ) -> VerificationResult:
        """Check a proof against the channel and apply it on success.

        Rejections never touch stored state. A channel seen for the first time
        is seeded with the initial credit, and that seed is only stored if the
        proof is accepted.
        """
        if proof.amount < required_amount:
            return self._reject(
                PaymentRejection.AMOUNT_TOO_LOW,
                f"Insufficient payment: {proof.amount} < {required_amount}",
            )

        key = _channel_key(proof.caller, proof.channel_id)
        channel = self._channels.get(key)
        if channel is None:
            channel = ChannelState(
                channel_id=proof.channel_id,
                nonce=0,
                caller_balance=self.initial_credit,
                counterparty_balance=0,
                last_update=time.time(),
            )

        if proof.nonce <= channel.nonce:
            return self._reject(
                PaymentRejection.STALE_NONCE,
                f"Invalid nonce: {proof.nonce} <= {channel.nonce}",
            )

        if channel.caller_balance < proof.amount:
            return self._reject(
                PaymentRejection.INSUFFICIENT_BALANCE,
                f"Insufficient channel balance: {channel.caller_balance}",
            )

        expected_balance = channel.caller_balance - proof.amount
        if proof.new_caller_balance != expected_balance:
            return self._reject(
                PaymentRejection.BALANCE_MISMATCH,
                f"Balance mismatch: {proof.new_caller_balance} != {expected_balance}",
            )

        # TODO: verify an ECDSA signature over compute_payment_hash() instead of
        # checking length only.
        if len(proof.signature) < self.min_signature_length:
            return self._reject(PaymentRejection.INVALID_SIGNATURE, "Invalid signature")

        self._channels[key] = replace(
            channel,
            nonce=proof.nonce,
            caller_balance=proof.new_caller_balance,
            counterparty_balance=channel.counterparty_balance + proof.amount,
            last_update=time.time(),
            signature=proof.signature,
        )
        logger.debug(
            "Payment accepted on %s: amount=%d nonce=%d", key, proof.amount, proof.nonce
        )
        return VerificationResult(valid=True)

    @staticmethod
    def _reject(reason: PaymentRejection, message: str) -> VerificationResult:
        logger.info("Payment rejected (%s): %s", reason.value, message)
        return VerificationResult(valid=False, reason=reason, error=message)

    def get_channel_state(self, caller: str, channel_id: str) -> ChannelState | None:
        return self._channels.get(_channel_key(caller, channel_id))

    def get_all_channels(self) -> dict[str, ChannelState]:
        return dict(self._channels)

    def create_channel(
        self, caller: str, initial_deposit: int
    ) -> tuple[str, ChannelState]:
        """Open a channel for ``caller`` seeded with ``initial_deposit``."""
        now = time.time()
        channel_id = "0x" + keccak(
            encode_packed(["address", "uint256"], [caller, int(now * 1000)])
        ).hex()
        state = ChannelState(
            channel_id=channel_id,
            nonce=0,
            caller_balance=initial_deposit,
            counterparty_balance=0,
            last_update=now,
        )
        self._channels[_channel_key(caller, channel_id)] = state
        logger.info("Created channel %s for %s", channel_id, caller)
        return channel_id, state
