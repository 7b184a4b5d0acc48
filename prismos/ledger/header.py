"""Payment header codec.

Format: ``x402:<channelId>:<amount>:<nonce>:<newBalance>:<signature>:<caller>``
"""
from __future__ import annotations

from ..models import PaymentProof

HEADER_PREFIX = "x402:"
HEADER_FORMAT = "x402:<channelId>:<amount>:<nonce>:<newBalance>:<signature>:<callerAddress>"
_FIELD_COUNT = 6


def _parse_uint(raw: str) -> int | None:
    if not raw or not raw.isascii() or not raw.isdigit():
        return None
    return int(raw)


def parse_payment_header(header: str | None) -> PaymentProof | None:
    """Parse a payment header into a proof.

    Returns ``None`` on any structural violation; callers must reject the
    request rather than treat it as unpaid.
    """
    if not header or not header.startswith(HEADER_PREFIX):
        return None

    parts = header[len(HEADER_PREFIX):].split(":")
    if len(parts) != _FIELD_COUNT:
        return None

    channel_id, amount_raw, nonce_raw, balance_raw, signature, caller = parts
    amount = _parse_uint(amount_raw)
    nonce = _parse_uint(nonce_raw)
    balance = _parse_uint(balance_raw)
    if amount is None or nonce is None or balance is None:
        return None
    if not channel_id or not signature or not caller:
        return None

    return PaymentProof(
        channel_id=channel_id,
        amount=amount,
        nonce=nonce,
        new_caller_balance=balance,
        signature=signature,
        caller=caller,
    )


def format_payment_header(proof: PaymentProof) -> str:
    return (
        f"{HEADER_PREFIX}{proof.channel_id}:{proof.amount}:{proof.nonce}:"
        f"{proof.new_caller_balance}:{proof.signature}:{proof.caller}"
    )
