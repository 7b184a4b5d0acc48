"""Off-chain payment channel ledger and per-endpoint pricing."""
from .channel import ChannelLedger, PaymentRejection, VerificationResult, compute_payment_hash
from .header import format_payment_header, parse_payment_header
from .pricing import (
    ENDPOINT_PRICES,
    GateDecision,
    PaymentGate,
    generate_receipt,
    required_amount,
)

__all__ = [
    "ChannelLedger",
    "ENDPOINT_PRICES",
    "GateDecision",
    "PaymentGate",
    "PaymentRejection",
    "VerificationResult",
    "compute_payment_hash",
    "format_payment_header",
    "generate_receipt",
    "parse_payment_header",
    "required_amount",
]
