"""EVM chain support."""
from .client import EvmClient
from .positions import EvmPositionReader

__all__ = ["EvmClient", "EvmPositionReader"]
