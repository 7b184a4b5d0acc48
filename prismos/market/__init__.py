"""Market data sources."""
from .defillama import DefiLlamaClient

__all__ = ["DefiLlamaClient"]
