"""Market data protocol — cached prices, yields and TVL."""
from typing import Protocol

from ..models import MarketData


class MarketDataSource(Protocol):
    """Abstract interface for fetching (possibly stale) market data."""

    async def get_market_data(self) -> MarketData: ...
