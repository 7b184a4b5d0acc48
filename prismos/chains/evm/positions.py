"""Position reader for smart accounts holding the managed pool's assets."""
from __future__ import annotations

import asyncio
import logging
import ssl

import aiohttp
import certifi

from ...config import ChainConfig, PoolConfig
from ...models import PositionSnapshot
from .client import EvmClient

logger = logging.getLogger(__name__)


class EvmPositionReader:
    """Snapshots token balances and the position-NFT count of an account."""

    def __init__(
        self, client: EvmClient, pool: PoolConfig, chain: ChainConfig
    ) -> None:
        self._client = client
        self._pool = pool
        self._price_url = chain.price_url
        self._fallback_price = chain.fallback_price

    async def fetch_reference_price(self) -> float:
        """USD price of the pool's underlying asset; falls back on any failure."""
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    self._price_url, timeout=aiohttp.ClientTimeout(total=10)
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching reference price: HTTP %s", response.status
                        )
                        return self._fallback_price
                    data = await response.json()
                    return float(data.get("bitcoin", {}).get("usd", self._fallback_price))
        except Exception as e:
            logger.error("Error fetching reference price: %s", e)
            return self._fallback_price

    async def _position_count(self, address: str) -> int:
        if not self._pool.position_manager:
            return 0
        try:
            return await self._client.balance_of(self._pool.position_manager, address)
        except Exception as e:
            logger.warning("Position NFT balance unavailable for %s: %s", address, e)
            return 0

    async def get_position(self, address: str) -> PositionSnapshot:
        pool = self._pool
        token0, token1, stable, count, price = await asyncio.gather(
            self._client.balance_of(pool.token0.address, address),
            self._client.balance_of(pool.token1.address, address),
            self._stable_balance(address),
            self._position_count(address),
            self.fetch_reference_price(),
        )

        wallet_value = (
            token0 / 10**pool.token0.decimals * price
            + token1 / 10**pool.token1.decimals * price
            + stable / 10**pool.stable.decimals
        )
        return PositionSnapshot(
            token0_balance=token0,
            token1_balance=token1,
            stable_balance=stable,
            has_position=count > 0,
            position_count=count,
            wallet_value_usd=wallet_value,
            reference_price=price,
        )

    async def _stable_balance(self, address: str) -> int:
        if not self._pool.stable.address:
            return 0
        return await self._client.balance_of(self._pool.stable.address, address)
