"""DefiLlama market data client — prices, pool yields and protocol TVL.

Every fetch degrades to defaults on failure; the assembled snapshot is cached
in memory for ``cache_ttl_seconds``.
"""
from __future__ import annotations

import asyncio
import logging
import ssl
import time
from typing import Any

import aiohttp
import certifi

from ..config import MarketConfig, PoolConfig
from ..models import MarketData, PoolYield

logger = logging.getLogger(__name__)

DEFAULT_COIN_IDS: dict[str, str] = {
    "reference": "coingecko:bitcoin",
    "token0": "base:0x0555E30da8f98308EdB960aa94C0Db47230d2B9c",
    "token1": "base:0xcbB7C0000aB88B473b1f5aFd9ef808440eed33Bf",
}
DEFAULT_PRICES: dict[str, float] = {
    "reference": 100000.0,
    "token0": 100000.0,
    "token1": 100000.0,
}

# Alternative pools must contain this in their symbol.
ASSET_FAMILY = "btc"
MIN_ALTERNATIVE_TVL = 100_000
MAX_ALTERNATIVES = 5


def _pool_yield(item: dict[str, Any]) -> PoolYield:
    return PoolYield(
        pool=str(item.get("pool", "")),
        chain=str(item.get("chain", "")),
        project=str(item.get("project", "")),
        symbol=str(item.get("symbol", "")),
        tvl_usd=float(item.get("tvlUsd") or 0),
        apy=float(item.get("apy") or 0),
        apy_base=item.get("apyBase"),
        apy_reward=item.get("apyReward"),
    )


class DefiLlamaClient:
    """Fetch market data from the DefiLlama public APIs."""

    def __init__(self, config: MarketConfig, pool: PoolConfig) -> None:
        self._config = config
        self._coin_ids = dict(config.coin_ids or DEFAULT_COIN_IDS)
        self._pool_symbols = (pool.token0.symbol.lower(), pool.token1.symbol.lower())
        self._cache: MarketData | None = None

    def clear_cache(self) -> None:
        self._cache = None

    async def _get_json(self, url: str, timeout: float) -> Any | None:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if response.status != 200:
                    logger.warning("DefiLlama request to %s failed: HTTP %s", url, response.status)
                    return None
                return await response.json()

    async def fetch_prices(self) -> dict[str, float]:
        prices = dict(DEFAULT_PRICES)
        coins = ",".join(self._coin_ids.values())
        url = f"{self._config.prices_url}/{coins}"

        try:
            data = await self._get_json(url, self._config.price_timeout)
        except Exception as e:
            logger.warning("Price fetch error: %s", e)
            return prices
        if not data:
            return prices

        coins_data = data.get("coins", {})
        for name, coin_id in self._coin_ids.items():
            price = coins_data.get(coin_id, {}).get("price")
            if price is not None:
                prices[name] = float(price)
        return prices

    def _is_managed_pool(self, item: dict[str, Any]) -> bool:
        symbol = str(item.get("symbol", "")).lower()
        return (
            str(item.get("chain", "")).lower() == self._config.chain.lower()
            and self._config.protocol in str(item.get("project", "")).lower()
            and all(s and s in symbol for s in self._pool_symbols)
        )

    async def fetch_pool_yields(self) -> tuple[PoolYield | None, tuple[PoolYield, ...]]:
        """Return the managed pool's yield and the top alternative pools by APY."""
        try:
            data = await self._get_json(self._config.yields_url, self._config.yields_timeout)
        except Exception as e:
            logger.warning("Yields fetch error: %s", e)
            return None, ()
        if not data:
            return None, ()

        pools = [p for p in data.get("data", []) if isinstance(p, dict)]

        managed = next((p for p in pools if self._is_managed_pool(p)), None)

        alternatives = sorted(
            (
                p
                for p in pools
                if ASSET_FAMILY in str(p.get("symbol", "")).lower()
                and (p.get("apy") or 0) > 0
                and (p.get("tvlUsd") or 0) > MIN_ALTERNATIVE_TVL
            ),
            key=lambda p: p["apy"],
            reverse=True,
        )[:MAX_ALTERNATIVES]

        return (
            _pool_yield(managed) if managed else None,
            tuple(_pool_yield(p) for p in alternatives),
        )

    async def fetch_protocol_tvl(self) -> float:
        """Protocol TVL on the configured chain."""
        url = f"{self._config.tvl_url}/{self._config.protocol}"
        try:
            data = await self._get_json(url, self._config.tvl_timeout)
        except Exception as e:
            logger.warning("TVL fetch error: %s", e)
            return 0.0
        if not data:
            return 0.0
        return float(data.get("currentChainTvls", {}).get(self._config.chain) or 0)

    async def get_market_data(self) -> MarketData:
        now = time.time()
        if self._cache and now - self._cache.fetched_at < self._config.cache_ttl_seconds:
            return self._cache

        logger.info("Fetching fresh market data")
        prices, (pool_yield, alternatives), tvl = await asyncio.gather(
            self.fetch_prices(), self.fetch_pool_yields(), self.fetch_protocol_tvl()
        )

        token0, token1 = prices["token0"], prices["token1"]
        spread = (token0 - token1) / token1 * 100 if token1 > 0 else 0.0

        self._cache = MarketData(
            reference_price=prices["reference"],
            token0_price=token0,
            token1_price=token1,
            spread_pct=spread,
            pool_yield=pool_yield,
            alternative_yields=alternatives,
            protocol_tvl=tvl,
            fetched_at=time.time(),
        )
        logger.info(
            "Market data: reference=$%.0f spread=%.3f%% pool APY=%s",
            self._cache.reference_price,
            spread,
            f"{pool_yield.apy:.2f}%" if pool_yield else "N/A",
        )
        return self._cache
