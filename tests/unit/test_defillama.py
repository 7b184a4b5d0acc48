"""Unit tests for the DefiLlama market data client."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from prismos.config import MarketConfig, PoolConfig
from prismos.market.defillama import DEFAULT_COIN_IDS, DefiLlamaClient

PRICES = {
    "coins": {
        DEFAULT_COIN_IDS["reference"]: {"price": 95000.0},
        DEFAULT_COIN_IDS["token0"]: {"price": 95100.0},
        DEFAULT_COIN_IDS["token1"]: {"price": 95000.0},
    }
}
YIELDS = {
    "data": [
        {"pool": "a", "chain": "Base", "project": "uniswap-v4", "symbol": "WBTC-CBBTC",
         "tvlUsd": 2_000_000, "apy": 3.5},
        {"pool": "b", "chain": "Ethereum", "project": "aave-v3", "symbol": "WBTC",
         "tvlUsd": 500_000_000, "apy": 0.2},
        {"pool": "c", "chain": "Base", "project": "aerodrome", "symbol": "CBBTC-USDC",
         "tvlUsd": 50_000, "apy": 40.0},
        {"pool": "d", "chain": "Base", "project": "morpho", "symbol": "CBBTC",
         "tvlUsd": 10_000_000, "apy": 1.1},
        {"pool": "e", "chain": "Base", "project": "x", "symbol": "ETH-USDC",
         "tvlUsd": 10_000_000, "apy": 12.0},
    ]
}
TVL = {"currentChainTvls": {"Base": 420_000_000.0, "Ethereum": 1.0}}


def _response(status: int, data) -> AsyncMock:
    response = AsyncMock()
    response.status = status
    response.json = AsyncMock(return_value=data)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def _session_for(routes: dict[str, tuple[int, object]]) -> AsyncMock:
    def get(url, **kwargs):
        for prefix, (status, data) in routes.items():
            if url.startswith(prefix):
                return _response(status, data)
        raise AssertionError(f"unexpected url {url}")

    session = AsyncMock()
    session.get = MagicMock(side_effect=get)
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


@pytest.fixture()
def market_config() -> MarketConfig:
    return MarketConfig()


@pytest.fixture()
def client(market_config: MarketConfig, sample_pool: PoolConfig) -> DefiLlamaClient:
    return DefiLlamaClient(market_config, sample_pool)


def _routes(config: MarketConfig, prices=(200, PRICES), yields=(200, YIELDS), tvl=(200, TVL)):
    return {config.prices_url: prices, config.yields_url: yields, config.tvl_url: tvl}


class TestFetches:
    @pytest.mark.asyncio
    async def test_prices(self, client: DefiLlamaClient, market_config: MarketConfig) -> None:
        session = _session_for(_routes(market_config))
        with patch("prismos.market.defillama.aiohttp.ClientSession", return_value=session):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                prices = await client.fetch_prices()
        assert prices == {"reference": 95000.0, "token0": 95100.0, "token1": 95000.0}

    @pytest.mark.asyncio
    async def test_prices_default_on_http_error(
        self, client: DefiLlamaClient, market_config: MarketConfig
    ) -> None:
        session = _session_for(_routes(market_config, prices=(500, None)))
        with patch("prismos.market.defillama.aiohttp.ClientSession", return_value=session):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                prices = await client.fetch_prices()
        assert prices["reference"] == 100000.0

    @pytest.mark.asyncio
    async def test_pool_yields(self, client: DefiLlamaClient, market_config: MarketConfig) -> None:
        session = _session_for(_routes(market_config))
        with patch("prismos.market.defillama.aiohttp.ClientSession", return_value=session):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                managed, alternatives = await client.fetch_pool_yields()

        assert managed is not None and managed.pool == "a"
        # c is below the TVL floor and e is not in the asset family.
        assert [p.pool for p in alternatives] == ["a", "d", "b"]

    @pytest.mark.asyncio
    async def test_tvl_connection_error(self, client: DefiLlamaClient) -> None:
        with patch(
            "prismos.market.defillama.aiohttp.ClientSession",
            side_effect=OSError("connection refused"),
        ):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                assert await client.fetch_protocol_tvl() == 0.0


class TestGetMarketData:
    @pytest.mark.asyncio
    async def test_assembles_and_caches(
        self, client: DefiLlamaClient, market_config: MarketConfig
    ) -> None:
        session = _session_for(_routes(market_config))
        with patch("prismos.market.defillama.aiohttp.ClientSession", return_value=session):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                first = await client.get_market_data()
                second = await client.get_market_data()

        assert first is second
        assert session.get.call_count == 3
        assert first.reference_price == 95000.0
        assert first.spread_pct == pytest.approx(100 / 95000 * 100)
        assert first.protocol_tvl == 420_000_000.0
        assert first.pool_yield is not None

    @pytest.mark.asyncio
    async def test_clear_cache_refetches(
        self, client: DefiLlamaClient, market_config: MarketConfig
    ) -> None:
        session = _session_for(_routes(market_config))
        with patch("prismos.market.defillama.aiohttp.ClientSession", return_value=session):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                await client.get_market_data()
                client.clear_cache()
                await client.get_market_data()

        assert session.get.call_count == 6

    @pytest.mark.asyncio
    async def test_all_sources_down_uses_defaults(self, client: DefiLlamaClient) -> None:
        with patch(
            "prismos.market.defillama.aiohttp.ClientSession",
            side_effect=OSError("offline"),
        ):
            with patch("prismos.market.defillama.aiohttp.TCPConnector"):
                market = await client.get_market_data()

        assert market.reference_price == 100000.0
        assert market.spread_pct == 0.0
        assert market.pool_yield is None
        assert market.alternative_yields == ()
