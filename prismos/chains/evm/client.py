"""EVM JSON-RPC client with fallback support."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi
from eth_abi import decode, encode
from eth_utils import keccak

from ...config import ChainConfig

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = keccak(text="balanceOf(address)")[:4]


class EvmClient:
    """EVM JSON-RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RuntimeError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    async def eth_call(self, to: str, data: str) -> str:
        """Read-only contract call against the latest block."""
        return await self.rpc_call("eth_call", [{"to": to, "data": data}, "latest"])

    async def balance_of(self, contract: str, account: str) -> int:
        """``balanceOf(account)`` for an ERC-20 or ERC-721 contract."""
        data = "0x" + (BALANCE_OF_SELECTOR + encode(["address"], [account])).hex()
        raw = await self.eth_call(contract, data)
        if not raw or raw == "0x":
            return 0
        (balance,) = decode(["uint256"], bytes.fromhex(raw[2:]))
        return balance
