"""Calldata for Uniswap V4 position management and ERC-20 transfers.

Position changes go through ``PositionManager.modifyLiquidities(bytes,uint256)``
whose payload is ``abi.encode(bytes actions, bytes[] params)``, one packed
action byte per params entry.
"""
from __future__ import annotations

import time
from enum import IntEnum
from typing import Any, Callable

from eth_abi import encode
from eth_utils import keccak

from ...config import PoolConfig
from ...models import Call

MAX_UINT160 = 2**160 - 1
DEADLINE_SECONDS = 3600
PERMIT2_EXPIRATION_SECONDS = 365 * 86400
# Placeholder liquidity when no token0 amount is supplied.
MIN_LIQUIDITY = 1000


class V4Action(IntEnum):
    DECREASE_LIQUIDITY = 0x01
    MINT_POSITION = 0x02
    TAKE_PAIR = 0x11
    CLOSE_CURRENCY = 0x12


def encode_function_call(signature: str, arg_types: list[str], args: list[Any]) -> str:
    selector = keccak(text=signature)[:4]
    return "0x" + (selector + encode(arg_types, args)).hex()


def encode_unlock_data(actions: list[V4Action], params: list[bytes]) -> bytes:
    packed = bytes(int(a) for a in actions)
    return encode(["bytes", "bytes[]"], [packed, params])


class UniswapV4CalldataBuilder:
    """Builds calls against the configured pool. Pure apart from the clock."""

    def __init__(
        self, pool: PoolConfig, clock: Callable[[], float] = time.time
    ) -> None:
        self._pool = pool
        self._clock = clock

    def _modify_liquidities(self, actions: list[V4Action], params: list[bytes]) -> Call:
        deadline = int(self._clock()) + DEADLINE_SECONDS
        return Call(
            to=self._pool.position_manager,
            data=encode_function_call(
                "modifyLiquidities(bytes,uint256)",
                ["bytes", "uint256"],
                [encode_unlock_data(actions, params), deadline],
            ),
        )

    def build_collect_calls(self, token_id: str, recipient: str) -> list[Call]:
        """Decrease liquidity by zero and take both currencies to ``recipient``."""
        pool = self._pool
        decrease = encode(
            ["uint256", "uint256", "uint128", "uint128", "bytes"],
            [int(token_id), 0, 0, 0, b""],
        )
        take = encode(
            ["address", "address", "address"],
            [pool.token0.address, pool.token1.address, recipient],
        )
        return [
            self._modify_liquidities(
                [V4Action.DECREASE_LIQUIDITY, V4Action.TAKE_PAIR], [decrease, take]
            )
        ]

    def build_mint_calls(
        self,
        amount0: int,
        amount1: int,
        recipient: str,
        tick_lower: int | None = None,
        tick_upper: int | None = None,
    ) -> list[Call]:
        """Approve both tokens through Permit2, then mint a new position."""
        pool = self._pool
        tick_lower = pool.tick_lower if tick_lower is None else tick_lower
        tick_upper = pool.tick_upper if tick_upper is None else tick_upper
        expiration = int(self._clock()) + PERMIT2_EXPIRATION_SECONDS

        calls: list[Call] = []
        for token, amount in ((pool.token0, amount0), (pool.token1, amount1)):
            calls.append(
                Call(
                    to=token.address,
                    data=encode_function_call(
                        "approve(address,uint256)",
                        ["address", "uint256"],
                        [pool.permit2, amount],
                    ),
                )
            )
            calls.append(
                Call(
                    to=pool.permit2,
                    data=encode_function_call(
                        "approve(address,address,uint160,uint48)",
                        ["address", "address", "uint160", "uint48"],
                        [token.address, pool.position_manager, MAX_UINT160, expiration],
                    ),
                )
            )

        liquidity = amount0 if amount0 > 0 else MIN_LIQUIDITY
        mint = encode(
            [
                "address", "address", "uint24", "int24", "address",
                "int24", "int24", "uint256", "uint128", "uint128", "address", "bytes",
            ],
            [
                pool.token0.address,
                pool.token1.address,
                pool.fee,
                pool.tick_spacing,
                pool.hooks,
                tick_lower,
                tick_upper,
                liquidity,
                amount0,
                amount1,
                recipient,
                b"",
            ],
        )
        close0 = encode(["address"], [pool.token0.address])
        close1 = encode(["address"], [pool.token1.address])
        calls.append(
            self._modify_liquidities(
                [V4Action.MINT_POSITION, V4Action.CLOSE_CURRENCY, V4Action.CLOSE_CURRENCY],
                [mint, close0, close1],
            )
        )
        return calls

    def build_transfer_call(self, token: str, to: str, amount: int) -> Call:
        return Call(
            to=token,
            data=encode_function_call(
                "transfer(address,uint256)", ["address", "uint256"], [to, amount]
            ),
        )
