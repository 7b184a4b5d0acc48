"""Uniswap V4 position-manager calldata."""
from .calldata import UniswapV4CalldataBuilder, V4Action

__all__ = ["UniswapV4CalldataBuilder", "V4Action"]
