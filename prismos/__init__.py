"""PrismOS agent kernel — autonomous liquidity management for delegated accounts."""
