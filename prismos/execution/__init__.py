"""Delegated-key submission."""
from .relay import RelaySubmitter

__all__ = ["RelaySubmitter"]
