"""Sandbox result models."""

from .impact import SupplyApyImpact, BorrowApyImpact, VaultApyImpact
from .allocation import MarketRanking, VaultRanking, OptimalAllocation

__all__ = [
    "SupplyApyImpact",
    "BorrowApyImpact",
    "VaultApyImpact",
    "MarketRanking",
    "VaultRanking",
    "OptimalAllocation",
]
