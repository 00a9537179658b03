"""Sandbox module for what-if simulation of vaults and markets."""

from .engine import VaultSimulation, ReallocationStep
from .models import (
    SupplyApyImpact,
    BorrowApyImpact,
    VaultApyImpact,
    MarketRanking,
    VaultRanking,
    OptimalAllocation,
)

__all__ = [
    "VaultSimulation",
    "ReallocationStep",
    "SupplyApyImpact",
    "BorrowApyImpact",
    "VaultApyImpact",
    "MarketRanking",
    "VaultRanking",
    "OptimalAllocation",
]
