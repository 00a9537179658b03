"""Simulation engine components."""

from .vault_simulation import VaultSimulation, ReallocationStep
from .impact import (
    SearchParams,
    supply_apy_impact,
    borrow_apy_impact,
    vault_deposit_apy_impact,
    vault_withdraw_apy_impact,
    amount_for_vault_apy_impact,
)
from .allocator import (
    rank_markets_by_supply_apy,
    rank_markets_by_borrow_apy,
    find_best_market_for_supply,
    find_optimal_market_allocation,
    rank_vaults_by_apy,
    find_best_vault_for_deposit,
)

__all__ = [
    "VaultSimulation",
    "ReallocationStep",
    "SearchParams",
    "supply_apy_impact",
    "borrow_apy_impact",
    "vault_deposit_apy_impact",
    "vault_withdraw_apy_impact",
    "amount_for_vault_apy_impact",
    "rank_markets_by_supply_apy",
    "rank_markets_by_borrow_apy",
    "find_best_market_for_supply",
    "find_optimal_market_allocation",
    "rank_vaults_by_apy",
    "find_best_vault_for_deposit",
]
