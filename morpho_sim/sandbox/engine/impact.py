"""APY impact analysis and deposit-size search.

Answers "what happens to the APY if" questions for markets and vaults, and
finds the deposit that moves a vault's net APY by a target amount.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config.settings import Settings

from morpho_sim.core.errors import AllCapsReached, ConvergenceFailure, InvalidApyTarget
from morpho_sim.core.models import Market
from morpho_sim.protocols.morpho.config import (
    APY_SEARCH_MAX_ITERATIONS,
    APY_SEARCH_TOLERANCE,
    APY_ZERO_THRESHOLD,
)
from morpho_sim.sandbox.engine.vault_simulation import VaultSimulation
from morpho_sim.sandbox.models import BorrowApyImpact, SupplyApyImpact, VaultApyImpact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchParams:
    """Bisection parameters for :func:`amount_for_vault_apy_impact`."""

    tolerance: float = APY_SEARCH_TOLERANCE
    max_iterations: int = APY_SEARCH_MAX_ITERATIONS
    zero_threshold: float = APY_ZERO_THRESHOLD

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchParams":
        """Build search parameters from application Settings."""
        return cls(
            tolerance=settings.apy_search_tolerance,
            max_iterations=settings.apy_search_max_iterations,
            zero_threshold=settings.apy_zero_threshold,
        )


# ========== Market impacts ==========


def supply_apy_impact(market: Market, amount: int, timestamp: int) -> SupplyApyImpact:
    """
    Supply APY before and after supplying ``amount`` at ``timestamp``.

    Args:
        market: Market snapshot
        amount: Assets to supply
        timestamp: Unix timestamp in seconds

    Returns:
        SupplyApyImpact with the shares the supply would receive
    """
    apy_before = market.get_supply_apy(timestamp)
    new_market, shares = market.supply(amount, timestamp)
    apy_after = new_market.get_supply_apy(timestamp)

    return SupplyApyImpact(
        apy_before=apy_before,
        apy_after=apy_after,
        apy_delta=apy_after - apy_before,
        shares_received=shares,
    )


def borrow_apy_impact(market: Market, amount: int, timestamp: int) -> BorrowApyImpact:
    """Borrow APY before and after borrowing ``amount`` at ``timestamp``."""
    apy_before = market.get_borrow_apy(timestamp)
    new_market, shares = market.borrow(amount, timestamp)
    apy_after = new_market.get_borrow_apy(timestamp)

    return BorrowApyImpact(
        apy_before=apy_before,
        apy_after=apy_after,
        apy_delta=apy_after - apy_before,
        shares_minted=shares,
    )


# ========== Vault impacts ==========


def vault_deposit_apy_impact(simulation: VaultSimulation, amount: int, timestamp: int) -> VaultApyImpact:
    """Vault net APY before and after depositing ``amount``."""
    apy_before = simulation.get_net_apy(timestamp)
    new_sim, shares = simulation.simulate_deposit(amount, timestamp)
    apy_after = new_sim.get_net_apy(timestamp)

    return VaultApyImpact(
        apy_before=apy_before,
        apy_after=apy_after,
        apy_delta=apy_after - apy_before,
        shares=shares,
    )


def vault_withdraw_apy_impact(simulation: VaultSimulation, shares: int, timestamp: int) -> VaultApyImpact:
    """Vault net APY before and after redeeming ``shares``."""
    apy_before = simulation.get_net_apy(timestamp)
    new_sim, _ = simulation.simulate_withdraw(shares, timestamp)
    apy_after = new_sim.get_net_apy(timestamp)

    return VaultApyImpact(
        apy_before=apy_before,
        apy_after=apy_after,
        apy_delta=apy_after - apy_before,
        shares=shares,
    )


def amount_for_vault_apy_impact(
    simulation: VaultSimulation,
    target_apy_delta: float,
    timestamp: int,
    params: Optional[SearchParams] = None,
) -> Optional[int]:
    """
    Find the deposit that changes the vault's net APY by ``target_apy_delta``.

    Bisects over ``[0, max_deposit]``. A deposit can only lower the APY, so
    the target must be zero or negative.

    Args:
        simulation: Vault simulation to deposit into
        target_apy_delta: Desired APY change, e.g. -0.001 for -0.1%
        timestamp: Unix timestamp in seconds
        params: Bisection parameters, defaults to module constants

    Returns:
        Deposit amount, or None when the target is unreachable (it would
        push the APY below zero, or the vault has no deposit capacity)

    Raises:
        InvalidApyTarget: If ``target_apy_delta`` is positive
        ConvergenceFailure: If bisection does not converge
    """
    params = params or SearchParams()

    if target_apy_delta > 0.0:
        raise InvalidApyTarget(target_apy_delta)

    if abs(target_apy_delta) < params.zero_threshold:
        return 0

    current_apy = simulation.get_net_apy(timestamp)
    if current_apy + target_apy_delta < 0.0:
        logger.debug(f"Target APY {current_apy + target_apy_delta:.6f} is negative, unreachable")
        return None

    max_deposit = simulation.vault.max_deposit()
    if max_deposit == 0:
        logger.debug(f"Vault {simulation.vault.address} has no deposit capacity")
        return None

    low, high = 0, max_deposit
    for iteration in range(params.max_iterations):
        mid = (low + high) // 2
        if mid == low or mid == high:
            logger.info(f"APY search converged on bounds after {iteration} iterations: {mid}")
            return mid

        try:
            new_sim, _ = simulation.simulate_deposit(mid, timestamp)
        except AllCapsReached:
            high = mid
            continue

        delta = new_sim.get_net_apy(timestamp) - current_apy
        logger.debug(f"APY search iteration {iteration}: amount={mid}, delta={delta:.10f}")

        if abs(delta - target_apy_delta) < params.tolerance:
            logger.info(f"APY search converged after {iteration + 1} iterations: {mid}")
            return mid

        if delta > target_apy_delta:
            low = mid
        else:
            high = mid

    raise ConvergenceFailure(params.max_iterations)
