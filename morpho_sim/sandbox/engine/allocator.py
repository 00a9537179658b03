"""Market and vault ranking, and greedy allocation across markets.

Candidates whose simulation fails are skipped (and logged) rather than
failing the whole ranking.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from morpho_sim.core.constants import MAX_UINT256
from morpho_sim.core.errors import SimulationError
from morpho_sim.core.models import Address, Market, MarketId
from morpho_sim.sandbox.engine.impact import supply_apy_impact, vault_deposit_apy_impact
from morpho_sim.sandbox.engine.vault_simulation import VaultSimulation
from morpho_sim.sandbox.models import MarketRanking, OptimalAllocation, VaultRanking

logger = logging.getLogger(__name__)

MarketsInput = Union[Mapping[MarketId, Market], Iterable[Tuple[MarketId, Market]]]


def _market_items(markets: MarketsInput) -> List[Tuple[MarketId, Market]]:
    if isinstance(markets, Mapping):
        return list(markets.items())
    return list(markets)


# ========== Markets ==========


def _rank_markets(markets: MarketsInput, timestamp: int, borrow: bool) -> List[MarketRanking]:
    rankings = []
    for market_id, market in _market_items(markets):
        try:
            apy = market.get_borrow_apy(timestamp) if borrow else market.get_supply_apy(timestamp)
        except SimulationError as e:
            logger.warning(f"Skipping market {market_id} in ranking: {e}")
            continue
        rankings.append(
            MarketRanking(
                market_id=market_id,
                apy=apy,
                liquidity=market.liquidity,
                utilization=market.utilization,
            )
        )
    return rankings


def rank_markets_by_supply_apy(markets: MarketsInput, timestamp: int) -> List[MarketRanking]:
    """Markets sorted by supply APY, highest first."""
    rankings = _rank_markets(markets, timestamp, borrow=False)
    return sorted(rankings, key=lambda r: r.apy, reverse=True)


def rank_markets_by_borrow_apy(markets: MarketsInput, timestamp: int) -> List[MarketRanking]:
    """Markets sorted by borrow APY, cheapest first."""
    rankings = _rank_markets(markets, timestamp, borrow=True)
    return sorted(rankings, key=lambda r: r.apy)


def find_best_market_for_supply(
    markets: MarketsInput,
    amount: int,
    timestamp: int,
) -> Optional[Tuple[MarketId, float]]:
    """
    Market with the highest supply APY after supplying ``amount``.

    Markets whose liquidity is below ``amount`` are not considered.

    Returns:
        Tuple of (market_id, apy_after), or None when no market qualifies
    """
    best: Optional[Tuple[MarketId, float]] = None

    for market_id, market in _market_items(markets):
        if market.liquidity < amount:
            continue
        try:
            impact = supply_apy_impact(market, amount, timestamp)
        except SimulationError as e:
            logger.warning(f"Skipping market {market_id}: {e}")
            continue
        if best is None or impact.apy_after > best[1]:
            best = (market_id, impact.apy_after)

    return best


def find_optimal_market_allocation(
    markets: MarketsInput,
    total_amount: int,
    caps: Optional[Mapping[MarketId, int]],
    timestamp: int,
) -> List[OptimalAllocation]:
    """
    Greedy allocation of ``total_amount`` to the highest supply APY markets.

    Each market takes ``min(remaining, cap)``; markets without a cap entry
    are uncapped. The expected APY is the market's supply APY after the
    allocation.

    Args:
        markets: Candidate markets
        total_amount: Assets to allocate
        caps: Per-market caps
        timestamp: Unix timestamp in seconds

    Returns:
        Allocations in the order they were made
    """
    caps = caps or {}
    items = dict(_market_items(markets))
    rankings = rank_markets_by_supply_apy(items, timestamp)

    allocations = []
    remaining = total_amount

    for ranking in rankings:
        if remaining == 0:
            break

        allocate = min(remaining, caps.get(ranking.market_id, MAX_UINT256))
        if allocate == 0:
            continue

        new_market, _ = items[ranking.market_id].supply(allocate, timestamp)
        allocations.append(
            OptimalAllocation(
                market_id=ranking.market_id,
                amount=allocate,
                expected_apy=new_market.get_supply_apy(timestamp),
            )
        )
        remaining -= allocate

    logger.info(f"Allocated {total_amount - remaining} of {total_amount} across {len(allocations)} markets")
    return allocations


# ========== Vaults ==========


def rank_vaults_by_apy(vaults: Iterable[VaultSimulation], timestamp: int) -> List[VaultRanking]:
    """Vaults sorted by net APY, highest first."""
    rankings = []
    for sim in vaults:
        try:
            net_apy = sim.get_net_apy(timestamp)
            gross_apy = sim.get_apy(timestamp)
        except SimulationError as e:
            logger.warning(f"Skipping vault {sim.vault.address} in ranking: {e}")
            continue
        rankings.append(
            VaultRanking(
                vault_address=sim.vault.address,
                net_apy=net_apy,
                gross_apy=gross_apy,
                total_assets=sim.vault.total_assets,
                available_capacity=sim.vault.max_deposit(),
            )
        )

    return sorted(rankings, key=lambda r: r.net_apy, reverse=True)


def find_best_vault_for_deposit(
    vaults: Iterable[VaultSimulation],
    amount: int,
    timestamp: int,
) -> Optional[Tuple[Address, float]]:
    """
    Vault with the highest net APY after depositing ``amount``.

    Vaults whose deposit capacity is below ``amount`` are not considered.
    """
    best: Optional[Tuple[Address, float]] = None

    for sim in vaults:
        if sim.vault.max_deposit() < amount:
            continue
        try:
            impact = vault_deposit_apy_impact(sim, amount, timestamp)
        except SimulationError as e:
            logger.warning(f"Skipping vault {sim.vault.address}: {e}")
            continue
        if best is None or impact.apy_after > best[1]:
            best = (sim.vault.address, impact.apy_after)

    return best
