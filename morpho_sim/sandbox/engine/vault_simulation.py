"""Vault simulation engine.

Simulates MetaMorpho vault operations (deposit, withdraw, manual and public
reallocation) across the markets the vault allocates to. Each operation
returns a new, fully-accrued :class:`VaultSimulation`; the input is never
modified.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Sequence, Tuple

from morpho_sim.core.constants import WAD
from morpho_sim.core.errors import (
    AllCapsReached,
    DepositMarketInWithdrawals,
    EmptySupplyQueue,
    EmptyWithdrawals,
    InconsistentReallocation,
    InsufficientMarketLiquidity,
    MarketNotEnabled,
    MarketNotFound,
    MaxInflowExceeded,
    MaxOutflowExceeded,
    NotEnoughLiquidity,
    PublicAllocatorNotConfigured,
    SupplyCapExceeded,
    UnauthorizedMarket,
    WithdrawalsNotSorted,
)
from morpho_sim.core.math import RoundingDirection, mul_div_down, rate_to_apy, w_mul_down
from morpho_sim.core.models import Market, MarketId, Vault, VaultMarketConfig
from morpho_sim.protocols.morpho.config import VAULT_VIRTUAL_ASSETS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReallocationStep:
    """Target stake for one market in a reallocation."""

    market_id: MarketId
    target_assets: int

    def to_dict(self) -> dict:
        return {"market_id": self.market_id, "target_assets": str(self.target_assets)}


@dataclass(frozen=True)
class VaultSimulation:
    """
    A vault together with the markets it allocates to.

    Any market referenced by the vault's allocations must be present in
    ``markets``, otherwise operations raise MarketNotFound.
    """

    vault: Vault
    markets: Dict[MarketId, Market] = field(default_factory=dict)

    def _market(self, market_id: MarketId) -> Market:
        market = self.markets.get(market_id)
        if market is None:
            raise MarketNotFound(market_id)
        return market

    def _allocation(self, market_id: MarketId) -> VaultMarketConfig:
        config = self.vault.allocations.get(market_id)
        if config is None:
            raise MarketNotFound(market_id)
        return config

    # ========== Accrual and rates ==========

    def accrue_interest(self, timestamp: int) -> "VaultSimulation":
        """
        Accrue interest on every allocated market and take the performance fee.

        The vault's stake in each market is converted to supply shares on the
        pre-accrual market (rounded up) and back to assets on the accrued
        market (rounded down). The fee on interest since ``last_total_assets``
        is minted as vault shares.

        Args:
            timestamp: Unix timestamp in seconds

        Returns:
            New VaultSimulation whose markets map contains the allocated markets
        """
        new_markets: Dict[MarketId, Market] = {}
        new_allocations: Dict[MarketId, VaultMarketConfig] = {}
        total_assets = 0

        for market_id, config in self.vault.allocations.items():
            market = self._market(market_id)
            accrued_market = market.accrue_interest(timestamp)

            supply_shares = market.to_supply_shares(config.supply_assets, RoundingDirection.UP)
            supply_assets = accrued_market.to_supply_assets(supply_shares, RoundingDirection.DOWN)

            new_allocations[market_id] = replace(config, supply_assets=supply_assets)
            new_markets[market_id] = accrued_market
            total_assets += supply_assets

        vault = replace(self.vault, allocations=new_allocations, total_assets=total_assets)

        fee_assets = w_mul_down(vault.total_interest, vault.fee)
        fee_shares = mul_div_down(
            fee_assets,
            vault.total_supply + vault.virtual_shares,
            vault.total_assets - fee_assets + VAULT_VIRTUAL_ASSETS,
        )

        vault = replace(
            vault,
            total_supply=vault.total_supply + fee_shares,
            last_total_assets=vault.total_assets,
        )
        return VaultSimulation(vault=vault, markets=new_markets)

    def get_avg_supply_rate(self, timestamp: int) -> int:
        """Stake-weighted average supply rate across allocations (WAD per second)."""
        if self.vault.total_assets == 0:
            return 0

        weighted_rate = 0
        for market_id, config in self.vault.allocations.items():
            if config.supply_assets == 0:
                continue
            market = self._market(market_id)
            weighted_rate += market.get_avg_supply_rate(timestamp) * config.supply_assets

        return weighted_rate // self.vault.total_assets

    def get_apy(self, timestamp: int) -> float:
        """Gross APY, before the vault fee."""
        if self.vault.total_assets == 0:
            return 0.0
        return rate_to_apy(self.get_avg_supply_rate(timestamp))

    def get_net_apy(self, timestamp: int) -> float:
        """APY net of the vault performance fee."""
        if self.vault.total_assets == 0:
            return 0.0
        avg_rate = self.get_avg_supply_rate(timestamp)
        return rate_to_apy(w_mul_down(avg_rate, WAD - self.vault.fee))

    # ========== Deposit / withdraw ==========

    def simulate_deposit(self, amount: int, timestamp: int) -> Tuple["VaultSimulation", int]:
        """
        Simulate a deposit placed along the supply queue.

        Args:
            amount: Assets to deposit
            timestamp: Unix timestamp in seconds

        Returns:
            Tuple of (new simulation, shares minted)

        Raises:
            EmptySupplyQueue: If depositing a positive amount into a vault without a supply queue
            AllCapsReached: If the supply queue cannot absorb the whole amount
            MarketNotFound: If a queued market has no allocation or market data
        """
        if amount > 0 and not self.vault.supply_queue:
            raise EmptySupplyQueue(self.vault.address)

        sim = self.accrue_interest(timestamp)
        shares = sim.vault.to_shares(amount, RoundingDirection.DOWN)

        markets = dict(sim.markets)
        allocations = dict(sim.vault.allocations)
        to_supply = amount

        for market_id in sim.vault.supply_queue:
            config = allocations.get(market_id)
            if config is None:
                raise MarketNotFound(market_id)

            if config.cap == 0 or config.headroom == 0:
                logger.debug(f"Skipping market {market_id}: no cap headroom")
                continue

            supply_amount = min(to_supply, config.headroom)
            market = markets.get(market_id)
            if market is None:
                raise MarketNotFound(market_id)

            markets[market_id], _ = market.supply(supply_amount, timestamp)
            allocations[market_id] = replace(config, supply_assets=config.supply_assets + supply_amount)

            to_supply -= supply_amount
            if to_supply == 0:
                break

        if to_supply != 0:
            raise AllCapsReached(sim.vault.address, to_supply)

        total_assets = sim.vault.total_assets + amount
        vault = replace(
            sim.vault,
            allocations=allocations,
            total_assets=total_assets,
            last_total_assets=total_assets,
            total_supply=sim.vault.total_supply + shares,
        )
        logger.debug(f"Simulated deposit of {amount} into vault {vault.address}: {shares} shares")
        return VaultSimulation(vault=vault, markets=markets), shares

    def simulate_withdraw(self, shares: int, timestamp: int) -> Tuple["VaultSimulation", int]:
        """
        Simulate redeeming ``shares``, served along the withdraw queue.

        Returns:
            Tuple of (new simulation, assets withdrawn)

        Raises:
            NotEnoughLiquidity: If the withdraw queue cannot serve the amount
        """
        sim = self.accrue_interest(timestamp)
        assets = sim.vault.to_assets(shares, RoundingDirection.DOWN)

        markets = dict(sim.markets)
        allocations = dict(sim.vault.allocations)
        to_withdraw = assets

        for market_id in sim.vault.withdraw_queue:
            config = allocations.get(market_id)
            if config is None:
                raise MarketNotFound(market_id)
            market = markets.get(market_id)
            if market is None:
                raise MarketNotFound(market_id)

            withdrawable = min(config.supply_assets, market.liquidity)
            if withdrawable == 0:
                logger.debug(f"Skipping market {market_id}: nothing withdrawable")
                continue

            withdraw_amount = min(to_withdraw, withdrawable)
            markets[market_id], _ = market.withdraw(withdraw_amount, timestamp)
            allocations[market_id] = replace(config, supply_assets=config.supply_assets - withdraw_amount)

            to_withdraw -= withdraw_amount
            if to_withdraw == 0:
                break

        if to_withdraw != 0:
            raise NotEnoughLiquidity(sim.vault.address, to_withdraw)

        total_assets = sim.vault.total_assets - assets
        vault = replace(
            sim.vault,
            allocations=allocations,
            total_assets=total_assets,
            last_total_assets=total_assets,
            total_supply=sim.vault.total_supply - shares,
        )
        logger.debug(f"Simulated withdrawal of {shares} shares from vault {vault.address}: {assets} assets")
        return VaultSimulation(vault=vault, markets=markets), assets

    # ========== Reallocation ==========

    def simulate_reallocate(self, steps: Sequence[ReallocationStep], timestamp: int) -> "VaultSimulation":
        """
        Simulate a manual reallocation to the given target stakes.

        Each step's market is accrued first. Steps below the current stake
        withdraw, steps above it supply. Vault-level accrual is not applied.

        Raises:
            MarketNotEnabled: If withdrawing from a disabled market
            UnauthorizedMarket: If supplying to a market with zero cap
            SupplyCapExceeded: If a target exceeds the market's cap
            InconsistentReallocation: If total supplied != total withdrawn
        """
        markets = dict(self.markets)
        allocations = dict(self.vault.allocations)
        address = self.vault.address
        total_supplied = 0
        total_withdrawn = 0

        for step in steps:
            market = markets.get(step.market_id)
            if market is None:
                raise MarketNotFound(step.market_id)
            market = market.accrue_interest(timestamp)
            markets[step.market_id] = market

            config = allocations.get(step.market_id)
            if config is None:
                raise MarketNotFound(step.market_id)
            current = config.supply_assets

            if step.target_assets < current:
                if not config.enabled:
                    raise MarketNotEnabled(address, step.market_id)
                to_withdraw = current - step.target_assets
                markets[step.market_id], _ = market.withdraw(to_withdraw, timestamp)
                total_withdrawn += to_withdraw
            elif step.target_assets > current:
                if config.cap == 0:
                    raise UnauthorizedMarket(address, step.market_id)
                if step.target_assets > config.cap:
                    raise SupplyCapExceeded(address, step.market_id, config.cap)
                to_supply = step.target_assets - current
                markets[step.market_id], _ = market.supply(to_supply, timestamp)
                total_supplied += to_supply
            else:
                continue

            allocations[step.market_id] = replace(config, supply_assets=step.target_assets)

        if total_withdrawn != total_supplied:
            raise InconsistentReallocation(address, total_supplied, total_withdrawn)

        logger.debug(f"Simulated reallocation of {total_supplied} assets in vault {address}")
        return VaultSimulation(vault=replace(self.vault, allocations=allocations), markets=markets)

    def simulate_public_reallocate(
        self,
        withdrawals: Iterable[Tuple[MarketId, int]],
        supply_market_id: MarketId,
        timestamp: int,
    ) -> "VaultSimulation":
        """
        Simulate a public allocator reallocation into ``supply_market_id``.

        Args:
            withdrawals: (market_id, amount) pairs, market ids strictly ascending
            supply_market_id: Market receiving the withdrawn total
            timestamp: Unix timestamp in seconds

        Returns:
            New VaultSimulation with updated stakes and flow caps

        Raises:
            PublicAllocatorNotConfigured: If the vault or a market has no allocator config
            EmptyWithdrawals: If ``withdrawals`` is empty
            WithdrawalsNotSorted: If market ids are not strictly ascending
            DepositMarketInWithdrawals: If the supply market is also withdrawn from
            MaxOutflowExceeded: If a withdrawal exceeds the market's max outflow
            MaxInflowExceeded: If the total exceeds the supply market's max inflow
        """
        address = self.vault.address
        if self.vault.public_allocator_config is None:
            raise PublicAllocatorNotConfigured(address)

        withdrawals = list(withdrawals)
        if not withdrawals:
            raise EmptyWithdrawals(address)

        supply_config = self._allocation(supply_market_id)
        if not supply_config.enabled:
            raise MarketNotEnabled(address, supply_market_id)
        if supply_config.public_allocator_config is None:
            raise PublicAllocatorNotConfigured(address)

        total_withdrawn = 0
        previous_id = None
        for market_id, amount in withdrawals:
            if previous_id is not None and market_id <= previous_id:
                raise WithdrawalsNotSorted(address)
            previous_id = market_id

            if market_id == supply_market_id:
                raise DepositMarketInWithdrawals(address, market_id)

            config = self._allocation(market_id)
            if not config.enabled:
                raise MarketNotEnabled(address, market_id)
            if config.public_allocator_config is None:
                raise PublicAllocatorNotConfigured(address)
            if config.public_allocator_config.max_out < amount:
                raise MaxOutflowExceeded(address, market_id)
            if config.supply_assets < amount:
                raise InsufficientMarketLiquidity(market_id)

            total_withdrawn += amount

        if supply_config.public_allocator_config.max_in < total_withdrawn:
            raise MaxInflowExceeded(address, supply_market_id)

        allocations = dict(self.vault.allocations)
        steps: List[ReallocationStep] = []

        for market_id, amount in withdrawals:
            config = allocations[market_id]
            steps.append(ReallocationStep(market_id, config.supply_assets - amount))
            flow_caps = config.public_allocator_config
            allocations[market_id] = replace(
                config,
                public_allocator_config=replace(
                    flow_caps,
                    max_in=flow_caps.max_in + amount,
                    max_out=flow_caps.max_out - amount,
                ),
            )

        steps.append(ReallocationStep(supply_market_id, supply_config.supply_assets + total_withdrawn))
        flow_caps = supply_config.public_allocator_config
        allocations[supply_market_id] = replace(
            supply_config,
            public_allocator_config=replace(
                flow_caps,
                max_in=flow_caps.max_in - total_withdrawn,
                max_out=flow_caps.max_out + total_withdrawn,
            ),
        )

        sim = VaultSimulation(vault=replace(self.vault, allocations=allocations), markets=self.markets)
        logger.debug(
            f"Public reallocation of {total_withdrawn} assets from {len(withdrawals)} markets "
            f"into {supply_market_id} in vault {address}"
        )
        return sim.simulate_reallocate(steps, timestamp)
