"""User position in a Morpho Blue market."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from morpho_sim.core.constants import MAX_UINT256
from morpho_sim.core.errors import (
    InsufficientCollateral,
    InsufficientPosition,
    UnknownOraclePrice,
)
from morpho_sim.core.math import RoundingDirection, w_div_down, w_div_up, zero_floor_sub
from morpho_sim.core.models.ids import Address, MarketId
from morpho_sim.core.models.market import Market
from morpho_sim.protocols.morpho.config import I128_MAX


class CapacityLimitReason(Enum):
    """What bounds an operation's maximum amount."""

    BALANCE = "balance"
    LIQUIDITY = "liquidity"
    POSITION = "position"
    COLLATERAL = "collateral"
    NONE = "none"


@dataclass(frozen=True)
class CapacityLimit:
    value: int
    reason: CapacityLimitReason

    def to_dict(self) -> dict:
        return {"value": str(self.value), "reason": self.reason.value}


@dataclass(frozen=True)
class PositionCapacities:
    """Maximum amounts for each position operation."""

    supply: CapacityLimit
    withdraw: CapacityLimit
    borrow: CapacityLimit
    repay: CapacityLimit
    supply_collateral: CapacityLimit
    withdraw_collateral: CapacityLimit

    def to_dict(self) -> dict:
        return {
            "supply": self.supply.to_dict(),
            "withdraw": self.withdraw.to_dict(),
            "borrow": self.borrow.to_dict(),
            "repay": self.repay.to_dict(),
            "supply_collateral": self.supply_collateral.to_dict(),
            "withdraw_collateral": self.withdraw_collateral.to_dict(),
        }


@dataclass(frozen=True)
class Position:
    """
    A user's supply, borrow and collateral in one market.

    Shares are stored; asset amounts are always derived against an explicit
    Market snapshot.
    """

    user: Address
    market_id: MarketId
    supply_shares: int = 0
    borrow_shares: int = 0
    collateral: int = 0

    @classmethod
    def empty(cls, user: Address, market_id: MarketId) -> "Position":
        return cls(user=user, market_id=market_id)

    # ========== Derived values ==========

    def supply_assets(self, market: Market) -> int:
        return market.to_supply_assets(self.supply_shares, RoundingDirection.DOWN)

    def borrow_assets(self, market: Market) -> int:
        return market.to_borrow_assets(self.borrow_shares, RoundingDirection.UP)

    def collateral_value(self, market: Market) -> Optional[int]:
        return market.get_collateral_value(self.collateral)

    def max_borrow_assets(self, market: Market) -> Optional[int]:
        return market.get_max_borrow_assets(self.collateral)

    def max_borrowable_assets(self, market: Market) -> Optional[int]:
        """Additional assets that can be borrowed against current collateral."""
        max_borrow = self.max_borrow_assets(market)
        if max_borrow is None:
            return None
        return zero_floor_sub(max_borrow, self.borrow_assets(market))

    def is_healthy(self, market: Market) -> Optional[bool]:
        return market.is_healthy(self.collateral, self.borrow_shares)

    def is_liquidatable(self, market: Market) -> Optional[bool]:
        healthy = self.is_healthy(market)
        if healthy is None:
            return None
        return not healthy

    def health_factor(self, market: Market) -> Optional[int]:
        return market.get_health_factor(self.collateral, self.borrow_shares)

    def ltv(self, market: Market) -> Optional[int]:
        return market.get_ltv(self.collateral, self.borrow_shares)

    def liquidation_price(self, market: Market) -> Optional[int]:
        return market.get_liquidation_price(self.collateral, self.borrow_shares)

    def price_variation_to_liquidation(self, market: Market) -> Optional[int]:
        """
        Relative price move until liquidation, signed WAD.

        Negative when healthy (price must drop), positive when the position
        is already at or past its liquidation price.
        """
        price = market.price
        if not price:
            return None

        liquidation_price = self.liquidation_price(market)
        if liquidation_price is None:
            return None

        if liquidation_price >= price:
            return min(w_div_up(liquidation_price - price, price), I128_MAX)
        return -min(w_div_down(price - liquidation_price, price), I128_MAX)

    def borrow_capacity_usage(self, market: Market) -> Optional[int]:
        """Current borrow / max borrow, WAD-scaled."""
        max_borrow = self.max_borrow_assets(market)
        if max_borrow is None:
            return None
        if max_borrow == 0:
            return 0 if self.borrow_shares == 0 else MAX_UINT256
        return w_div_up(self.borrow_assets(market), max_borrow)

    def withdrawable_collateral(self, market: Market) -> Optional[int]:
        return market.get_withdrawable_collateral(self.collateral, self.borrow_shares)

    def seizable_collateral(self, market: Market) -> Optional[int]:
        return market.get_seizable_collateral(self.collateral, self.borrow_shares)

    def withdrawable_supply(self, market: Market) -> int:
        return min(self.supply_assets(market), market.liquidity)

    # ========== Mutations ==========

    def supply(self, market: Market, assets: int, timestamp: int) -> Tuple["Position", Market, int]:
        new_market, shares = market.supply(assets, timestamp)
        return replace(self, supply_shares=self.supply_shares + shares), new_market, shares

    def withdraw(self, market: Market, assets: int, timestamp: int) -> Tuple["Position", Market, int]:
        """
        Withdraw supplied assets.

        Raises:
            InsufficientPosition: If more shares would be burned than held
            InsufficientMarketLiquidity: If the market lacks liquidity
        """
        new_market, shares = market.withdraw(assets, timestamp)
        if shares > self.supply_shares:
            raise InsufficientPosition(self.user, self.market_id)
        return replace(self, supply_shares=self.supply_shares - shares), new_market, shares

    def supply_collateral(self, assets: int) -> "Position":
        return replace(self, collateral=self.collateral + assets)

    def withdraw_collateral(self, market: Market, assets: int, timestamp: int) -> "Position":
        """
        Withdraw collateral, keeping the position healthy.

        Raises:
            UnknownOraclePrice: If the market has no oracle price
            InsufficientPosition: If withdrawing more collateral than held
            InsufficientCollateral: If the position would become unhealthy
        """
        if market.price is None:
            raise UnknownOraclePrice(self.market_id)

        accrued_market = market.accrue_interest(timestamp)
        if assets > self.collateral:
            raise InsufficientPosition(self.user, self.market_id)

        position = replace(self, collateral=self.collateral - assets)
        if position.is_healthy(accrued_market) is False:
            raise InsufficientCollateral(self.user, self.market_id)
        return position

    def borrow(self, market: Market, assets: int, timestamp: int) -> Tuple["Position", Market, int]:
        """
        Borrow against collateral.

        Raises:
            UnknownOraclePrice: If the market has no oracle price
            InsufficientMarketLiquidity: If the market lacks liquidity
            InsufficientCollateral: If the position would become unhealthy
        """
        if market.price is None:
            raise UnknownOraclePrice(self.market_id)

        new_market, shares = market.borrow(assets, timestamp)
        position = replace(self, borrow_shares=self.borrow_shares + shares)
        if position.is_healthy(new_market) is False:
            raise InsufficientCollateral(self.user, self.market_id)
        return position, new_market, shares

    def repay(self, market: Market, assets: int, timestamp: int) -> Tuple["Position", Market, int]:
        new_market, shares = market.repay(assets, timestamp)
        if shares > self.borrow_shares:
            raise InsufficientPosition(self.user, self.market_id)
        return replace(self, borrow_shares=self.borrow_shares - shares), new_market, shares

    # ========== Capacities ==========

    def get_capacities(self, market: Market, loan_balance: int, collateral_balance: int) -> PositionCapacities:
        """
        Maximum amount for each operation and what limits it.

        Args:
            market: Market snapshot to evaluate against
            loan_balance: User's wallet balance of the loan asset
            collateral_balance: User's wallet balance of the collateral asset

        Returns:
            PositionCapacities with one CapacityLimit per operation
        """
        supply_assets = self.supply_assets(market)
        borrow_assets = self.borrow_assets(market)
        liquidity = market.liquidity

        if supply_assets <= liquidity:
            withdraw = CapacityLimit(supply_assets, CapacityLimitReason.POSITION)
        else:
            withdraw = CapacityLimit(liquidity, CapacityLimitReason.LIQUIDITY)

        max_borrowable = self.max_borrowable_assets(market)
        if max_borrowable is None:
            borrow = CapacityLimit(0, CapacityLimitReason.COLLATERAL)
        elif max_borrowable <= liquidity:
            borrow = CapacityLimit(max_borrowable, CapacityLimitReason.COLLATERAL)
        else:
            borrow = CapacityLimit(liquidity, CapacityLimitReason.LIQUIDITY)

        if loan_balance <= borrow_assets:
            repay = CapacityLimit(loan_balance, CapacityLimitReason.BALANCE)
        else:
            repay = CapacityLimit(borrow_assets, CapacityLimitReason.POSITION)

        withdrawable = self.withdrawable_collateral(market)
        if withdrawable is None:
            withdraw_collateral = CapacityLimit(0, CapacityLimitReason.COLLATERAL)
        elif withdrawable <= self.collateral:
            withdraw_collateral = CapacityLimit(withdrawable, CapacityLimitReason.COLLATERAL)
        else:
            withdraw_collateral = CapacityLimit(self.collateral, CapacityLimitReason.POSITION)

        return PositionCapacities(
            supply=CapacityLimit(loan_balance, CapacityLimitReason.BALANCE),
            withdraw=withdraw,
            borrow=borrow,
            repay=repay,
            supply_collateral=CapacityLimit(collateral_balance, CapacityLimitReason.BALANCE),
            withdraw_collateral=withdraw_collateral,
        )
