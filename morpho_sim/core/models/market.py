"""Morpho Blue market state and transitions.

A :class:`Market` is an immutable snapshot of one isolated lending market.
Every transition (accrual, supply, withdraw, borrow, repay) returns a new
Market; the receiver is never modified.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from morpho_sim.core.constants import MAX_UINT256, ORACLE_PRICE_SCALE, WAD
from morpho_sim.core.errors import (
    InsufficientMarketLiquidity,
    InvalidInterestAccrual,
    RepayExceedsBorrow,
)
from morpho_sim.core.math import (
    RoundingDirection,
    mul_div_down,
    mul_div_up,
    rate_to_apy,
    to_assets,
    to_shares,
    w_div_down,
    w_div_up,
    w_mul_down,
    w_mul_up,
    w_taylor_compounded,
    zero_floor_sub,
)
from morpho_sim.core.models.ids import MarketId, to_market_id
from morpho_sim.protocols.morpho.config import (
    LIQUIDATION_CURSOR,
    MAX_LIQUIDATION_INCENTIVE_FACTOR,
)
from morpho_sim.protocols.morpho.irm import get_borrow_rate


@dataclass(frozen=True)
class AccrualRates:
    """Borrow rates over an accrual period."""

    elapsed: int
    avg_borrow_rate: int
    end_borrow_rate: int
    end_rate_at_target: Optional[int]


@dataclass(frozen=True)
class Market:
    """
    Morpho Blue market snapshot.

    All amounts are in loan-asset units, rates and fee are WAD-scaled.
    ``rate_at_target`` is None for markets without an adaptive IRM (they
    accrue no interest). ``price`` is the oracle price of one collateral unit
    in loan units, scaled by 1e36; None when unknown.
    """

    id: MarketId
    total_supply_assets: int
    total_borrow_assets: int
    total_supply_shares: int
    total_borrow_shares: int
    last_update: int
    fee: int = 0
    rate_at_target: Optional[int] = None
    price: Optional[int] = None
    lltv: int = 0

    # ========== Utilization / liquidity ==========

    @property
    def liquidity(self) -> int:
        """Assets available to withdraw or borrow."""
        return zero_floor_sub(self.total_supply_assets, self.total_borrow_assets)

    @property
    def utilization(self) -> int:
        """Borrow / supply, WAD-scaled."""
        return get_utilization(self.total_supply_assets, self.total_borrow_assets)

    # ========== Rates ==========

    def get_accrual_borrow_rates(self, timestamp: int) -> AccrualRates:
        """
        Compute average and end borrow rates from ``last_update`` to ``timestamp``.

        Raises:
            InvalidInterestAccrual: If ``timestamp`` is before ``last_update``
        """
        if timestamp < self.last_update:
            raise InvalidInterestAccrual(timestamp, self.last_update, market_id=self.id)

        elapsed = timestamp - self.last_update
        if self.rate_at_target is None:
            return AccrualRates(elapsed, 0, 0, None)

        result = get_borrow_rate(self.utilization, self.rate_at_target, elapsed)
        return AccrualRates(
            elapsed=elapsed,
            avg_borrow_rate=result.avg_borrow_rate,
            end_borrow_rate=result.end_borrow_rate,
            end_rate_at_target=result.end_rate_at_target,
        )

    def get_end_borrow_rate(self, timestamp: int) -> int:
        return self.get_accrual_borrow_rates(timestamp).end_borrow_rate

    def get_avg_borrow_rate(self, timestamp: int) -> int:
        return self.get_accrual_borrow_rates(timestamp).avg_borrow_rate

    def _supply_rate_from(self, borrow_rate: int) -> int:
        return w_mul_up(w_mul_down(borrow_rate, self.utilization), WAD - self.fee)

    def get_supply_rate(self, timestamp: int) -> int:
        """Supply rate = borrow_rate * utilization * (1 - fee)."""
        return self._supply_rate_from(self.get_end_borrow_rate(timestamp))

    def get_avg_supply_rate(self, timestamp: int) -> int:
        return self._supply_rate_from(self.get_avg_borrow_rate(timestamp))

    def get_borrow_apy(self, timestamp: int) -> float:
        return rate_to_apy(self.get_end_borrow_rate(timestamp))

    def get_supply_apy(self, timestamp: int) -> float:
        return rate_to_apy(self.get_supply_rate(timestamp))

    def get_avg_supply_apy(self, timestamp: int) -> float:
        return rate_to_apy(self.get_avg_supply_rate(timestamp))

    # ========== Transitions ==========

    def accrue_interest(self, timestamp: int) -> "Market":
        """
        Accrue interest up to ``timestamp``.

        Interest is added to both supply and borrow totals; the protocol fee
        is minted as supply shares. The rate at target advances when the
        market has an adaptive IRM.

        Args:
            timestamp: Unix timestamp in seconds, not before ``last_update``

        Returns:
            New Market with updated state
        """
        rates = self.get_accrual_borrow_rates(timestamp)

        interest = w_mul_down(
            self.total_borrow_assets,
            w_taylor_compounded(rates.avg_borrow_rate, rates.elapsed),
        )
        fee_amount = w_mul_down(interest, self.fee)
        fee_shares = to_shares(
            fee_amount,
            self.total_supply_assets + interest - fee_amount,
            self.total_supply_shares,
            RoundingDirection.DOWN,
        )

        rate_at_target = self.rate_at_target
        if rates.end_rate_at_target is not None:
            rate_at_target = rates.end_rate_at_target

        return replace(
            self,
            total_supply_assets=self.total_supply_assets + interest,
            total_borrow_assets=self.total_borrow_assets + interest,
            total_supply_shares=self.total_supply_shares + fee_shares,
            last_update=timestamp,
            rate_at_target=rate_at_target,
        )

    def supply(self, assets: int, timestamp: int) -> Tuple["Market", int]:
        """Supply ``assets``; returns the new market and shares minted (rounded down)."""
        market = self.accrue_interest(timestamp)
        shares = market.to_supply_shares(assets, RoundingDirection.DOWN)
        market = replace(
            market,
            total_supply_assets=market.total_supply_assets + assets,
            total_supply_shares=market.total_supply_shares + shares,
        )
        return market, shares

    def withdraw(self, assets: int, timestamp: int) -> Tuple["Market", int]:
        """
        Withdraw ``assets``; returns the new market and shares burned (rounded up).

        Raises:
            InsufficientMarketLiquidity: If borrow would exceed supply
        """
        market = self.accrue_interest(timestamp)
        shares = market.to_supply_shares(assets, RoundingDirection.UP)
        market = replace(
            market,
            total_supply_assets=market.total_supply_assets - assets,
            total_supply_shares=market.total_supply_shares - shares,
        )
        if market.total_borrow_assets > market.total_supply_assets:
            raise InsufficientMarketLiquidity(self.id)
        return market, shares

    def borrow(self, assets: int, timestamp: int) -> Tuple["Market", int]:
        """
        Borrow ``assets``; returns the new market and borrow shares minted (rounded up).

        Raises:
            InsufficientMarketLiquidity: If borrow would exceed supply
        """
        market = self.accrue_interest(timestamp)
        shares = market.to_borrow_shares(assets, RoundingDirection.UP)
        market = replace(
            market,
            total_borrow_assets=market.total_borrow_assets + assets,
            total_borrow_shares=market.total_borrow_shares + shares,
        )
        if market.total_borrow_assets > market.total_supply_assets:
            raise InsufficientMarketLiquidity(self.id)
        return market, shares

    def repay(self, assets: int, timestamp: int) -> Tuple["Market", int]:
        """
        Repay ``assets``; returns the new market and borrow shares burned (rounded down).

        Raises:
            RepayExceedsBorrow: If assets or burned shares exceed the market's borrow
        """
        market = self.accrue_interest(timestamp)
        shares = market.to_borrow_shares(assets, RoundingDirection.DOWN)
        if assets > market.total_borrow_assets or shares > market.total_borrow_shares:
            raise RepayExceedsBorrow(self.id, assets, market.total_borrow_assets)
        market = replace(
            market,
            total_borrow_assets=market.total_borrow_assets - assets,
            total_borrow_shares=market.total_borrow_shares - shares,
        )
        return market, shares

    # ========== Share conversions ==========

    def to_supply_assets(self, shares: int, rounding: RoundingDirection) -> int:
        return to_assets(shares, self.total_supply_assets, self.total_supply_shares, rounding)

    def to_supply_shares(self, assets: int, rounding: RoundingDirection) -> int:
        return to_shares(assets, self.total_supply_assets, self.total_supply_shares, rounding)

    def to_borrow_assets(self, shares: int, rounding: RoundingDirection) -> int:
        return to_assets(shares, self.total_borrow_assets, self.total_borrow_shares, rounding)

    def to_borrow_shares(self, assets: int, rounding: RoundingDirection) -> int:
        return to_shares(assets, self.total_borrow_assets, self.total_borrow_shares, rounding)

    # ========== Utilization targeting ==========

    def get_supply_to_utilization(self, target_utilization: int) -> int:
        return get_supply_to_utilization(self.total_supply_assets, self.total_borrow_assets, target_utilization)

    def get_withdraw_to_utilization(self, target_utilization: int) -> int:
        return get_withdraw_to_utilization(self.total_supply_assets, self.total_borrow_assets, target_utilization)

    def get_borrow_to_utilization(self, target_utilization: int) -> int:
        return get_borrow_to_utilization(self.total_supply_assets, self.total_borrow_assets, target_utilization)

    def get_repay_to_utilization(self, target_utilization: int) -> int:
        return get_repay_to_utilization(self.total_supply_assets, self.total_borrow_assets, target_utilization)

    # ========== Oracle / liquidation ==========

    def get_collateral_value(self, collateral: int) -> Optional[int]:
        """Collateral value in loan assets, or None without an oracle price."""
        if self.price is None:
            return None
        return mul_div_down(collateral, self.price, ORACLE_PRICE_SCALE)

    def get_max_borrow_assets(self, collateral: int) -> Optional[int]:
        value = self.get_collateral_value(collateral)
        if value is None:
            return None
        return w_mul_down(value, self.lltv)

    def get_liquidation_incentive_factor(self) -> int:
        return get_liquidation_incentive_factor(self.lltv)

    def get_liquidation_seized_assets(self, repaid_shares: int) -> Optional[int]:
        """Collateral seized when repaying ``repaid_shares`` of debt in a liquidation."""
        if self.price is None:
            return None
        if self.price == 0:
            return 0

        repaid_assets = self.to_borrow_assets(repaid_shares, RoundingDirection.DOWN)
        value_with_incentive = w_mul_down(repaid_assets, self.get_liquidation_incentive_factor())
        return mul_div_down(value_with_incentive, ORACLE_PRICE_SCALE, self.price)

    def is_healthy(self, collateral: int, borrow_shares: int) -> Optional[bool]:
        max_borrow = self.get_max_borrow_assets(collateral)
        if max_borrow is None:
            return None
        return max_borrow >= self.to_borrow_assets(borrow_shares, RoundingDirection.UP)

    def get_health_factor(self, collateral: int, borrow_shares: int) -> Optional[int]:
        """
        Max borrow / current borrow, WAD-scaled.

        ``MAX_UINT256`` for a position without debt, even without a price.
        """
        borrow_assets = self.to_borrow_assets(borrow_shares, RoundingDirection.UP)
        if borrow_assets == 0:
            return MAX_UINT256

        max_borrow = self.get_max_borrow_assets(collateral)
        if max_borrow is None:
            return None
        return w_div_down(max_borrow, borrow_assets)

    def get_ltv(self, collateral: int, borrow_shares: int) -> Optional[int]:
        if borrow_shares == 0:
            return 0

        collateral_value = self.get_collateral_value(collateral)
        if collateral_value is None:
            return None
        if collateral_value == 0:
            return MAX_UINT256

        borrow_assets = self.to_borrow_assets(borrow_shares, RoundingDirection.UP)
        return w_div_up(borrow_assets, collateral_value)

    def get_liquidation_price(self, collateral: int, borrow_shares: int) -> Optional[int]:
        """Oracle price (1e36-scaled) at which the position becomes liquidatable."""
        if borrow_shares == 0 or self.total_borrow_shares == 0:
            return None

        collateral_power = w_mul_down(collateral, self.lltv)
        if collateral_power == 0:
            return MAX_UINT256

        borrow_assets = self.to_borrow_assets(borrow_shares, RoundingDirection.UP)
        return mul_div_up(borrow_assets, ORACLE_PRICE_SCALE, collateral_power)

    def get_withdrawable_collateral(self, collateral: int, borrow_shares: int) -> Optional[int]:
        if self.price is None:
            return None
        if self.price == 0:
            return 0

        borrow_assets = self.to_borrow_assets(borrow_shares, RoundingDirection.UP)
        required_collateral = w_div_up(
            mul_div_up(borrow_assets, ORACLE_PRICE_SCALE, self.price),
            self.lltv,
        )
        return zero_floor_sub(collateral, required_collateral)

    def get_seizable_collateral(self, collateral: int, borrow_shares: int) -> Optional[int]:
        if self.price is None:
            return None
        if self.price == 0:
            return 0
        if self.is_healthy(collateral, borrow_shares):
            return 0

        return min(collateral, self.get_liquidation_seized_assets(borrow_shares))

    # ========== Serialization ==========

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "total_supply_assets": str(self.total_supply_assets),
            "total_borrow_assets": str(self.total_borrow_assets),
            "total_supply_shares": str(self.total_supply_shares),
            "total_borrow_shares": str(self.total_borrow_shares),
            "last_update": self.last_update,
            "fee": str(self.fee),
            "rate_at_target": str(self.rate_at_target) if self.rate_at_target is not None else None,
            "price": str(self.price) if self.price is not None else None,
            "lltv": str(self.lltv),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Market":
        def optional_int(value) -> Optional[int]:
            return int(value) if value is not None else None

        return cls(
            id=to_market_id(data["id"]),
            total_supply_assets=int(data["total_supply_assets"]),
            total_borrow_assets=int(data["total_borrow_assets"]),
            total_supply_shares=int(data["total_supply_shares"]),
            total_borrow_shares=int(data["total_borrow_shares"]),
            last_update=int(data["last_update"]),
            fee=int(data.get("fee", 0)),
            rate_at_target=optional_int(data.get("rate_at_target")),
            price=optional_int(data.get("price")),
            lltv=int(data.get("lltv", 0)),
        )


# ========== Free functions ==========


def get_utilization(total_supply_assets: int, total_borrow_assets: int) -> int:
    """Utilization, ``MAX_UINT256`` when there is borrow but no supply."""
    if total_supply_assets == 0:
        return MAX_UINT256 if total_borrow_assets > 0 else 0
    return w_div_down(total_borrow_assets, total_supply_assets)


def get_liquidation_incentive_factor(lltv: int) -> int:
    """LIF = min(1.15, 1 / (1 - cursor * (1 - lltv)))."""
    return min(
        MAX_LIQUIDATION_INCENTIVE_FACTOR,
        w_div_down(WAD, WAD - w_mul_down(LIQUIDATION_CURSOR, WAD - lltv)),
    )


def get_supply_to_utilization(total_supply_assets: int, total_borrow_assets: int, target_utilization: int) -> int:
    """Assets to supply so utilization falls to ``target_utilization``."""
    if target_utilization == 0:
        if get_utilization(total_supply_assets, total_borrow_assets) == 0:
            return 0
        return MAX_UINT256

    return zero_floor_sub(w_div_up(total_borrow_assets, target_utilization), total_supply_assets)


def get_withdraw_to_utilization(total_supply_assets: int, total_borrow_assets: int, target_utilization: int) -> int:
    """Assets that can be withdrawn before utilization rises to ``target_utilization``."""
    if target_utilization == 0:
        if total_borrow_assets == 0:
            return total_supply_assets
        return 0

    return zero_floor_sub(total_supply_assets, w_div_up(total_borrow_assets, target_utilization))


def get_borrow_to_utilization(total_supply_assets: int, total_borrow_assets: int, target_utilization: int) -> int:
    return zero_floor_sub(w_mul_down(total_supply_assets, target_utilization), total_borrow_assets)


def get_repay_to_utilization(total_supply_assets: int, total_borrow_assets: int, target_utilization: int) -> int:
    return zero_floor_sub(total_borrow_assets, w_mul_down(total_supply_assets, target_utilization))
