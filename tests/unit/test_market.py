"""Unit tests for Market state transitions and derived values."""

from dataclasses import replace

import pytest

from conftest import MARKET_1, ONE_DAY, PRICE_ONE, RATE_AT_TARGET, T0, make_market
from morpho_sim.core.constants import MAX_UINT256, WAD
from morpho_sim.core.errors import (
    InsufficientMarketLiquidity,
    InvalidInterestAccrual,
    RepayExceedsBorrow,
)
from morpho_sim.core.math import RoundingDirection
from morpho_sim.core.models import (
    Market,
    get_borrow_to_utilization,
    get_liquidation_incentive_factor,
    get_repay_to_utilization,
    get_supply_to_utilization,
    get_utilization,
    get_withdraw_to_utilization,
)
from morpho_sim.protocols.morpho.config import MAX_LIQUIDATION_INCENTIVE_FACTOR


class TestUtilization:
    """Tests for utilization and liquidity."""

    def test_market_utilization(self, market):
        """Utilization and liquidity follow supply and borrow totals."""
        assert market.utilization == 8 * WAD // 10
        assert market.liquidity == 200_000 * WAD

    def test_edge_cases(self):
        """Empty markets and borrow without supply have fixed utilizations."""
        assert get_utilization(0, 0) == 0
        assert get_utilization(0, 5) == MAX_UINT256
        assert get_utilization(WAD, WAD) == WAD


class TestRates:
    """Tests for borrow and supply rates."""

    def test_rates_at_last_update(self, market):
        """Querying at last_update keeps the rate at target; 80% utilization sits below it."""
        rates = market.get_accrual_borrow_rates(T0)
        assert rates.elapsed == 0
        assert rates.end_rate_at_target == RATE_AT_TARGET
        assert rates.avg_borrow_rate == rates.end_borrow_rate
        assert 0 < rates.end_borrow_rate < RATE_AT_TARGET

    def test_supply_rate_below_borrow_rate(self, market):
        """Suppliers earn borrow rate * utilization * (1 - fee)."""
        assert 0 < market.get_supply_rate(T0) < market.get_end_borrow_rate(T0)
        assert 0 < market.get_supply_apy(T0) < market.get_borrow_apy(T0)
        assert market.get_avg_supply_apy(T0) == market.get_supply_apy(T0)

    def test_no_irm_has_zero_rates(self):
        """A market without an IRM has no interest."""
        market = make_market(rate_at_target=None)
        assert market.get_end_borrow_rate(T0 + ONE_DAY) == 0
        assert market.get_supply_apy(T0 + ONE_DAY) == 0.0

    def test_timestamp_before_last_update(self, market):
        """Rate queries before last_update are rejected."""
        with pytest.raises(InvalidInterestAccrual) as exc_info:
            market.get_borrow_apy(T0 - 1)
        assert exc_info.value.last_update == T0
        assert exc_info.value.market_id == MARKET_1


class TestAccrueInterest:
    """Tests for interest accrual."""

    def test_zero_elapsed_is_identity(self, market):
        """Accruing at last_update returns an equal market."""
        assert market.accrue_interest(T0) == market

    def test_one_day(self, market):
        """Interest grows supply and borrow equally and the fee mints supply shares."""
        accrued = market.accrue_interest(T0 + ONE_DAY)

        interest = accrued.total_borrow_assets - market.total_borrow_assets
        assert interest > 0
        assert accrued.total_supply_assets - market.total_supply_assets == interest
        assert accrued.total_supply_shares > market.total_supply_shares
        assert accrued.total_borrow_shares == market.total_borrow_shares
        assert accrued.last_update == T0 + ONE_DAY
        # Below target utilization the rate at target decays
        assert accrued.rate_at_target < RATE_AT_TARGET

    def test_zero_fee_mints_no_shares(self):
        """A zero fee mints no supply shares."""
        market = make_market(fee=0)
        accrued = market.accrue_interest(T0 + ONE_DAY)
        assert accrued.total_supply_shares == market.total_supply_shares

    def test_without_irm_only_timestamp_moves(self):
        """Without an IRM accrual only moves the timestamp."""
        market = make_market(rate_at_target=None)
        accrued = market.accrue_interest(T0 + ONE_DAY)
        assert accrued == replace(market, last_update=T0 + ONE_DAY)

    def test_before_last_update_fails(self, market):
        """Accrual before last_update is rejected."""
        with pytest.raises(InvalidInterestAccrual):
            market.accrue_interest(T0 - 1)

    def test_receiver_is_not_modified(self, market):
        """Accrual returns a new market."""
        market.accrue_interest(T0 + ONE_DAY)
        assert market.last_update == T0


class TestTransitions:
    """Tests for supply, withdraw, borrow and repay."""

    def test_supply(self, market):
        """Supply adds assets and shares rounded down."""
        new_market, shares = market.supply(1_000 * WAD, T0)
        assert new_market.total_supply_assets == market.total_supply_assets + 1_000 * WAD
        assert shares == market.to_supply_shares(1_000 * WAD, RoundingDirection.DOWN)
        assert new_market.total_supply_shares == market.total_supply_shares + shares

    def test_supply_lowers_utilization(self, market):
        """Supplying lowers utilization and supply APY."""
        new_market, _ = market.supply(100_000 * WAD, T0)
        assert new_market.utilization < market.utilization
        assert new_market.get_supply_apy(T0) < market.get_supply_apy(T0)

    def test_withdraw_burns_at_least_minted_shares(self, market):
        """Supplying then withdrawing the same amount cannot leave extra shares."""
        supplied, minted = market.supply(1_000 * WAD, T0)
        _, burned = supplied.withdraw(1_000 * WAD, T0)
        assert burned >= minted

    def test_withdraw_beyond_liquidity(self, market):
        """Withdrawing below the borrowed amount is rejected."""
        with pytest.raises(InsufficientMarketLiquidity):
            market.withdraw(300_000 * WAD, T0)

    def test_borrow(self, market):
        """Borrowing adds debt and raises the borrow APY."""
        new_market, shares = market.borrow(100_000 * WAD, T0)
        assert new_market.total_borrow_assets == 900_000 * WAD
        assert shares >= 100_000 * WAD
        assert new_market.get_borrow_apy(T0) > market.get_borrow_apy(T0)

    def test_borrow_beyond_liquidity(self, market):
        """Borrowing more than the liquidity is rejected."""
        with pytest.raises(InsufficientMarketLiquidity):
            market.borrow(250_000 * WAD, T0)

    def test_repay(self, market):
        """Repaying removes assets and the burned shares."""
        new_market, shares = market.repay(100_000 * WAD, T0)
        assert new_market.total_borrow_assets == 700_000 * WAD
        assert new_market.total_borrow_shares == market.total_borrow_shares - shares

    def test_repay_beyond_borrow(self):
        """Repaying more than the outstanding borrow is rejected."""
        market = make_market(MARKET_1, supply=1_000 * WAD, borrow=100 * WAD)
        with pytest.raises(RepayExceedsBorrow):
            market.repay(200 * WAD, T0)

    def test_repay_most_of_borrow(self):
        """A repayment below the outstanding borrow keeps totals non-negative."""
        market = make_market(MARKET_1, supply=1_000 * WAD, borrow=100 * WAD)
        new_market, _ = market.repay(99 * WAD, T0)
        assert new_market.total_borrow_assets == WAD
        assert new_market.total_borrow_shares >= 0

    def test_share_round_trip(self, market):
        """Shares -> assets (down) -> shares (up) never exceeds the starting shares."""
        for shares in (1, 10**6, 12_345 * WAD):
            assets = market.to_supply_assets(shares, RoundingDirection.DOWN)
            assert market.to_supply_shares(assets, RoundingDirection.UP) <= shares
            borrow_assets = market.to_borrow_assets(shares, RoundingDirection.DOWN)
            assert market.to_borrow_shares(borrow_assets, RoundingDirection.UP) <= shares


class TestUtilizationTargeting:
    """Tests for the amounts that move utilization to a target."""

    def test_supply_to_utilization(self):
        """Supply needed to bring utilization down to the target."""
        assert get_supply_to_utilization(WAD, WAD, 9 * WAD // 10) == 111_111_111_111_111_112

    def test_withdraw_to_utilization(self):
        """Withdrawal that brings utilization up to the target."""
        assert get_withdraw_to_utilization(2 * WAD, WAD, 9 * WAD // 10) == 888_888_888_888_888_888

    def test_borrow_and_repay_to_utilization(self):
        """Borrow and repay amounts that reach the target."""
        assert get_borrow_to_utilization(WAD, WAD // 2, 9 * WAD // 10) == 4 * WAD // 10
        assert get_repay_to_utilization(WAD, 95 * WAD // 100, 9 * WAD // 10) == 5 * WAD // 100

    def test_zero_target(self):
        """A zero utilization target needs unbounded supply or a full exit."""
        assert get_supply_to_utilization(WAD, 0, 0) == 0
        assert get_supply_to_utilization(WAD, WAD // 2, 0) == MAX_UINT256
        assert get_withdraw_to_utilization(WAD, 0, 0) == WAD
        assert get_withdraw_to_utilization(WAD, 1, 0) == 0

    def test_already_past_target(self, market):
        """At 80% there is nothing to supply to reach 90%."""
        assert market.get_supply_to_utilization(9 * WAD // 10) == 0
        assert market.get_repay_to_utilization(9 * WAD // 10) == 0
        assert market.get_borrow_to_utilization(9 * WAD // 10) == 100_000 * WAD


class TestLiquidation:
    """Tests for oracle-dependent values."""

    def test_liquidation_incentive_factor(self):
        """LIF is 1 / (1 - cursor * (1 - lltv)), capped at the maximum."""
        assert get_liquidation_incentive_factor(86 * WAD // 100) == 1_043_841_336_116_910_229
        assert get_liquidation_incentive_factor(0) == MAX_LIQUIDATION_INCENTIVE_FACTOR

    def test_collateral_and_max_borrow(self, market):
        """Collateral is valued at the oracle price and borrowing is capped by lltv."""
        assert market.get_collateral_value(1_000 * WAD) == 1_000 * WAD
        assert market.get_max_borrow_assets(1_000 * WAD) == 860 * WAD

    def test_no_price(self):
        """Without a price, oracle-dependent values are unknown."""
        market = make_market(price=None)
        assert market.get_collateral_value(WAD) is None
        assert market.is_healthy(WAD, WAD) is None
        assert market.get_liquidation_seized_assets(WAD) is None
        # No debt is always infinitely healthy
        assert market.get_health_factor(WAD, 0) == MAX_UINT256

    def test_health_and_ltv(self, market):
        """Health factor and LTV at 43% borrowed against 86% lltv."""
        borrow_shares = market.to_borrow_shares(430 * WAD, RoundingDirection.UP)
        assert market.is_healthy(1_000 * WAD, borrow_shares) is True
        assert market.get_health_factor(1_000 * WAD, borrow_shares) == pytest.approx(2 * WAD, rel=1e-12)
        assert market.get_ltv(1_000 * WAD, borrow_shares) == pytest.approx(43 * WAD // 100, rel=1e-12)
        assert market.get_ltv(1_000 * WAD, 0) == 0
        assert market.get_ltv(0, borrow_shares) == MAX_UINT256

    def test_liquidation_price(self, market):
        """The liquidation price is where the position hits lltv."""
        borrow_shares = market.to_borrow_shares(430 * WAD, RoundingDirection.UP)
        price = market.get_liquidation_price(1_000 * WAD, borrow_shares)
        assert price == pytest.approx(PRICE_ONE // 2, rel=1e-12)
        assert market.get_liquidation_price(1_000 * WAD, 0) is None

    def test_seizable_collateral(self, market):
        """Unhealthy positions can be seized with the incentive; healthy ones cannot."""
        borrow_shares = market.to_borrow_shares(900 * WAD, RoundingDirection.UP)
        seized = market.get_seizable_collateral(1_000 * WAD, borrow_shares)
        assert seized == pytest.approx(900 * WAD * 1.043841336116910229, rel=1e-9)
        healthy_shares = market.to_borrow_shares(100 * WAD, RoundingDirection.UP)
        assert market.get_seizable_collateral(1_000 * WAD, healthy_shares) == 0

    def test_withdrawable_collateral(self, market):
        """Withdrawable collateral keeps the position at lltv."""
        borrow_shares = market.to_borrow_shares(430 * WAD, RoundingDirection.UP)
        withdrawable = market.get_withdrawable_collateral(1_000 * WAD, borrow_shares)
        assert withdrawable == pytest.approx(500 * WAD, rel=1e-12)
        assert market.get_withdrawable_collateral(1_000 * WAD, 0) == 1_000 * WAD


class TestSerialization:
    """Tests for dict round-tripping."""

    def test_round_trip(self, market):
        """Markets survive to_dict and from_dict unchanged."""
        data = market.to_dict()
        assert data["total_supply_assets"] == str(1_000_000 * WAD)
        assert Market.from_dict(data) == market

    def test_optional_fields(self):
        """Missing IRM and price round-trip as None."""
        market = make_market(rate_at_target=None, price=None)
        assert Market.from_dict(market.to_dict()) == market
