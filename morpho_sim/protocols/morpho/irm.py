"""AdaptiveCurveIRM calculations for Morpho Blue.

Integer re-implementation of the on-chain AdaptiveCurveIrm. Rates are
per-second and WAD-scaled; results match the contract to the wei.
"""

from dataclasses import dataclass
from typing import Tuple

from morpho_sim.core.constants import MAX_UINT256, WAD
from morpho_sim.core.math import (
    saturating_sub,
    w_div_down,
    w_div_up,
    w_mul_down,
    zero_floor_sub,
)
from morpho_sim.protocols.morpho.config import (
    I128_MAX,
    IRM_PARAMS,
    LN_2_INT,
    LN_WEI_INT,
    WEXP_UPPER_BOUND,
    WEXP_UPPER_VALUE,
)


@dataclass(frozen=True)
class BorrowRateResult:
    """Result of a borrow rate computation over an elapsed period."""

    avg_borrow_rate: int  # Used to accrue interest over the period
    end_borrow_rate: int  # Instantaneous rate at the end of the period
    end_rate_at_target: int  # New rate at target to persist

    def to_dict(self) -> dict:
        return {
            "avg_borrow_rate": str(self.avg_borrow_rate),
            "end_borrow_rate": str(self.end_borrow_rate),
            "end_rate_at_target": str(self.end_rate_at_target),
        }


def _div_trunc(x: int, y: int) -> int:
    # Signed integer division rounding toward zero
    q = abs(x) // abs(y)
    return q if (x >= 0) == (y >= 0) else -q


def w_exp(x: int) -> int:
    """
    Fixed-point e^x for a signed WAD input.

    Decomposes ``x = q * ln(2) + r`` and approximates e^r with a
    second-order Taylor polynomial.

    Args:
        x: Exponent, WAD-scaled, may be negative

    Returns:
        e^x, WAD-scaled. 0 below ln(1e-18); saturates above the upper bound.
    """
    if x < LN_WEI_INT:
        return 0
    if x >= WEXP_UPPER_BOUND:
        return WEXP_UPPER_VALUE

    rounding_adjustment = -(LN_2_INT // 2) if x < 0 else LN_2_INT // 2
    q = _div_trunc(x + rounding_adjustment, LN_2_INT)
    r = x - q * LN_2_INT

    exp_r = abs(WAD + r + (r * r) // WAD // 2)
    if q >= 0:
        return exp_r << q
    return exp_r >> -q


class AdaptiveCurveIRM:
    """
    AdaptiveCurveIRM implementation for Morpho Blue.

    The AdaptiveCurveIRM adjusts the rate at target utilization based on
    whether actual utilization is above or below the target (90%), and maps
    utilization to a borrow rate along a curve that is 4x steeper above the
    target than below it.

    Reference: https://docs.morpho.org/morpho/concepts/irm
    """

    def __init__(
        self,
        target_utilization: int = IRM_PARAMS["TARGET_UTILIZATION"],
        curve_steepness: int = IRM_PARAMS["CURVE_STEEPNESS"],
        adjustment_speed: int = IRM_PARAMS["ADJUSTMENT_SPEED"],
        initial_rate_at_target: int = IRM_PARAMS["INITIAL_RATE_AT_TARGET"],
        min_rate_at_target: int = IRM_PARAMS["MIN_RATE_AT_TARGET"],
        max_rate_at_target: int = IRM_PARAMS["MAX_RATE_AT_TARGET"],
    ):
        self.target_utilization = target_utilization
        self.curve_steepness = curve_steepness
        self.adjustment_speed = adjustment_speed
        self.initial_rate_at_target = initial_rate_at_target
        self.min_rate_at_target = min_rate_at_target
        self.max_rate_at_target = max_rate_at_target

    def _new_rate_at_target(self, rate_at_target: int, adaptation: int, negative: bool) -> int:
        exp_arg = min(adaptation, I128_MAX)
        if negative:
            exp_arg = -exp_arg
        raw_rate = w_mul_down(rate_at_target, w_exp(exp_arg))
        return min(max(raw_rate, self.min_rate_at_target), self.max_rate_at_target)

    def borrow_rate(self, utilization: int, rate_at_target: int, elapsed: int) -> BorrowRateResult:
        """
        Calculate the borrow rate and the adapted rate at target.

        The average rate over the period uses the trapezoidal rule on the
        start, middle and end rate at target.

        Args:
            utilization: Market utilization (WAD)
            rate_at_target: Stored rate at target, 0 on first interaction
            elapsed: Seconds since the last update

        Returns:
            BorrowRateResult with average and end borrow rates
        """
        target = self.target_utilization
        err_norm_factor = WAD - target if utilization > target else target
        err = w_div_down(abs(utilization - target), err_norm_factor)
        err_negative = utilization < target

        if rate_at_target == 0:
            avg_rate_at_target = self.initial_rate_at_target
            end_rate_at_target = self.initial_rate_at_target
        else:
            speed = w_mul_down(self.adjustment_speed, err)
            linear_adaptation = speed * elapsed

            if linear_adaptation == 0:
                avg_rate_at_target = rate_at_target
                end_rate_at_target = rate_at_target
            else:
                end_rate_at_target = self._new_rate_at_target(rate_at_target, linear_adaptation, err_negative)
                mid_rate_at_target = self._new_rate_at_target(rate_at_target, linear_adaptation // 2, err_negative)
                avg_rate_at_target = (rate_at_target + end_rate_at_target + 2 * mid_rate_at_target) // 4

        if err_negative:
            coeff = WAD - w_div_down(WAD, self.curve_steepness)
        else:
            coeff = self.curve_steepness - WAD

        def curve(rate: int) -> int:
            adjustment = w_mul_down(coeff, err)
            if err_negative:
                return w_mul_down(saturating_sub(WAD, adjustment), rate)
            return w_mul_down(WAD + adjustment, rate)

        return BorrowRateResult(
            avg_borrow_rate=curve(avg_rate_at_target),
            end_borrow_rate=curve(end_rate_at_target),
            end_rate_at_target=end_rate_at_target,
        )

    def utilization_at_borrow_rate(self, borrow_rate: int, rate_at_target: int) -> int:
        """
        Invert the rate curve: utilization producing ``borrow_rate``.

        Returns the target utilization when ``rate_at_target`` is zero. The
        result is clamped to [0, WAD].
        """
        target = self.target_utilization
        if rate_at_target == 0:
            return target

        rate_ratio = w_div_down(borrow_rate, rate_at_target)

        if rate_ratio >= WAD:
            err = w_div_down(rate_ratio - WAD, self.curve_steepness - WAD)
            return min(target + w_mul_down(err, WAD - target), WAD)

        coeff = WAD - w_div_down(WAD, self.curve_steepness)
        if coeff == 0:
            return target
        err = w_div_up(WAD - rate_ratio, coeff)
        return zero_floor_sub(target, w_mul_down(err, target))

    def supply_for_borrow_rate(
        self,
        total_supply_assets: int,
        total_borrow_assets: int,
        target_borrow_rate: int,
        rate_at_target: int,
    ) -> Tuple[int, int]:
        """
        Supply change needed to move the market to ``target_borrow_rate``.

        Args:
            total_supply_assets: Current market supply
            total_borrow_assets: Current market borrow
            target_borrow_rate: Desired per-second borrow rate (WAD)
            rate_at_target: Current rate at target

        Returns:
            Tuple of (supply_needed, withdrawable); at most one is non-zero.
            ``(MAX_UINT256, 0)`` when the target utilization is zero.
        """
        target_utilization = self.utilization_at_borrow_rate(target_borrow_rate, rate_at_target)
        if target_utilization == 0:
            return MAX_UINT256, 0

        required_supply = w_div_up(total_borrow_assets, target_utilization)
        if required_supply > total_supply_assets:
            return required_supply - total_supply_assets, 0
        return 0, total_supply_assets - required_supply


DEFAULT_IRM = AdaptiveCurveIRM()


def get_borrow_rate(utilization: int, rate_at_target: int, elapsed: int) -> BorrowRateResult:
    return DEFAULT_IRM.borrow_rate(utilization, rate_at_target, elapsed)


def get_utilization_at_borrow_rate(borrow_rate: int, rate_at_target: int) -> int:
    return DEFAULT_IRM.utilization_at_borrow_rate(borrow_rate, rate_at_target)


def get_supply_for_borrow_rate(
    total_supply_assets: int,
    total_borrow_assets: int,
    target_borrow_rate: int,
    rate_at_target: int,
) -> Tuple[int, int]:
    return DEFAULT_IRM.supply_for_borrow_rate(
        total_supply_assets, total_borrow_assets, target_borrow_rate, rate_at_target
    )
