"""WAD fixed-point arithmetic matching Morpho Blue's on-chain rounding.

All amounts and rates are Python ints scaled by WAD (1e18). Every helper
takes an explicit rounding direction (or encodes it in its name) so callers
can always round in the protocol's favour.
"""

import math
from enum import Enum

from morpho_sim.core.constants import SECONDS_PER_YEAR, WAD
from morpho_sim.core.errors import DivisionByZero

# Virtual shares/assets used by Morpho Blue to protect against share inflation
VIRTUAL_SHARES = 10**6
VIRTUAL_ASSETS = 1


class RoundingDirection(Enum):
    """Rounding direction for fixed-point division."""

    DOWN = "down"
    UP = "up"


def mul_div(x: int, y: int, denominator: int, rounding: RoundingDirection) -> int:
    """Compute ``x * y / denominator`` with the given rounding."""
    if denominator == 0:
        raise DivisionByZero()
    if rounding == RoundingDirection.UP:
        return (x * y + denominator - 1) // denominator
    return (x * y) // denominator


def mul_div_down(x: int, y: int, denominator: int) -> int:
    return mul_div(x, y, denominator, RoundingDirection.DOWN)


def mul_div_up(x: int, y: int, denominator: int) -> int:
    return mul_div(x, y, denominator, RoundingDirection.UP)


def w_mul_down(x: int, y: int) -> int:
    """WAD multiplication rounded down: ``x * y / WAD``."""
    return mul_div_down(x, y, WAD)


def w_mul_up(x: int, y: int) -> int:
    return mul_div_up(x, y, WAD)


def w_div_down(x: int, y: int) -> int:
    """WAD division rounded down: ``x * WAD / y``."""
    return mul_div_down(x, WAD, y)


def w_div_up(x: int, y: int) -> int:
    return mul_div_up(x, WAD, y)


def w_taylor_compounded(x: int, n: int) -> int:
    """
    Third-order Taylor approximation of ``e^(x*n) - 1``.

    Used to compound a per-second rate over ``n`` seconds.

    Args:
        x: Per-second rate (WAD)
        n: Number of seconds

    Returns:
        Compounded growth factor minus one (WAD)
    """
    first_term = x * n
    second_term = mul_div_down(first_term, first_term, 2 * WAD)
    third_term = mul_div_down(second_term, first_term, 3 * WAD)
    return first_term + second_term + third_term


def to_shares(
    assets: int,
    total_assets: int,
    total_shares: int,
    rounding: RoundingDirection,
) -> int:
    """Convert assets to shares using Morpho Blue's virtual offsets."""
    return mul_div(
        assets,
        total_shares + VIRTUAL_SHARES,
        total_assets + VIRTUAL_ASSETS,
        rounding,
    )


def to_assets(
    shares: int,
    total_assets: int,
    total_shares: int,
    rounding: RoundingDirection,
) -> int:
    """Convert shares to assets using Morpho Blue's virtual offsets."""
    return mul_div(
        shares,
        total_assets + VIRTUAL_ASSETS,
        total_shares + VIRTUAL_SHARES,
        rounding,
    )


def zero_floor_sub(x: int, y: int) -> int:
    """Return ``x - y`` floored at zero."""
    return x - y if x > y else 0


# uint256 saturating subtraction has the same semantics
saturating_sub = zero_floor_sub


def rate_to_apy(rate: int) -> float:
    """
    Convert a per-second WAD rate to an APY with continuous compounding.

    APY = e^(rate * SECONDS_PER_YEAR) - 1

    Args:
        rate: Per-second rate scaled by WAD

    Returns:
        APY as a float (0.05 means 5%)
    """
    return math.expm1(rate / WAD * SECONDS_PER_YEAR)


def rate_to_float(value: int) -> float:
    """Convert a WAD-scaled value to a float."""
    return value / WAD
