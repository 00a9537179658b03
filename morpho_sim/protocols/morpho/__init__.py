"""Morpho protocol-specific implementations.

Configuration: morpho_sim.protocols.morpho.config
IRM Model: morpho_sim.protocols.morpho.irm
"""

from .config import (
    IRM_PARAMS,
    LIQUIDATION_CURSOR,
    MAX_LIQUIDATION_INCENTIVE_FACTOR,
)
from .irm import (
    AdaptiveCurveIRM,
    BorrowRateResult,
    w_exp,
    get_borrow_rate,
    get_utilization_at_borrow_rate,
    get_supply_for_borrow_rate,
)

__all__ = [
    "IRM_PARAMS",
    "LIQUIDATION_CURSOR",
    "MAX_LIQUIDATION_INCENTIVE_FACTOR",
    "AdaptiveCurveIRM",
    "BorrowRateResult",
    "w_exp",
    "get_borrow_rate",
    "get_utilization_at_borrow_rate",
    "get_supply_for_borrow_rate",
]
