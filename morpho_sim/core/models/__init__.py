"""Core data models for the Morpho simulation engine."""

from .ids import MarketId, Address, to_market_id, to_address
from .market import (
    Market,
    AccrualRates,
    get_utilization,
    get_liquidation_incentive_factor,
    get_supply_to_utilization,
    get_withdraw_to_utilization,
    get_borrow_to_utilization,
    get_repay_to_utilization,
)
from .position import Position, PositionCapacities, CapacityLimit, CapacityLimitReason
from .vault import Vault, VaultMarketConfig, PublicAllocatorConfig, PublicAllocatorMarketConfig

__all__ = [
    "MarketId",
    "Address",
    "to_market_id",
    "to_address",
    "Market",
    "AccrualRates",
    "get_utilization",
    "get_liquidation_incentive_factor",
    "get_supply_to_utilization",
    "get_withdraw_to_utilization",
    "get_borrow_to_utilization",
    "get_repay_to_utilization",
    "Position",
    "PositionCapacities",
    "CapacityLimit",
    "CapacityLimitReason",
    "Vault",
    "VaultMarketConfig",
    "PublicAllocatorConfig",
    "PublicAllocatorMarketConfig",
]
