"""Core module - constants, fixed-point math, errors and models."""

from .constants import WAD, MAX_UINT256, ORACLE_PRICE_SCALE, SECONDS_PER_YEAR
from .math import RoundingDirection
from .errors import SimulationError, ErrorCategory
from .models import Market, Position, Vault, VaultMarketConfig, MarketId, Address, to_market_id, to_address

__all__ = [
    "WAD",
    "MAX_UINT256",
    "ORACLE_PRICE_SCALE",
    "SECONDS_PER_YEAR",
    "RoundingDirection",
    "SimulationError",
    "ErrorCategory",
    "Market",
    "Position",
    "Vault",
    "VaultMarketConfig",
    "MarketId",
    "Address",
    "to_market_id",
    "to_address",
]
