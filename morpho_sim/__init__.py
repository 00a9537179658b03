"""Off-chain simulation engine for Morpho Blue markets and MetaMorpho vaults."""

from .core import (
    WAD,
    MAX_UINT256,
    RoundingDirection,
    SimulationError,
    Market,
    Position,
    Vault,
    VaultMarketConfig,
    to_market_id,
    to_address,
)
from .protocols.morpho import AdaptiveCurveIRM
from .sandbox import VaultSimulation, ReallocationStep

__version__ = "0.1.0"

__all__ = [
    "WAD",
    "MAX_UINT256",
    "RoundingDirection",
    "SimulationError",
    "Market",
    "Position",
    "Vault",
    "VaultMarketConfig",
    "to_market_id",
    "to_address",
    "AdaptiveCurveIRM",
    "VaultSimulation",
    "ReallocationStep",
]
