"""Data layer: validated snapshot payloads for simulations."""

from .snapshots import MarketStateForSim, VaultAllocationForSim, VaultSimulationData

__all__ = [
    "MarketStateForSim",
    "VaultAllocationForSim",
    "VaultSimulationData",
]
