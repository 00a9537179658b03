"""Core constants module.

Re-exports generic constants for convenience.
"""

from morpho_sim.core.constants.generic import (
    SECONDS_PER_YEAR,
    WAD,
    ORACLE_PRICE_SCALE,
    MAX_UINT256,
    MARKET_ID_BYTES,
    ADDRESS_BYTES,
    ZERO_ADDRESS,
)

__all__ = [
    "SECONDS_PER_YEAR",
    "WAD",
    "ORACLE_PRICE_SCALE",
    "MAX_UINT256",
    "MARKET_ID_BYTES",
    "ADDRESS_BYTES",
    "ZERO_ADDRESS",
]
