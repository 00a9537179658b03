"""Generic constants for fixed-point protocol calculations.

These constants are protocol-agnostic and shared by the math, IRM, market
and vault modules.
"""

# Time constants
SECONDS_PER_YEAR = 365 * 24 * 3600  # 31,536,000

# Precision constants
WAD = 10**18  # Standard 18 decimal precision
ORACLE_PRICE_SCALE = 10**36  # Morpho Blue oracle prices (collateral/loan)

# uint256 bound, also used as the "infinite" sentinel
MAX_UINT256 = 2**256 - 1

# Identifier sizes (bytes)
MARKET_ID_BYTES = 32
ADDRESS_BYTES = 20

ZERO_ADDRESS = "0x" + "00" * ADDRESS_BYTES
