"""Morpho Blue protocol-specific configuration and constants."""

from morpho_sim.core.constants.generic import WAD

# Morpho Blue AdaptiveCurveIRM parameters (WAD-scaled, per-second rates)
# Reference: https://docs.morpho.org/morpho/concepts/irm
IRM_PARAMS = {
    # Target utilization (90%)
    "TARGET_UTILIZATION": 9 * WAD // 10,
    # Speed of adaptation: 50% / year, per second
    "ADJUSTMENT_SPEED": 15_854_895_991,
    # Curve steepness (4x)
    "CURVE_STEEPNESS": 4 * WAD,
    # Min/Max rate at target bounds: 0.1% and 200% APR, per second
    "MIN_RATE_AT_TARGET": 31_709_791,
    "MAX_RATE_AT_TARGET": 63_419_583_967,
    # Initial rate at target: 4% APR, per second
    "INITIAL_RATE_AT_TARGET": 1_268_391_679,
}

# Fixed-point exponential bounds
LN_2_INT = 693_147_180_559_945_309
LN_WEI_INT = -41_446_531_673_892_822_312
WEXP_UPPER_BOUND = 93_859_467_695_000_404_319
WEXP_UPPER_VALUE = 57_716_089_161_558_943_949_701_069_502_944_508_345_128_422_502_756_744_429_568

# Signed adaptation values saturate at the int128 bound
I128_MAX = 2**127 - 1

# Liquidation incentive parameters
LIQUIDATION_CURSOR = 3 * WAD // 10  # 0.3
MAX_LIQUIDATION_INCENTIVE_FACTOR = 115 * WAD // 100  # 1.15

# MetaMorpho vaults use 18 - asset decimals as share offset
VAULT_VIRTUAL_ASSETS = 1
VAULT_SHARE_DECIMALS = 18

# APY bisection defaults
APY_SEARCH_TOLERANCE = 1e-8
APY_SEARCH_MAX_ITERATIONS = 100
APY_ZERO_THRESHOLD = 1e-10
