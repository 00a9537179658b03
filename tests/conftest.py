"""Pytest configuration and fixtures."""

import pytest

from morpho_sim.core.constants import WAD
from morpho_sim.core.models import (
    Market,
    PublicAllocatorConfig,
    PublicAllocatorMarketConfig,
    Vault,
    VaultMarketConfig,
    to_address,
    to_market_id,
)
from morpho_sim.protocols.morpho.config import IRM_PARAMS
from morpho_sim.sandbox.engine import VaultSimulation

T0 = 1_700_000_000
ONE_DAY = 86_400

RATE_AT_TARGET = IRM_PARAMS["INITIAL_RATE_AT_TARGET"]
PRICE_ONE = 10**36

MARKET_1 = to_market_id(bytes([1] * 32))
MARKET_2 = to_market_id(bytes([2] * 32))
MARKET_3 = to_market_id(bytes([3] * 32))
VAULT_ADDRESS = to_address("0x" + "ab" * 20)
USER = to_address("0x" + "cd" * 20)


def make_market(
    market_id: str = MARKET_1,
    supply: int = 1_000_000 * WAD,
    borrow: int = 800_000 * WAD,
    last_update: int = T0,
    fee: int = WAD // 10,
    rate_at_target=RATE_AT_TARGET,
    price=PRICE_ONE,
    lltv: int = 86 * WAD // 100,
) -> Market:
    """Create a market whose shares equal its assets."""
    return Market(
        id=market_id,
        total_supply_assets=supply,
        total_borrow_assets=borrow,
        total_supply_shares=supply,
        total_borrow_shares=borrow,
        last_update=last_update,
        fee=fee,
        rate_at_target=rate_at_target,
        price=price,
        lltv=lltv,
    )


@pytest.fixture
def market() -> Market:
    """1M supplied, 800k borrowed: 80% utilization, ~4% rate at target, 10% fee."""
    return make_market()


@pytest.fixture
def markets() -> dict:
    """Two markets with the same utilization but different sizes."""
    return {
        MARKET_1: make_market(MARKET_1),
        MARKET_2: make_market(MARKET_2, supply=500_000 * WAD, borrow=400_000 * WAD),
    }


@pytest.fixture
def vault(markets) -> Vault:
    """Vault holding 600k in market 1 and 300k in market 2."""
    return Vault(
        address=VAULT_ADDRESS,
        asset_decimals=18,
        fee=WAD // 10,
        total_assets=900_000 * WAD,
        total_supply=900_000 * WAD,
        last_total_assets=900_000 * WAD,
        supply_queue=(MARKET_1, MARKET_2),
        withdraw_queue=(MARKET_2, MARKET_1),
        allocations={
            MARKET_1: VaultMarketConfig(
                market_id=MARKET_1,
                cap=2_000_000 * WAD,
                supply_assets=600_000 * WAD,
                public_allocator_config=PublicAllocatorMarketConfig(
                    max_in=1_000_000 * WAD,
                    max_out=200_000 * WAD,
                ),
            ),
            MARKET_2: VaultMarketConfig(
                market_id=MARKET_2,
                cap=1_000_000 * WAD,
                supply_assets=300_000 * WAD,
                public_allocator_config=PublicAllocatorMarketConfig(
                    max_in=100_000 * WAD,
                    max_out=100_000 * WAD,
                ),
            ),
        },
        public_allocator_config=PublicAllocatorConfig(),
    )


@pytest.fixture
def simulation(vault, markets) -> VaultSimulation:
    """Vault simulation over the two fixture markets."""
    return VaultSimulation(vault=vault, markets=markets)
