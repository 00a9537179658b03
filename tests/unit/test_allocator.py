"""Unit tests for market and vault ranking and allocation."""

from dataclasses import replace

import pytest

from conftest import MARKET_1, MARKET_2, MARKET_3, T0, make_market
from morpho_sim.core.constants import WAD
from morpho_sim.core.models import to_address
from morpho_sim.sandbox.engine import (
    find_best_market_for_supply,
    find_best_vault_for_deposit,
    find_optimal_market_allocation,
    rank_markets_by_borrow_apy,
    rank_markets_by_supply_apy,
    rank_vaults_by_apy,
)


@pytest.fixture
def candidate_markets() -> dict:
    """Market 1 at 80% utilization, market 2 at 95% with 25k of liquidity."""
    return {
        MARKET_1: make_market(MARKET_1),
        MARKET_2: make_market(MARKET_2, supply=500_000 * WAD, borrow=475_000 * WAD),
    }


@pytest.fixture
def high_fee_simulation(simulation):
    """Same allocation as the base vault with a 50% performance fee."""
    vault = replace(simulation.vault, address=to_address("0x" + "ef" * 20), fee=WAD // 2)
    return replace(simulation, vault=vault)


class TestMarketRanking:
    """Tests for market rankings."""

    def test_supply_ranking(self, candidate_markets):
        """Markets are ordered by supply APY, highest first."""
        rankings = rank_markets_by_supply_apy(candidate_markets, T0)

        assert [r.market_id for r in rankings] == [MARKET_2, MARKET_1]
        assert rankings[0].apy > rankings[1].apy
        assert rankings[0].liquidity == 25_000 * WAD
        assert rankings[0].utilization == 95 * WAD // 100

    def test_borrow_ranking(self, candidate_markets):
        """Markets are ordered by borrow APY, lowest first."""
        rankings = rank_markets_by_borrow_apy(candidate_markets, T0)
        assert [r.market_id for r in rankings] == [MARKET_1, MARKET_2]

    def test_accepts_pairs(self, candidate_markets):
        """Rankings accept (market_id, market) pairs as well as a mapping."""
        rankings = rank_markets_by_supply_apy(list(candidate_markets.items()), T0)
        assert len(rankings) == 2

    def test_skips_failing_markets(self, candidate_markets):
        """A market updated after the query timestamp cannot be ranked."""
        candidate_markets[MARKET_3] = make_market(MARKET_3, last_update=T0 + 100)
        rankings = rank_markets_by_supply_apy(candidate_markets, T0)
        assert MARKET_3 not in [r.market_id for r in rankings]


class TestBestMarket:
    """Tests for find_best_market_for_supply."""

    def test_highest_apy_after_supply(self, candidate_markets):
        """The best market is judged on its APY after the supply."""
        market_id, apy = find_best_market_for_supply(candidate_markets, 10_000 * WAD, T0)
        assert market_id == MARKET_2
        assert apy > 0

    def test_skips_markets_without_liquidity(self, candidate_markets):
        """Markets with less liquidity than the amount are not candidates."""
        market_id, _ = find_best_market_for_supply(candidate_markets, 50_000 * WAD, T0)
        assert market_id == MARKET_1

    def test_no_candidate(self, candidate_markets):
        """No candidate when every market lacks liquidity."""
        assert find_best_market_for_supply(candidate_markets, 1_000_000 * WAD, T0) is None


class TestOptimalAllocation:
    """Tests for find_optimal_market_allocation."""

    def test_respects_caps(self, candidate_markets):
        """Amounts above a market's cap spill to the next best market."""
        allocations = find_optimal_market_allocation(
            candidate_markets,
            300_000 * WAD,
            {MARKET_2: 100_000 * WAD},
            T0,
        )

        assert [(a.market_id, a.amount) for a in allocations] == [
            (MARKET_2, 100_000 * WAD),
            (MARKET_1, 200_000 * WAD),
        ]
        assert all(a.expected_apy > 0 for a in allocations)

    def test_uncapped_goes_to_best_market(self, candidate_markets):
        """Without caps the whole amount goes to the best market."""
        allocations = find_optimal_market_allocation(candidate_markets, 300_000 * WAD, None, T0)
        assert [(a.market_id, a.amount) for a in allocations] == [(MARKET_2, 300_000 * WAD)]

    def test_zero_cap_is_skipped(self, candidate_markets):
        """Markets with a zero cap receive nothing."""
        allocations = find_optimal_market_allocation(candidate_markets, WAD, {MARKET_2: 0}, T0)
        assert [a.market_id for a in allocations] == [MARKET_1]


class TestVaultRanking:
    """Tests for vault rankings."""

    def test_ranked_by_net_apy(self, simulation, high_fee_simulation):
        """Vaults are ordered by net APY; the higher fee ranks lower."""
        rankings = rank_vaults_by_apy([high_fee_simulation, simulation], T0)

        assert [r.vault_address for r in rankings] == [
            simulation.vault.address,
            high_fee_simulation.vault.address,
        ]
        assert rankings[0].gross_apy == rankings[1].gross_apy
        assert rankings[0].available_capacity == simulation.vault.max_deposit()

    def test_best_vault_for_deposit(self, simulation, high_fee_simulation):
        """The best vault maximizes net APY after the deposit."""
        address, apy = find_best_vault_for_deposit([high_fee_simulation, simulation], 100_000 * WAD, T0)
        assert address == simulation.vault.address
        assert apy < simulation.get_net_apy(T0)

    def test_no_vault_with_capacity(self, simulation):
        """No vault is returned when the deposit exceeds every capacity."""
        assert find_best_vault_for_deposit([simulation], 3_000_000 * WAD, T0) is None
