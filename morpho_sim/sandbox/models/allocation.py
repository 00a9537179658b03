"""Market/vault ranking and allocation result models."""

from dataclasses import dataclass

from morpho_sim.core.models.ids import Address, MarketId


@dataclass(frozen=True)
class MarketRanking:
    """A market's APY, liquidity and utilization at ranking time."""

    market_id: MarketId
    apy: float
    liquidity: int
    utilization: int  # WAD

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "apy": self.apy,
            "liquidity": str(self.liquidity),
            "utilization": str(self.utilization),
        }


@dataclass(frozen=True)
class VaultRanking:
    vault_address: Address
    net_apy: float
    gross_apy: float
    total_assets: int
    available_capacity: int

    def to_dict(self) -> dict:
        return {
            "vault_address": self.vault_address,
            "net_apy": self.net_apy,
            "gross_apy": self.gross_apy,
            "total_assets": str(self.total_assets),
            "available_capacity": str(self.available_capacity),
        }


@dataclass(frozen=True)
class OptimalAllocation:
    """Amount to place in one market and the supply APY expected afterwards."""

    market_id: MarketId
    amount: int
    expected_apy: float

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "amount": str(self.amount),
            "expected_apy": self.expected_apy,
        }
