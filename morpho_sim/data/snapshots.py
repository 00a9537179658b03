"""Validated snapshot payloads for building simulations.

Collaborators fetch vault and market state from an API or RPC node; these
pydantic models validate that already-fetched payload and assemble a
:class:`VaultSimulation` from it. No I/O happens here.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from morpho_sim.core.models import Market, Vault, VaultMarketConfig, to_address, to_market_id
from morpho_sim.sandbox.engine import VaultSimulation

logger = logging.getLogger(__name__)


def _parse_uint(v):
    """Accept ints, decimal strings and 0x-prefixed hex strings."""
    if isinstance(v, str):
        v = v.strip()
        if v.lower().startswith("0x"):
            return int(v, 16)
        return int(v)
    return v


class MarketStateForSim(BaseModel):
    """Market state needed by the simulation engine."""

    id: str = Field(description="Market id, 32-byte hex")
    total_supply_assets: int = Field(ge=0)
    total_borrow_assets: int = Field(ge=0)
    total_supply_shares: int = Field(ge=0)
    total_borrow_shares: int = Field(ge=0)
    last_update: int = Field(ge=0, description="Unix timestamp of last accrual")
    fee: int = Field(ge=0, description="Protocol fee, WAD")
    rate_at_target: Optional[int] = Field(default=None, ge=0, description="None without an adaptive IRM")
    price: Optional[int] = Field(default=None, ge=0, description="Oracle price scaled by 1e36")
    lltv: int = Field(ge=0, description="Liquidation LTV, WAD")

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v):
        return to_market_id(v)

    @field_validator(
        "total_supply_assets",
        "total_borrow_assets",
        "total_supply_shares",
        "total_borrow_shares",
        "last_update",
        "fee",
        "rate_at_target",
        "price",
        "lltv",
        mode="before",
    )
    @classmethod
    def parse_amounts(cls, v):
        return _parse_uint(v)

    def to_market(self) -> Market:
        return Market(
            id=self.id,
            total_supply_assets=self.total_supply_assets,
            total_borrow_assets=self.total_borrow_assets,
            total_supply_shares=self.total_supply_shares,
            total_borrow_shares=self.total_borrow_shares,
            last_update=self.last_update,
            fee=self.fee,
            rate_at_target=self.rate_at_target,
            price=self.price,
            lltv=self.lltv,
        )


class VaultAllocationForSim(BaseModel):
    """A vault's allocation to one market with its queue positions."""

    market_id: str
    supply_assets: int = Field(ge=0)
    supply_cap: int = Field(ge=0)
    enabled: bool = True
    supply_queue_index: Optional[int] = Field(default=None, description="None if not in the supply queue")
    withdraw_queue_index: Optional[int] = Field(default=None, description="None if not in the withdraw queue")

    @field_validator("market_id", mode="before")
    @classmethod
    def parse_market_id(cls, v):
        return to_market_id(v)

    @field_validator("supply_assets", "supply_cap", mode="before")
    @classmethod
    def parse_amounts(cls, v):
        return _parse_uint(v)


class VaultSimulationData(BaseModel):
    """Everything needed to simulate one vault."""

    address: str
    asset_decimals: int = Field(ge=0, le=255)
    fee: int = Field(ge=0, description="Performance fee, WAD")
    total_assets: int = Field(ge=0)
    total_assets_usd: Optional[float] = None
    total_supply: int = Field(ge=0)
    allocations: List[VaultAllocationForSim] = Field(default_factory=list)
    markets: List[MarketStateForSim] = Field(default_factory=list)

    @field_validator("address", mode="before")
    @classmethod
    def parse_address(cls, v):
        return to_address(v)

    @field_validator("fee", "total_assets", "total_supply", mode="before")
    @classmethod
    def parse_amounts(cls, v):
        return _parse_uint(v)

    def supply_queue(self) -> List[str]:
        """Market ids ordered by supply queue index; unqueued markets are excluded."""
        indexed = [(a.supply_queue_index, a.market_id) for a in self.allocations if a.supply_queue_index is not None]
        return [market_id for _, market_id in sorted(indexed, key=lambda item: item[0])]

    def withdraw_queue(self) -> List[str]:
        """Market ids ordered by withdraw queue index; unqueued markets are excluded."""
        indexed = [
            (a.withdraw_queue_index, a.market_id) for a in self.allocations if a.withdraw_queue_index is not None
        ]
        return [market_id for _, market_id in sorted(indexed, key=lambda item: item[0])]

    def to_vault_simulation(self) -> VaultSimulation:
        """
        Assemble a VaultSimulation.

        Assumes no pending interest (``last_total_assets == total_assets``),
        a zero owner and no public allocator, since snapshots do not carry them.
        """
        markets = {m.id: m.to_market() for m in self.markets}
        allocations = {
            a.market_id: VaultMarketConfig(
                market_id=a.market_id,
                cap=a.supply_cap,
                supply_assets=a.supply_assets,
                enabled=a.enabled,
            )
            for a in self.allocations
        }

        vault = Vault(
            address=self.address,
            asset_decimals=self.asset_decimals,
            fee=self.fee,
            total_assets=self.total_assets,
            total_supply=self.total_supply,
            last_total_assets=self.total_assets,
            supply_queue=tuple(self.supply_queue()),
            withdraw_queue=tuple(self.withdraw_queue()),
            allocations=allocations,
        )

        missing = [market_id for market_id in allocations if market_id not in markets]
        if missing:
            logger.warning(f"Vault {self.address} allocates to {len(missing)} markets without market data")

        return VaultSimulation(vault=vault, markets=markets)
