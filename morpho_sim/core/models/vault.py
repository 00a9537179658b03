"""MetaMorpho vault data models."""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from morpho_sim.core.constants import ZERO_ADDRESS
from morpho_sim.core.math import RoundingDirection, mul_div, zero_floor_sub
from morpho_sim.core.models.ids import Address, MarketId, to_address, to_market_id
from morpho_sim.core.models.market import Market
from morpho_sim.protocols.morpho.config import VAULT_SHARE_DECIMALS, VAULT_VIRTUAL_ASSETS


@dataclass(frozen=True)
class PublicAllocatorMarketConfig:
    """Per-market flow caps of the public allocator."""

    max_in: int
    max_out: int

    def to_dict(self) -> dict:
        return {"max_in": str(self.max_in), "max_out": str(self.max_out)}

    @classmethod
    def from_dict(cls, data: dict) -> "PublicAllocatorMarketConfig":
        return cls(max_in=int(data["max_in"]), max_out=int(data["max_out"]))


@dataclass(frozen=True)
class PublicAllocatorConfig:
    """Vault-level public allocator settings."""

    fee: int = 0
    accrued_fee: int = 0

    def to_dict(self) -> dict:
        return {"fee": str(self.fee), "accrued_fee": str(self.accrued_fee)}

    @classmethod
    def from_dict(cls, data: dict) -> "PublicAllocatorConfig":
        return cls(fee=int(data.get("fee", 0)), accrued_fee=int(data.get("accrued_fee", 0)))


@dataclass(frozen=True)
class VaultMarketConfig:
    """
    Vault's allocation to a single market.

    ``supply_assets`` is the vault's stake in the market, ``cap`` the
    maximum stake. A cap of zero means the market is not authorised.
    """

    market_id: MarketId
    cap: int
    supply_assets: int = 0
    enabled: bool = True
    public_allocator_config: Optional[PublicAllocatorMarketConfig] = None

    @property
    def headroom(self) -> int:
        """Assets that can still be supplied before hitting the cap."""
        return zero_floor_sub(self.cap, self.supply_assets)

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "cap": str(self.cap),
            "supply_assets": str(self.supply_assets),
            "enabled": self.enabled,
            "public_allocator_config": (
                self.public_allocator_config.to_dict() if self.public_allocator_config else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VaultMarketConfig":
        pa_config = data.get("public_allocator_config")
        return cls(
            market_id=to_market_id(data["market_id"]),
            cap=int(data["cap"]),
            supply_assets=int(data.get("supply_assets", 0)),
            enabled=bool(data.get("enabled", True)),
            public_allocator_config=PublicAllocatorMarketConfig.from_dict(pa_config) if pa_config else None,
        )


@dataclass(frozen=True)
class Vault:
    """
    MetaMorpho vault snapshot.

    Deposits are placed along ``supply_queue`` and withdrawals served along
    ``withdraw_queue``; every queued market must have an allocation entry.
    """

    address: Address
    asset_decimals: int
    fee: int
    total_assets: int
    total_supply: int
    last_total_assets: int
    supply_queue: Tuple[MarketId, ...] = ()
    withdraw_queue: Tuple[MarketId, ...] = ()
    allocations: Dict[MarketId, VaultMarketConfig] = field(default_factory=dict)
    owner: Address = ZERO_ADDRESS
    public_allocator_config: Optional[PublicAllocatorConfig] = None

    @property
    def decimals_offset(self) -> int:
        return max(0, VAULT_SHARE_DECIMALS - self.asset_decimals)

    @property
    def virtual_shares(self) -> int:
        return 10**self.decimals_offset

    def to_assets(self, shares: int, rounding: RoundingDirection) -> int:
        return mul_div(
            shares,
            self.total_assets + VAULT_VIRTUAL_ASSETS,
            self.total_supply + self.virtual_shares,
            rounding,
        )

    def to_shares(self, assets: int, rounding: RoundingDirection) -> int:
        return mul_div(
            assets,
            self.total_supply + self.virtual_shares,
            self.total_assets + VAULT_VIRTUAL_ASSETS,
            rounding,
        )

    @property
    def total_interest(self) -> int:
        """Interest earned since ``last_total_assets`` was recorded."""
        return zero_floor_sub(self.total_assets, self.last_total_assets)

    def max_deposit(self) -> int:
        """Sum of cap headroom over the supply queue."""
        return sum(
            self.allocations[market_id].headroom
            for market_id in self.supply_queue
            if market_id in self.allocations
        )

    def max_withdraw(self, markets: Mapping[MarketId, Market]) -> int:
        """Sum over the withdraw queue of ``min(stake, market liquidity)``."""
        withdrawable = 0
        for market_id in self.withdraw_queue:
            config = self.allocations.get(market_id)
            market = markets.get(market_id)
            if config is None or market is None:
                continue
            withdrawable += min(config.supply_assets, market.liquidity)
        return withdrawable

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "asset_decimals": self.asset_decimals,
            "fee": str(self.fee),
            "total_assets": str(self.total_assets),
            "total_supply": str(self.total_supply),
            "last_total_assets": str(self.last_total_assets),
            "supply_queue": list(self.supply_queue),
            "withdraw_queue": list(self.withdraw_queue),
            "allocations": [config.to_dict() for config in self.allocations.values()],
            "owner": self.owner,
            "public_allocator_config": (
                self.public_allocator_config.to_dict() if self.public_allocator_config else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Vault":
        allocations = [VaultMarketConfig.from_dict(item) for item in data.get("allocations", [])]
        pa_config = data.get("public_allocator_config")
        return cls(
            address=to_address(data["address"]),
            asset_decimals=int(data["asset_decimals"]),
            fee=int(data.get("fee", 0)),
            total_assets=int(data["total_assets"]),
            total_supply=int(data["total_supply"]),
            last_total_assets=int(data.get("last_total_assets", data["total_assets"])),
            supply_queue=tuple(to_market_id(m) for m in data.get("supply_queue", [])),
            withdraw_queue=tuple(to_market_id(m) for m in data.get("withdraw_queue", [])),
            allocations={config.market_id: config for config in allocations},
            owner=to_address(data.get("owner", ZERO_ADDRESS)),
            public_allocator_config=PublicAllocatorConfig.from_dict(pa_config) if pa_config else None,
        )
