"""APY impact result models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SupplyApyImpact:
    """Effect of a supply on a market's supply APY."""

    apy_before: float
    apy_after: float
    apy_delta: float
    shares_received: int

    def to_dict(self) -> dict:
        return {
            "apy_before": self.apy_before,
            "apy_after": self.apy_after,
            "apy_delta": self.apy_delta,
            "shares_received": str(self.shares_received),
        }


@dataclass(frozen=True)
class BorrowApyImpact:
    """Effect of a borrow on a market's borrow APY."""

    apy_before: float
    apy_after: float
    apy_delta: float
    shares_minted: int

    def to_dict(self) -> dict:
        return {
            "apy_before": self.apy_before,
            "apy_after": self.apy_after,
            "apy_delta": self.apy_delta,
            "shares_minted": str(self.shares_minted),
        }


@dataclass(frozen=True)
class VaultApyImpact:
    """
    Effect of a deposit or withdrawal on a vault's net APY.

    ``shares`` are the shares minted by a deposit or burned by a withdrawal.
    """

    apy_before: float
    apy_after: float
    apy_delta: float
    shares: int

    def to_dict(self) -> dict:
        return {
            "apy_before": self.apy_before,
            "apy_after": self.apy_after,
            "apy_delta": self.apy_delta,
            "shares": str(self.shares),
        }
