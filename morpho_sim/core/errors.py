"""Simulation error taxonomy.

Every failure of a simulated operation is raised as a subclass of
:class:`SimulationError`. Errors carry structured context (market id, vault
address, user, amounts) so collaborators can render user-facing messages or
log internal faults without parsing strings.

None of these errors are retryable: identical inputs reproduce identical
errors.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Cause-based grouping of simulation errors."""

    TEMPORAL = "temporal"
    CAPACITY = "capacity"
    POSITION = "position"
    VAULT_CONFIGURATION = "vault_configuration"
    PUBLIC_ALLOCATOR = "public_allocator"
    SEARCH = "search"
    ARITHMETIC = "arithmetic"


class SimulationError(Exception):
    """Base class for all simulation errors."""

    category: ErrorCategory = ErrorCategory.ARITHMETIC
    is_user_error: bool = False
    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    @property
    def kind(self) -> str:
        """Error kind name, e.g. ``AllCapsReached``."""
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "category": self.category.value,
            "message": self.message,
            "user_error": self.is_user_error,
            "retryable": self.retryable,
            "context": dict(self.context),
        }


# ========== TEMPORAL ==========


class InvalidInterestAccrual(SimulationError):
    """Interest accrual was attempted with a timestamp before the last update."""

    category = ErrorCategory.TEMPORAL
    is_user_error = True

    def __init__(self, timestamp: int, last_update: int, market_id: Optional[str] = None):
        super().__init__(
            f"Invalid interest accrual: timestamp {timestamp} is before last update {last_update}",
            timestamp=timestamp,
            last_update=last_update,
            market_id=market_id,
        )
        self.timestamp = timestamp
        self.last_update = last_update
        self.market_id = market_id


# ========== CAPACITY ==========


class AllCapsReached(SimulationError):
    """Deposit could not be fully placed: every supply cap is exhausted."""

    category = ErrorCategory.CAPACITY
    is_user_error = True

    def __init__(self, vault: str, remaining: int):
        super().__init__(
            f"All caps reached for vault {vault}: {remaining} assets could not be deposited",
            vault=vault,
            remaining=remaining,
        )
        self.vault = vault
        self.remaining = remaining


class NotEnoughLiquidity(SimulationError):
    """Withdrawal could not be fully served from the withdraw queue."""

    category = ErrorCategory.CAPACITY
    is_user_error = True

    def __init__(self, vault: str, remaining: int):
        super().__init__(
            f"Not enough liquidity for vault {vault}: {remaining} assets could not be withdrawn",
            vault=vault,
            remaining=remaining,
        )
        self.vault = vault
        self.remaining = remaining


class InsufficientMarketLiquidity(SimulationError):
    """Operation would leave a market with more borrow than supply."""

    category = ErrorCategory.CAPACITY
    is_user_error = True

    def __init__(self, market_id: str):
        super().__init__(f"Insufficient liquidity in market {market_id}", market_id=market_id)
        self.market_id = market_id


class RepayExceedsBorrow(SimulationError):
    """Repayment is larger than the market's outstanding borrow."""

    category = ErrorCategory.CAPACITY
    is_user_error = True

    def __init__(self, market_id: str, assets: int, total_borrow_assets: int):
        super().__init__(
            f"Repay of {assets} exceeds total borrow {total_borrow_assets} in market {market_id}",
            market_id=market_id,
            assets=assets,
            total_borrow_assets=total_borrow_assets,
        )
        self.market_id = market_id
        self.assets = assets
        self.total_borrow_assets = total_borrow_assets


class SupplyCapExceeded(SimulationError):
    """Reallocation target is above the vault's cap for a market."""

    category = ErrorCategory.CAPACITY
    is_user_error = True

    def __init__(self, vault: str, market_id: str, cap: int):
        super().__init__(
            f"Supply cap exceeded for market {market_id} in vault {vault}: cap is {cap}",
            vault=vault,
            market_id=market_id,
            cap=cap,
        )
        self.vault = vault
        self.market_id = market_id
        self.cap = cap


# ========== POSITION / HEALTH ==========


class InsufficientPosition(SimulationError):
    """User tried to withdraw or repay more than their position holds."""

    category = ErrorCategory.POSITION
    is_user_error = True

    def __init__(self, user: str, market_id: str):
        super().__init__(
            f"Insufficient position for user {user} in market {market_id}",
            user=user,
            market_id=market_id,
        )
        self.user = user
        self.market_id = market_id


class InsufficientCollateral(SimulationError):
    """Position would be unhealthy after the operation."""

    category = ErrorCategory.POSITION
    is_user_error = True

    def __init__(self, user: str, market_id: str):
        super().__init__(
            f"Insufficient collateral for user {user} in market {market_id}",
            user=user,
            market_id=market_id,
        )
        self.user = user
        self.market_id = market_id


class UnknownOraclePrice(SimulationError):
    """Operation needs an oracle price the market snapshot does not carry."""

    category = ErrorCategory.POSITION
    is_user_error = True

    def __init__(self, market_id: str):
        super().__init__(f"Oracle price unknown for market {market_id}", market_id=market_id)
        self.market_id = market_id


# ========== VAULT CONFIGURATION ==========


class MarketNotFound(SimulationError):
    """A referenced market is missing from the allocations or market map."""

    category = ErrorCategory.VAULT_CONFIGURATION

    def __init__(self, market_id: str):
        super().__init__(f"Market {market_id} not found in vault allocations", market_id=market_id)
        self.market_id = market_id


class MarketNotEnabled(SimulationError):
    category = ErrorCategory.VAULT_CONFIGURATION

    def __init__(self, vault: str, market_id: str):
        super().__init__(
            f"Market {market_id} not enabled in vault {vault}",
            vault=vault,
            market_id=market_id,
        )
        self.vault = vault
        self.market_id = market_id


class UnauthorizedMarket(SimulationError):
    """Supply into a market whose cap is zero."""

    category = ErrorCategory.VAULT_CONFIGURATION

    def __init__(self, vault: str, market_id: str):
        super().__init__(
            f"Unauthorized market {market_id} in vault {vault}",
            vault=vault,
            market_id=market_id,
        )
        self.vault = vault
        self.market_id = market_id


class InconsistentReallocation(SimulationError):
    """Total supplied differs from total withdrawn in a reallocation."""

    category = ErrorCategory.VAULT_CONFIGURATION

    def __init__(self, vault: str, supplied: int, withdrawn: int):
        super().__init__(
            f"Inconsistent reallocation in vault {vault}: supplied {supplied}, withdrawn {withdrawn}",
            vault=vault,
            supplied=supplied,
            withdrawn=withdrawn,
        )
        self.vault = vault
        self.supplied = supplied
        self.withdrawn = withdrawn


class EmptySupplyQueue(SimulationError):
    category = ErrorCategory.VAULT_CONFIGURATION

    def __init__(self, vault: Optional[str] = None):
        super().__init__("Vault has empty supply queue", vault=vault)
        self.vault = vault


# ========== PUBLIC ALLOCATOR ==========


class PublicAllocatorNotConfigured(SimulationError):
    category = ErrorCategory.PUBLIC_ALLOCATOR

    def __init__(self, vault: str):
        super().__init__(f"Public allocator not configured for vault {vault}", vault=vault)
        self.vault = vault


class MaxInflowExceeded(SimulationError):
    category = ErrorCategory.PUBLIC_ALLOCATOR
    is_user_error = True

    def __init__(self, vault: str, market_id: str):
        super().__init__(
            f"Max inflow exceeded for market {market_id} in vault {vault}",
            vault=vault,
            market_id=market_id,
        )
        self.vault = vault
        self.market_id = market_id


class MaxOutflowExceeded(SimulationError):
    category = ErrorCategory.PUBLIC_ALLOCATOR
    is_user_error = True

    def __init__(self, vault: str, market_id: str):
        super().__init__(
            f"Max outflow exceeded for market {market_id} in vault {vault}",
            vault=vault,
            market_id=market_id,
        )
        self.vault = vault
        self.market_id = market_id


class EmptyWithdrawals(SimulationError):
    category = ErrorCategory.PUBLIC_ALLOCATOR
    is_user_error = True

    def __init__(self, vault: str):
        super().__init__(f"Empty withdrawals list for vault {vault}", vault=vault)
        self.vault = vault


class WithdrawalsNotSorted(SimulationError):
    """Withdrawal market ids must be strictly ascending."""

    category = ErrorCategory.PUBLIC_ALLOCATOR
    is_user_error = True

    def __init__(self, vault: str):
        super().__init__(f"Withdrawals not sorted for vault {vault}", vault=vault)
        self.vault = vault


class DepositMarketInWithdrawals(SimulationError):
    category = ErrorCategory.PUBLIC_ALLOCATOR
    is_user_error = True

    def __init__(self, vault: str, market_id: str):
        super().__init__(
            f"Deposit market {market_id} included in withdrawals for vault {vault}",
            vault=vault,
            market_id=market_id,
        )
        self.vault = vault
        self.market_id = market_id


# ========== SEARCH ==========


class ConvergenceFailure(SimulationError):
    category = ErrorCategory.SEARCH

    def __init__(self, max_iterations: int):
        super().__init__(
            f"Binary search failed to converge within {max_iterations} iterations",
            max_iterations=max_iterations,
        )
        self.max_iterations = max_iterations


class InvalidApyTarget(SimulationError):
    """A positive APY delta was requested from a deposit."""

    category = ErrorCategory.SEARCH
    is_user_error = True

    def __init__(self, target: float):
        super().__init__(
            f"Target APY delta {target} cannot be achieved (deposit can only decrease APY)",
            target=target,
        )
        self.target = target


# ========== ARITHMETIC ==========


class DivisionByZero(SimulationError):
    category = ErrorCategory.ARITHMETIC

    def __init__(self):
        super().__init__("Division by zero")
