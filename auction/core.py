"""
Core types and pure helpers for the round auction engine.

This module provides the foundational data structures shared by every component:
1. Protocols: Clock for time, TimerHost for wall-clock callbacks
2. Immutable data structures: Lot, Account, Bid, Round, AuctionConfig
3. Exceptions: AuctionError and the command-level rejection types
4. Enums: Phase, ExecuteResult, TransitionResult
5. Read-only projections: LotView, AccountView

Records are frozen dataclasses. Components replace records instead of
mutating them, so any tuple handed to a caller is a safe point-in-time copy.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Tuple, Protocol, runtime_checkable, Any


# ============================================================================
# CONSTANTS
# ============================================================================

# Seconds a round accepts bids.
DEFAULT_ROUND_DURATION = 60.0

# Seconds between a round's settlement and the next round.
DEFAULT_FREEZE_DURATION = 10.0

# Number of lots drawn into each round's open set.
DEFAULT_LOTS_PER_ROUND = 3

# Seconds before a timer-delivered transition that raised is delivered again.
DEFAULT_RETRY_DELAY = 1.0

ZERO = Decimal("0")

# Event action names (strings, not enum, same as the other event tags).
ACTION_ROUND_END = "round_end"
ACTION_FREEZE_END = "freeze_end"

# Round end sorts ahead of freeze end when both share a timestamp.
PRIORITY_ROUND_END = 0
PRIORITY_FREEZE_END = 10


# ============================================================================
# ENUMS
# ============================================================================

class Phase(Enum):
    """
    Lifecycle phase of the round scheduler.

    IDLE: No round has been opened yet.
    OPEN: The current round accepts bids on its open lots.
    RESOLVING: The round's deadline has passed and settlement is running.
    FROZEN: Settlement is done; waiting for the freeze window to elapse.
    STOPPED: Shut down by the host. Terminal.
    """
    IDLE = "idle"
    OPEN = "open"
    RESOLVING = "resolving"
    FROZEN = "frozen"
    STOPPED = "stopped"


class ExecuteResult(Enum):
    """
    Outcome of applying a settlement to a store.

    APPLIED: The settlement was applied.
    ALREADY_APPLIED: This round generation was applied before (idempotent retry).
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


class TransitionResult(Enum):
    """
    Outcome of a timer-driven phase transition.

    APPLIED: The transition ran against the current round.
    STALE: The event belongs to a superseded generation or an already
           completed transition and was ignored.
    """
    APPLIED = "applied"
    STALE = "stale"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class AuctionError(Exception):
    """Base exception for all auction errors."""
    pass


class InvalidAmount(AuctionError):
    """Raised when a bid amount is below the lot's floor price or not a valid amount."""
    pass


class LotUnavailable(AuctionError):
    """Raised when bidding on a lot outside the current round's open set."""
    pass


class InsufficientBalance(AuctionError):
    """Raised when a bid would push the account's exposure above its balance."""
    pass


class RoundFrozen(AuctionError):
    """Raised when a bid command arrives while the round is not accepting bids."""
    pass


class NotFound(AuctionError):
    """Raised when a referenced record does not exist."""
    pass


class BidNotFound(NotFound):
    """Raised when removing a bid that does not exist."""
    pass


class AccountNotFound(NotFound):
    """Raised when referencing an account that is not in the account book."""
    pass


class LotNotFound(NotFound):
    """Raised when referencing a lot that is not in the catalog."""
    pass


class SettlementError(AuctionError):
    """Raised when a settlement would violate a store invariant. Nothing is applied."""
    pass


# ============================================================================
# AMOUNTS
# ============================================================================

def to_amount(value: Any) -> Decimal:
    """
    Coerce a numeric value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Raises:
        InvalidAmount: If the value is not numeric or not finite.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmount(f"Amount must be numeric, got {value!r}") from None
    if amount.is_nan() or amount.is_infinite():
        raise InvalidAmount(f"Amount must be finite, got {value!r}")
    return amount


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Lot:
    """
    A tradable item in the catalog.

    Attributes:
        lot_id: Unique identifier.
        label: Human-readable name.
        floor_price: Minimum acceptable bid (fixed, >= 0).
        current_price: Last settled price (>= floor_price, starts at floor_price).
        owner_id: Account that won the lot most recently, or None.
    """
    lot_id: str
    label: str
    floor_price: Decimal
    current_price: Optional[Decimal] = None
    owner_id: Optional[str] = None

    def __post_init__(self):
        if not self.lot_id or not self.lot_id.strip():
            raise ValueError("Lot lot_id cannot be empty")
        floor = to_amount(self.floor_price)
        if floor < ZERO:
            raise ValueError(f"Lot {self.lot_id} floor_price must be >= 0, got {floor}")
        object.__setattr__(self, 'floor_price', floor)
        current = floor if self.current_price is None else to_amount(self.current_price)
        if current < floor:
            raise ValueError(
                f"Lot {self.lot_id} current_price {current} below floor {floor}"
            )
        object.__setattr__(self, 'current_price', current)


@dataclass(frozen=True, slots=True)
class Account:
    """
    A funded bidder.

    Attributes:
        account_id: Unique identifier.
        name: Display name.
        balance: Funds available for settlement (>= 0, never increases).
    """
    account_id: str
    name: str
    balance: Decimal

    def __post_init__(self):
        if not self.account_id or not self.account_id.strip():
            raise ValueError("Account account_id cannot be empty")
        balance = to_amount(self.balance)
        if balance < ZERO:
            raise ValueError(f"Account {self.account_id} balance must be >= 0, got {balance}")
        object.__setattr__(self, 'balance', balance)


@dataclass(frozen=True, slots=True)
class Bid:
    """
    An account's active offer on a lot for the current round.

    sequence is the ledger-wide submission counter used to break ties:
    among equal amounts, the lowest sequence (earliest submission) wins.
    """
    lot_id: str
    account_id: str
    amount: Decimal
    sequence: int

    def __repr__(self) -> str:
        return f"Bid({self.account_id}→{self.lot_id}: {self.amount} #{self.sequence})"


@dataclass(frozen=True, slots=True)
class Round:
    """
    One time-boxed bidding window.

    Attributes:
        generation: Monotonically increasing id; events for other generations are stale.
        open_lot_ids: Lots accepting bids this round (distinct, drawn without replacement).
        start_time: Clock time the round opened.
        end_time: Clock time bidding closes.
        phase: OPEN, RESOLVING or FROZEN.
        freeze_end_time: Clock time the next round opens (set when FROZEN).
    """
    generation: int
    open_lot_ids: Tuple[str, ...]
    start_time: float
    end_time: float
    phase: Phase = Phase.OPEN
    freeze_end_time: Optional[float] = None

    def is_open_lot(self, lot_id: str) -> bool:
        return lot_id in self.open_lot_ids


@dataclass(frozen=True, slots=True)
class AuctionConfig:
    """
    Timing and draw parameters, fixed for the life of an engine.

    Attributes:
        round_duration: Seconds each round accepts bids (> 0).
        freeze_duration: Seconds between settlement and the next round (>= 0).
        lots_per_round: Size k of each round's open set (>= 1, <= catalog size).
        seed: Seed for the lot draw RNG. None draws from OS entropy.
        retry_delay: Seconds before a failed timer transition is re-delivered (> 0).
    """
    round_duration: float = DEFAULT_ROUND_DURATION
    freeze_duration: float = DEFAULT_FREEZE_DURATION
    lots_per_round: int = DEFAULT_LOTS_PER_ROUND
    seed: Optional[int] = None
    retry_delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self):
        if self.round_duration <= 0:
            raise ValueError(f"round_duration must be positive, got {self.round_duration}")
        if self.freeze_duration < 0:
            raise ValueError(f"freeze_duration must be >= 0, got {self.freeze_duration}")
        if self.lots_per_round < 1:
            raise ValueError(f"lots_per_round must be >= 1, got {self.lots_per_round}")
        if self.retry_delay <= 0:
            raise ValueError(f"retry_delay must be positive, got {self.retry_delay}")


# ============================================================================
# READ-ONLY PROJECTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LotView:
    """One catalog row as seen by a viewing account."""
    lot_id: str
    label: str
    floor_price: Decimal
    current_price: Decimal
    owner_id: Optional[str]
    owner_name: Optional[str]
    highest_bid: Decimal
    bid_count: int
    total_bid_amount: Decimal
    viewer_bid: Decimal
    has_bid: bool
    is_available: bool


@dataclass(frozen=True, slots=True)
class AccountView:
    """Balance summary for one account."""
    account_id: str
    name: str
    balance: Decimal
    exposure: Decimal
    available_balance: Decimal


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """
    Source of monotonic time in seconds.

    Only differences between readings are meaningful.
    """

    def now(self) -> float:
        ...


@runtime_checkable
class TimerHost(Protocol):
    """
    Wall-clock callback facility supplied by the embedding host.

    arm() must eventually deliver the event to the callback it was given.
    Late or repeated delivery is tolerated; the engine ignores stale events.
    """

    def arm(self, event: Any, delay: float, callback: Any) -> None:
        ...

    def cancel(self, event_id: str) -> None:
        ...

    def cancel_all(self) -> None:
        ...
