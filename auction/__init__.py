"""
auction - Sealed-Bid Round Auction Engine

An in-memory engine that runs repeating, time-boxed sealed-bid rounds over a
catalog of lots held by a fixed set of funded accounts.

Usage:
    from decimal import Decimal
    from auction import AuctionEngine, AuctionConfig, Lot, Account, ManualClock

    clock = ManualClock()
    engine = AuctionEngine(
        lots=[Lot("lot-1", "Tesla", Decimal("100")), Lot("lot-2", "Apple", Decimal("80"))],
        accounts=[Account("acc-1", "Alice", Decimal("1000")),
                  Account("acc-2", "Bob", Decimal("1500"))],
        config=AuctionConfig(round_duration=60, freeze_duration=10, lots_per_round=2, seed=42),
        clock=clock,
    )
    engine.start()

    engine.place_bid("lot-1", Decimal("150"))                     # selected account (Alice)
    engine.place_bid("lot-1", Decimal("120"), account_id="acc-2")

    clock.advance(60)
    engine.step()          # round end: Alice wins lot-1 at 150, then the freeze starts

    engine.catalog_snapshot()
    engine.account_snapshot("acc-1")
"""

# Core types
from .core import (
    Lot,
    Account,
    Bid,
    Round,
    AuctionConfig,
    LotView,
    AccountView,
    Phase,
    ExecuteResult,
    TransitionResult,
    Clock,
    TimerHost,
    to_amount,
    AuctionError,
    InvalidAmount,
    LotUnavailable,
    InsufficientBalance,
    RoundFrozen,
    NotFound,
    BidNotFound,
    AccountNotFound,
    LotNotFound,
    SettlementError,
    DEFAULT_ROUND_DURATION,
    DEFAULT_FREEZE_DURATION,
    DEFAULT_LOTS_PER_ROUND,
    DEFAULT_RETRY_DELAY,
    ACTION_ROUND_END,
    ACTION_FREEZE_END,
)

# Stores
from .catalog import LotCatalog
from .account_book import AccountBook
from .bid_ledger import BidLedger, exposure, highest_bid

# Settlement
from .settlement import (
    Award,
    Settlement,
    compute_settlement,
    check_settlement,
    apply_settlement,
)

# Scheduling
from .scheduled_events import (
    Event,
    EventScheduler,
    EventHandler,
    round_end_event,
    freeze_end_event,
)
from .scheduler import RoundScheduler, draw_lots

# Time
from .clock import MonotonicClock, ManualClock
from .timers import ThreadingTimerHost

# Engine
from .engine import AuctionEngine
from .views import AuctionState, project_catalog, project_account

# Layout
from .layout import Rect, Positioned, tree_map, catalog_layout

__all__ = [
    # Core
    'Lot', 'Account', 'Bid', 'Round', 'AuctionConfig', 'LotView', 'AccountView',
    'Phase', 'ExecuteResult', 'TransitionResult', 'Clock', 'TimerHost', 'to_amount',
    'AuctionError', 'InvalidAmount', 'LotUnavailable', 'InsufficientBalance',
    'RoundFrozen', 'NotFound', 'BidNotFound', 'AccountNotFound', 'LotNotFound',
    'SettlementError',
    'DEFAULT_ROUND_DURATION', 'DEFAULT_FREEZE_DURATION', 'DEFAULT_LOTS_PER_ROUND',
    'DEFAULT_RETRY_DELAY',
    'ACTION_ROUND_END', 'ACTION_FREEZE_END',
    # Stores
    'LotCatalog', 'AccountBook', 'BidLedger', 'exposure', 'highest_bid',
    # Settlement
    'Award', 'Settlement', 'compute_settlement', 'check_settlement', 'apply_settlement',
    # Scheduling
    'Event', 'EventScheduler', 'EventHandler', 'round_end_event', 'freeze_end_event',
    'RoundScheduler', 'draw_lots',
    # Time
    'MonotonicClock', 'ManualClock', 'ThreadingTimerHost',
    # Engine
    'AuctionEngine', 'AuctionState', 'project_catalog', 'project_account',
    # Layout
    'Rect', 'Positioned', 'tree_map', 'catalog_layout',
]

__version__ = '1.0.0'
