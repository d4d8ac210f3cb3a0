"""
engine.py - Auction Engine

The AuctionEngine is the single authority over auction state. It owns the
lot catalog, the account book, the bid ledger and the round scheduler, and
it is the only thing that mutates them.

Key responsibilities:
    - Commands: place_bid, remove_bid, select_account, start, stop
    - Timer-driven transitions: round end (settlement) and freeze end (next round)
    - Queries: catalog, account and time-remaining snapshots

Concurrency:
    Every mutation runs under one re-entrant lock: commands, transitions and
    settlement never interleave. Timer threads call fire(), which takes the
    same lock. After each mutation the engine publishes an immutable
    AuctionState; queries read the latest one without locking.

Idempotency:
    Transition events carry their round generation. An event for a
    superseded round, or one delivered twice, returns TransitionResult.STALE
    and changes nothing. Settlement is keyed by generation in both the
    catalog and the account book, so a retried resolution never double-debits.
"""

from __future__ import annotations
import threading
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from .core import (
    Account, AccountView, AuctionConfig, Bid, Clock, Lot, LotView, Phase, Round,
    TimerHost, TransitionResult,
    ACTION_ROUND_END, ACTION_FREEZE_END,
    AuctionError, AccountNotFound,
)
from .catalog import LotCatalog
from .account_book import AccountBook
from .bid_ledger import BidLedger
from .clock import MonotonicClock
from .layout import Positioned, catalog_layout, HORIZONTAL
from .scheduled_events import Event, EventScheduler
from .scheduler import RoundScheduler
from .settlement import Settlement, compute_settlement, apply_settlement
from .views import AuctionState, project_account, project_catalog, time_remaining_ms


class AuctionEngine:
    """
    Sealed-bid round auction over a fixed catalog and a fixed set of accounts.

    Thread Safety:
        Commands and transitions are serialised by an internal RLock.
        Queries are lock-free reads of the last published AuctionState.

    Example:
        engine = AuctionEngine(
            lots=[Lot("lot-1", "Tesla", Decimal("100"))],
            accounts=[Account("acc-1", "Alice", Decimal("1000"))],
            config=AuctionConfig(lots_per_round=1, seed=7),
            clock=ManualClock(),
        )
        engine.start()
        engine.place_bid("lot-1", Decimal("150"))
        engine.clock.advance(engine.config.round_duration)
        engine.step()   # settles: Alice owns lot-1 at 150
    """

    def __init__(
        self,
        lots: Iterable[Lot],
        accounts: Iterable[Account],
        config: Optional[AuctionConfig] = None,
        clock: Optional[Clock] = None,
        timer_host: Optional[TimerHost] = None,
        rng: Optional[np.random.Generator] = None,
        verbose: bool = True,
    ):
        """
        Create an engine in the IDLE phase. Call start() to open the first round.

        Args:
            lots: Catalog lots (unique ids)
            accounts: Funded accounts (unique ids); the first one is the initial viewer
            config: Round timing and draw size (defaults to AuctionConfig())
            clock: Monotonic time source (default: MonotonicClock)
            timer_host: Wall-clock callback host; None for hosts that poll step()
            rng: Generator for the lot draw (default: seeded from config.seed)
            verbose: Print status lines for commands and transitions (default: True)

        Raises:
            ValueError: On duplicate ids or lots_per_round larger than the catalog
        """
        self.config = config or AuctionConfig()
        self.clock: Clock = clock or MonotonicClock()
        self.timer_host = timer_host
        self.verbose = verbose

        self.catalog = LotCatalog(lots)
        self.accounts = AccountBook(accounts)
        if self.config.lots_per_round > len(self.catalog):
            raise ValueError(
                f"lots_per_round={self.config.lots_per_round} exceeds catalog size {len(self.catalog)}"
            )
        self.bids = BidLedger(self.catalog, self.accounts)

        self.events = EventScheduler()
        self.events.register(ACTION_ROUND_END, self._handle_round_end)
        self.events.register(ACTION_FREEZE_END, self._handle_freeze_end)
        self.scheduler = RoundScheduler(self.config, self.events, rng)

        # Audit trail: one Settlement per resolved round
        self.settlements: List[Settlement] = []

        self._lock = threading.RLock()
        account_ids = self.accounts.account_ids()
        self._viewing_account_id: Optional[str] = account_ids[0] if account_ids else None
        self._state = self._capture()

    # ========================================================================
    # PUBLISHED STATE
    # ========================================================================

    def _capture(self) -> AuctionState:
        return AuctionState(
            phase=self.scheduler.phase,
            round=self.scheduler.current_round,
            lots=self.catalog.snapshot(),
            accounts=self.accounts.snapshot(),
            bids=self.bids.snapshot(),
        )

    def _publish(self) -> None:
        self._state = self._capture()

    @property
    def state(self) -> AuctionState:
        """Most recently published snapshot."""
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def current_round(self) -> Optional[Round]:
        return self._state.round

    @property
    def viewing_account_id(self) -> Optional[str]:
        return self._viewing_account_id

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def start(self) -> Round:
        """
        Open the first round.

        Calling start() on a running engine returns the current round unchanged.

        Raises:
            ValueError: If the engine has been stopped
        """
        with self._lock:
            phase = self.scheduler.phase
            if phase == Phase.STOPPED:
                raise ValueError("Engine is stopped")
            if phase != Phase.IDLE:
                return self.scheduler.current_round
            return self._open_round(self.clock.now())

    def stop(self) -> None:
        """Shut down: cancel timers, drop pending events and active bids."""
        with self._lock:
            self.scheduler.stop()
            dropped = self.bids.clear()
            if self.timer_host is not None:
                self.timer_host.cancel_all()
            self._publish()
        if self.verbose:
            print(f"⏹  STOPPED (dropped {dropped} active bids)")

    def _arm(self, event: Event, now: float) -> None:
        if self.timer_host is not None:
            self.timer_host.arm(event, event.trigger_time - now, self.fire)

    def _disarm(self, event: Event) -> None:
        if self.timer_host is not None:
            self.timer_host.cancel(event.event_id)

    def _open_round(self, now: float) -> Round:
        round_, event = self.scheduler.open_round(self.catalog.lot_ids(), now)
        self._arm(event, now)
        self._publish()
        if self.verbose:
            lots = ", ".join(round_.open_lot_ids)
            print(f"🔔 Round {round_.generation} OPEN: {lots} "
                  f"(closes in {self.config.round_duration:g}s)")
        return round_

    # ========================================================================
    # COMMANDS (Mutating)
    # ========================================================================

    def _resolve_account(self, account_id: Optional[str]) -> str:
        resolved = account_id if account_id is not None else self._viewing_account_id
        if resolved is None:
            raise AccountNotFound("No account selected")
        return resolved

    def place_bid(self, lot_id: str, amount: Any, account_id: Optional[str] = None) -> Bid:
        """
        Place or replace a bid on a lot for the current round.

        Args:
            lot_id: Lot to bid on
            amount: Bid amount (Decimal, int or numeric string)
            account_id: Bidding account (default: the selected account)

        Returns:
            The stored Bid

        Raises:
            RoundFrozen: Round is not open, or its end time has passed
            LotUnavailable: Lot is not in the round's open set
            InvalidAmount: Amount below the lot's floor price or not a number
            InsufficientBalance: Bid plus other active bids exceeds the balance
            AccountNotFound: Unknown account
        """
        with self._lock:
            account_id = self._resolve_account(account_id)
            round_ = self.scheduler.current_round
            open_ids = round_.open_lot_ids if round_ is not None else ()
            try:
                bid = self.bids.place_bid(
                    account_id, lot_id, amount, open_ids,
                    accepting=self.scheduler.accepting_bids(self.clock.now()),
                )
            except AuctionError as e:
                if self.verbose:
                    print(f"✗ REJECTED bid {account_id}→{lot_id} {amount}: {type(e).__name__}: {e}")
                raise
            self._publish()
        if self.verbose:
            print(f"✓ BID {bid.account_id}→{bid.lot_id}: {bid.amount}")
        return bid

    def remove_bid(self, lot_id: str, account_id: Optional[str] = None) -> Bid:
        """
        Withdraw a bid during the open round.

        Returns:
            The removed Bid

        Raises:
            RoundFrozen: Round is not open, or its end time has passed
            BidNotFound: The account has no bid on this lot
            AccountNotFound: Unknown account
        """
        with self._lock:
            account_id = self._resolve_account(account_id)
            try:
                self.accounts.get(account_id)
                bid = self.bids.remove_bid(
                    account_id, lot_id,
                    accepting=self.scheduler.accepting_bids(self.clock.now()),
                )
            except AuctionError as e:
                if self.verbose:
                    print(f"✗ REJECTED remove {account_id}→{lot_id}: {type(e).__name__}: {e}")
                raise
            self._publish()
        if self.verbose:
            print(f"✓ REMOVED {bid.account_id}→{bid.lot_id}")
        return bid

    def select_account(self, account_id: str) -> None:
        """
        Change the perspective used by snapshot queries.

        Raises:
            AccountNotFound: If the account is not registered
        """
        if account_id not in self.accounts:
            raise AccountNotFound(f"Account {account_id} not registered")
        self._viewing_account_id = account_id

    # ========================================================================
    # TIMER-DRIVEN TRANSITIONS
    # ========================================================================

    def fire(self, event: Event) -> TransitionResult:
        """
        Deliver one timer event. Entry point for TimerHost callbacks.

        Safe to call late, twice, or for a superseded round: those return STALE.

        If the transition raises, the event stays pending and is armed again
        on the timer host after config.retry_delay seconds, then the error
        propagates to the caller.
        """
        with self._lock:
            try:
                result = self.events.execute(event)
            except Exception as e:
                if self.timer_host is not None and self.scheduler.phase != Phase.STOPPED:
                    self.timer_host.arm(event, self.config.retry_delay, self.fire)
                if self.verbose:
                    print(f"✗ FAILED {event.event_id}: {type(e).__name__}: {e} "
                          f"(retry in {self.config.retry_delay:g}s)")
                raise
            return result if result is not None else TransitionResult.STALE

    def step(self) -> List[TransitionResult]:
        """
        Run every scheduled transition due at the clock's current time.

        For hosts without a TimerHost: call this periodically.
        """
        with self._lock:
            return self.events.step(self.clock.now())

    def _handle_round_end(self, event: Event) -> TransitionResult:
        round_ = self.scheduler.begin_resolution(event.generation)
        if round_ is None:
            if self.verbose:
                print(f"⚠️  STALE {event.event_id}")
            return TransitionResult.STALE
        self._publish()

        settlement = compute_settlement(round_.generation, round_.open_lot_ids, self.bids.snapshot())
        apply_settlement(settlement, self.catalog, self.accounts)
        self.bids.clear()
        self.settlements.append(settlement)
        self._disarm(event)

        now = self.clock.now()
        _, freeze_event = self.scheduler.enter_freeze(round_.generation, now)
        self._arm(freeze_event, now)
        self._publish()

        if self.verbose:
            self._print_settlement(settlement)
        return TransitionResult.APPLIED

    def _handle_freeze_end(self, event: Event) -> TransitionResult:
        if not self.scheduler.freeze_elapsed(event.generation):
            if self.verbose:
                print(f"⚠️  STALE {event.event_id}")
            return TransitionResult.STALE
        self._open_round(self.clock.now())
        self._disarm(event)
        return TransitionResult.APPLIED

    def _print_settlement(self, settlement: Settlement) -> None:
        print(f"🔨 Round {settlement.generation} SETTLED: "
              f"{len(settlement.awards)} sold, {len(settlement.unsold_lot_ids)} unsold")
        for award in settlement.awards:
            print(f"   {award.lot_id} → {award.account_id} @ {award.amount}")

    # ========================================================================
    # QUERIES (lock-free, read-only)
    # ========================================================================

    def catalog_snapshot(
        self,
        viewing_account_id: Optional[str] = None,
        sort_by_price: bool = False,
    ) -> Tuple[LotView, ...]:
        """
        Every lot with price, owner, bid statistics and availability.

        Args:
            viewing_account_id: Whose bids fill viewer_bid/has_bid (default: selected account)
            sort_by_price: Highest current price first
        """
        viewer = viewing_account_id if viewing_account_id is not None else self._viewing_account_id
        return project_catalog(self._state, viewer, sort_by_price, now=self.clock.now())

    def account_snapshot(self, account_id: Optional[str] = None) -> AccountView:
        """
        Balance, exposure and available balance (default: selected account).

        Raises:
            AccountNotFound: Unknown account, or none selected
        """
        return project_account(self._state, self._resolve_account(account_id))

    def account_snapshots(self) -> Tuple[AccountView, ...]:
        """AccountView for every account, in registration order."""
        state = self._state
        return tuple(project_account(state, a.account_id) for a in state.accounts)

    def time_remaining_ms(self) -> int:
        """Milliseconds until the round ends (or the freeze ends, if frozen)."""
        return time_remaining_ms(self._state, self.clock.now())

    def layout(
        self,
        width: float,
        height: float,
        direction: str = HORIZONTAL,
        padding: float = 0.0,
        min_value: float = 0.0,
    ) -> List[Positioned[LotView]]:
        """Treemap of the catalog snapshot weighted by current price."""
        return catalog_layout(
            self.catalog_snapshot(), width, height,
            direction=direction, padding=padding, min_value=min_value,
        )
