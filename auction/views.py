"""
views.py - Read-only snapshots and projections

AuctionState is the immutable value the engine publishes after every
mutation. Queries read whichever AuctionState is current and project it
with the pure functions below; they never take the engine lock and never
see a half-applied change.

Derived values (exposure, available balance, highest bid) are recomputed
per query.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Tuple
import math

from .core import (
    Account, AccountView, Bid, Lot, LotView, Phase, Round, ZERO,
    AccountNotFound,
)
from .bid_ledger import exposure, highest_bid


@dataclass(frozen=True, slots=True)
class AuctionState:
    """
    Point-in-time copy of everything the engine owns.

    Attributes:
        phase: Scheduler phase
        round: Current (or last) round, None before the first round
        lots: Catalog rows, in catalog order
        accounts: Accounts, in registration order
        bids: Active bids, in submission order
    """
    phase: Phase
    round: Optional[Round]
    lots: Tuple[Lot, ...]
    accounts: Tuple[Account, ...]
    bids: Tuple[Bid, ...]

    def account(self, account_id: str) -> Account:
        for acct in self.accounts:
            if acct.account_id == account_id:
                return acct
        raise AccountNotFound(f"Account {account_id} not registered")

    @property
    def open_lot_ids(self) -> Tuple[str, ...]:
        if self.round is None or self.phase != Phase.OPEN:
            return ()
        return self.round.open_lot_ids

    def available_lot_ids(self, now: Optional[float] = None) -> Tuple[str, ...]:
        """Open lots that still accept bids at now (bidding closes at end_time)."""
        if now is not None and self.round is not None and now >= self.round.end_time:
            return ()
        return self.open_lot_ids


def next_deadline(state: AuctionState) -> Optional[float]:
    """Round end while OPEN/RESOLVING, freeze end while FROZEN, else None."""
    if state.round is None:
        return None
    if state.phase in (Phase.OPEN, Phase.RESOLVING):
        return state.round.end_time
    if state.phase == Phase.FROZEN:
        return state.round.freeze_end_time
    return None


def time_remaining_ms(state: AuctionState, now: float) -> int:
    """Milliseconds until the next phase boundary, rounded up; 0 if none or already passed."""
    deadline = next_deadline(state)
    if deadline is None:
        return 0
    return max(0, math.ceil((deadline - now) * 1000))


def project_lot(
    lot: Lot,
    bids: Tuple[Bid, ...],
    names: Dict[str, str],
    viewing_account_id: Optional[str],
    is_available: bool,
) -> LotView:
    """Build one catalog row."""
    lot_bids = [b for b in bids if b.lot_id == lot.lot_id]
    leader = highest_bid(lot_bids, lot.lot_id)
    viewer_bid = next(
        (b.amount for b in lot_bids if b.account_id == viewing_account_id),
        None,
    )
    return LotView(
        lot_id=lot.lot_id,
        label=lot.label,
        floor_price=lot.floor_price,
        current_price=lot.current_price,
        owner_id=lot.owner_id,
        owner_name=names.get(lot.owner_id) if lot.owner_id else None,
        highest_bid=leader.amount if leader else ZERO,
        bid_count=len(lot_bids),
        total_bid_amount=sum((b.amount for b in lot_bids), ZERO),
        viewer_bid=viewer_bid if viewer_bid is not None else ZERO,
        has_bid=viewer_bid is not None,
        is_available=is_available,
    )


def project_catalog(
    state: AuctionState,
    viewing_account_id: Optional[str] = None,
    sort_by_price: bool = False,
    now: Optional[float] = None,
) -> Tuple[LotView, ...]:
    """
    Every lot as seen by viewing_account_id.

    Args:
        state: Published engine state
        viewing_account_id: Account whose own bids fill viewer_bid/has_bid
        sort_by_price: Order by current price, highest first (ties keep catalog order)
        now: Clock reading; lots are unavailable once it reaches the round end_time
    """
    names = {a.account_id: a.name for a in state.accounts}
    open_ids = set(state.available_lot_ids(now))
    rows = tuple(
        project_lot(lot, state.bids, names, viewing_account_id, lot.lot_id in open_ids)
        for lot in state.lots
    )
    if sort_by_price:
        rows = tuple(sorted(rows, key=lambda r: r.current_price, reverse=True))
    return rows


def project_account(state: AuctionState, account_id: str) -> AccountView:
    """
    Balance, exposure and available balance for one account.

    Raises:
        AccountNotFound: If the account is not registered
    """
    acct = state.account(account_id)
    committed = exposure(state.bids, account_id)
    return AccountView(
        account_id=acct.account_id,
        name=acct.name,
        balance=acct.balance,
        exposure=committed,
        available_balance=acct.balance - committed,
    )
