"""
bid_ledger.py - Active Bids for the Current Round

Maps (account_id, lot_id) to at most one Bid. Placing a bid for an existing
pair replaces it; the replacement takes a fresh submission sequence.

The ledger validates every bid against:
- Round state (accepting bids at all)
- The lot catalog (lot is in the open set, amount >= floor price)
- The account book (amount + other exposure <= balance)

A rejected command raises and leaves the ledger exactly as it was.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Collection, Dict, Iterable, List, Optional, Tuple

from .core import (
    Bid, ZERO, to_amount,
    InvalidAmount, LotUnavailable, InsufficientBalance, RoundFrozen, BidNotFound,
)
from .catalog import LotCatalog
from .account_book import AccountBook


BidKey = Tuple[str, str]  # (account_id, lot_id)


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def exposure(bids: Iterable[Bid], account_id: str, excluding_lot: Optional[str] = None) -> Decimal:
    """Sum of an account's bid amounts, optionally leaving one lot out."""
    return sum(
        (b.amount for b in bids
         if b.account_id == account_id and b.lot_id != excluding_lot),
        ZERO,
    )


def highest_bid(bids: Iterable[Bid], lot_id: str) -> Optional[Bid]:
    """
    Leading bid on a lot: maximum amount, earliest sequence among equals.

    Returns None if the lot has no bids.
    """
    best: Optional[Bid] = None
    for bid in bids:
        if bid.lot_id != lot_id:
            continue
        if best is None or (bid.amount, -bid.sequence) > (best.amount, -best.sequence):
            best = bid
    return best


# ============================================================================
# BID LEDGER
# ============================================================================

class BidLedger:
    """
    Per-round store of active bids.

    The ledger does not know about time. The caller says whether the round
    is accepting bids and which lots are open; the ledger enforces the rest.
    """

    def __init__(self, catalog: LotCatalog, accounts: AccountBook):
        self._catalog = catalog
        self._accounts = accounts
        self._bids: Dict[BidKey, Bid] = {}
        self._next_sequence: int = 0

    # ========================================================================
    # QUERIES
    # ========================================================================

    def exposure(self, account_id: str, excluding_lot: Optional[str] = None) -> Decimal:
        return exposure(self._bids.values(), account_id, excluding_lot)

    def bids_for_lot(self, lot_id: str) -> List[Bid]:
        """Active bids on a lot, in submission order."""
        return sorted(
            (b for b in self._bids.values() if b.lot_id == lot_id),
            key=lambda b: b.sequence,
        )

    def bid_for(self, account_id: str, lot_id: str) -> Optional[Bid]:
        return self._bids.get((account_id, lot_id))

    def highest_bid(self, lot_id: str) -> Optional[Bid]:
        return highest_bid(self._bids.values(), lot_id)

    def snapshot(self) -> Tuple[Bid, ...]:
        """Every active bid, in submission order."""
        return tuple(sorted(self._bids.values(), key=lambda b: b.sequence))

    def __len__(self) -> int:
        return len(self._bids)

    # ========================================================================
    # COMMANDS (Mutating)
    # ========================================================================

    def place_bid(
        self,
        account_id: str,
        lot_id: str,
        amount: Any,
        open_lot_ids: Collection[str],
        accepting: bool,
    ) -> Bid:
        """
        Install or replace the (account_id, lot_id) bid.

        Args:
            account_id: Bidding account
            lot_id: Target lot
            amount: Bid amount (coerced to Decimal)
            open_lot_ids: Lots in the current round's open set
            accepting: False once the round has stopped taking bids

        Returns:
            The stored Bid

        Raises:
            RoundFrozen: Round is not accepting bids
            AccountNotFound: Unknown account
            LotUnavailable: Lot is not in the open set
            InvalidAmount: Amount is not a finite number or is below the floor price
            InsufficientBalance: amount + exposure on other lots exceeds the balance
        """
        if not accepting:
            raise RoundFrozen(f"Round is not accepting bids (lot {lot_id})")
        balance = self._accounts.get_balance(account_id)
        if lot_id not in open_lot_ids or lot_id not in self._catalog:
            raise LotUnavailable(f"Lot {lot_id} is not open for bidding")

        value = to_amount(amount)
        floor = self._catalog.get(lot_id).floor_price
        if value < floor:
            raise InvalidAmount(f"Bid {value} on {lot_id} is below floor price {floor}")

        committed = self.exposure(account_id, excluding_lot=lot_id)
        if value + committed > balance:
            raise InsufficientBalance(
                f"{account_id}: bid {value} + exposure {committed} exceeds balance {balance}"
            )

        bid = Bid(lot_id=lot_id, account_id=account_id, amount=value, sequence=self._next_sequence)
        self._next_sequence += 1
        self._bids[(account_id, lot_id)] = bid
        return bid

    def remove_bid(self, account_id: str, lot_id: str, accepting: bool) -> Bid:
        """
        Delete the (account_id, lot_id) bid.

        Raises:
            RoundFrozen: Round is not accepting bid changes
            BidNotFound: No such bid
        """
        if not accepting:
            raise RoundFrozen(f"Round is not accepting bid changes (lot {lot_id})")
        key = (account_id, lot_id)
        if key not in self._bids:
            raise BidNotFound(f"No bid from {account_id} on {lot_id}")
        return self._bids.pop(key)

    def clear(self) -> int:
        """Drop every bid. Returns how many were removed."""
        count = len(self._bids)
        self._bids.clear()
        return count
