"""
settlement.py - Round Resolution

Turns a round's bids into lot awards and account debits using a pure
function architecture with explicit inputs.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES:
   - Award: one lot's winning bid
   - Settlement: every award plus the per-account debit totals for one round

2. PURE CALCULATION FUNCTIONS:
   - compute_settlement(): bids snapshot -> Settlement, no store access
   - check_settlement(): verifies a Settlement against store snapshots

3. APPLY:
   - apply_settlement(): checks first, then hands the deltas to the
     catalog and the account book. Both are keyed by the round generation,
     so running it again for the same round changes nothing.

Winner rule:
    winner = max(amount), ties -> lowest submission sequence (earliest bid)
Lots in the open set with no bids produce no award and keep their price
and owner.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Sequence, Tuple

from .core import (
    Account, Bid, Lot, ExecuteResult, ZERO,
    SettlementError,
)
from .bid_ledger import highest_bid
from .catalog import LotCatalog
from .account_book import AccountBook


# ============================================================================
# FROZEN DATACLASSES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Award:
    """A lot's winning bid."""
    lot_id: str
    account_id: str
    amount: Decimal
    sequence: int


@dataclass(frozen=True, slots=True)
class Settlement:
    """
    Complete result of resolving one round, computed before anything is applied.

    Attributes:
        generation: Round generation this settles
        awards: One Award per lot that received bids, in open-set order
        debits: account_id -> total amount owed, as sorted (id, amount) pairs
        unsold_lot_ids: Open lots that received no bids
    """
    generation: int
    awards: Tuple[Award, ...]
    debits: Tuple[Tuple[str, Decimal], ...]
    unsold_lot_ids: Tuple[str, ...]

    @property
    def debits_dict(self) -> Dict[str, Decimal]:
        return dict(self.debits)

    @property
    def awards_by_lot(self) -> Dict[str, Tuple[str, Decimal]]:
        """lot_id -> (winner account_id, price)."""
        return {a.lot_id: (a.account_id, a.amount) for a in self.awards}

    def is_empty(self) -> bool:
        return not self.awards


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def compute_settlement(
    generation: int,
    open_lot_ids: Sequence[str],
    bids: Iterable[Bid],
) -> Settlement:
    """
    Pick winners for every open lot and total each winner's debit.

    Bids on lots outside open_lot_ids are ignored.

    Args:
        generation: Round generation being settled
        open_lot_ids: The round's open set
        bids: Snapshot of active bids

    Returns:
        Settlement with awards in open-set order
    """
    bids = tuple(bids)
    awards = []
    unsold = []
    totals: Dict[str, Decimal] = {}

    for lot_id in open_lot_ids:
        winner = highest_bid(bids, lot_id)
        if winner is None:
            unsold.append(lot_id)
            continue
        awards.append(Award(
            lot_id=lot_id,
            account_id=winner.account_id,
            amount=winner.amount,
            sequence=winner.sequence,
        ))
        totals[winner.account_id] = totals.get(winner.account_id, ZERO) + winner.amount

    return Settlement(
        generation=generation,
        awards=tuple(awards),
        debits=tuple(sorted(totals.items())),
        unsold_lot_ids=tuple(unsold),
    )


def check_settlement(
    settlement: Settlement,
    lots: Mapping[str, Lot],
    accounts: Mapping[str, Account],
) -> None:
    """
    Verify a settlement can be applied in full.

    Raises:
        SettlementError: On an unknown lot or account, a price below floor,
                         or a debit larger than the account's balance
    """
    for award in settlement.awards:
        lot = lots.get(award.lot_id)
        if lot is None:
            raise SettlementError(f"Award for unknown lot {award.lot_id}")
        if award.amount < lot.floor_price:
            raise SettlementError(
                f"Award for {award.lot_id} at {award.amount} is below floor {lot.floor_price}"
            )
    for account_id, amount in settlement.debits:
        account = accounts.get(account_id)
        if account is None:
            raise SettlementError(f"Debit for unknown account {account_id}")
        if amount > account.balance:
            raise SettlementError(
                f"{account_id}: debit {amount} exceeds balance {account.balance}"
            )


# ============================================================================
# APPLY
# ============================================================================

def apply_settlement(
    settlement: Settlement,
    catalog: LotCatalog,
    accounts: AccountBook,
) -> ExecuteResult:
    """
    Apply a settlement to the catalog and the account book.

    Returns:
        APPLIED if either store changed, ALREADY_APPLIED if both had already
        recorded this generation

    Raises:
        SettlementError: If the settlement fails check_settlement (nothing applied)
    """
    if accounts.is_applied(settlement.generation):
        debit_result = ExecuteResult.ALREADY_APPLIED
    else:
        check_settlement(
            settlement,
            {lot.lot_id: lot for lot in catalog.snapshot()},
            {acct.account_id: acct for acct in accounts.snapshot()},
        )
        debit_result = accounts.apply_debits(settlement.generation, settlement.debits_dict)

    award_result = catalog.apply_awards(settlement.generation, settlement.awards_by_lot)

    if ExecuteResult.APPLIED in (debit_result, award_result):
        return ExecuteResult.APPLIED
    return ExecuteResult.ALREADY_APPLIED
