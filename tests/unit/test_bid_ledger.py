"""
Unit tests for BidLedger: validation order, replacement, removal, exposure.
"""

import pytest
from decimal import Decimal

from auction import (
    Bid, BidLedger, exposure, highest_bid,
    InvalidAmount, LotUnavailable, InsufficientBalance, RoundFrozen,
    BidNotFound, AccountNotFound,
)


OPEN = ("lot-1", "lot-2", "lot-3")


def place(ledger, account_id, lot_id, amount, open_ids=OPEN, accepting=True):
    return ledger.place_bid(account_id, lot_id, amount, open_ids, accepting)


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

class TestPureFunctions:

    def test_exposure_sums_one_account(self):
        bids = [
            Bid("lot-1", "acc-1", Decimal("100"), 0),
            Bid("lot-2", "acc-1", Decimal("50"), 1),
            Bid("lot-1", "acc-2", Decimal("999"), 2),
        ]
        assert exposure(bids, "acc-1") == Decimal("150")
        assert exposure(bids, "acc-1", excluding_lot="lot-1") == Decimal("50")
        assert exposure(bids, "acc-3") == Decimal("0")

    def test_highest_bid_tie_goes_to_earliest(self):
        bids = [
            Bid("lot-1", "acc-2", Decimal("100"), 5),
            Bid("lot-1", "acc-1", Decimal("100"), 3),
            Bid("lot-1", "acc-3", Decimal("90"), 1),
        ]
        assert highest_bid(bids, "lot-1").account_id == "acc-1"

    def test_highest_bid_none(self):
        assert highest_bid([], "lot-1") is None


# =============================================================================
# PLACE BID
# =============================================================================

class TestPlaceBid:

    def test_place_and_query(self, bid_ledger):
        bid = place(bid_ledger, "acc-1", "lot-1", Decimal("100"))
        assert bid.amount == Decimal("100")
        assert bid_ledger.bid_for("acc-1", "lot-1") == bid
        assert bid_ledger.exposure("acc-1") == Decimal("100")
        assert len(bid_ledger) == 1

    def test_replace_keeps_one_bid_per_pair(self, bid_ledger):
        first = place(bid_ledger, "acc-1", "lot-1", Decimal("100"))
        second = place(bid_ledger, "acc-1", "lot-1", Decimal("80"))
        assert len(bid_ledger) == 1
        assert bid_ledger.bid_for("acc-1", "lot-1").amount == Decimal("80")
        assert second.sequence > first.sequence

    def test_replacement_excludes_own_old_amount(self, bid_ledger):
        # Alice has 1000: 900 then 1000 on the same lot must be accepted
        place(bid_ledger, "acc-1", "lot-1", Decimal("900"))
        place(bid_ledger, "acc-1", "lot-1", Decimal("1000"))
        assert bid_ledger.exposure("acc-1") == Decimal("1000")

    def test_insufficient_balance_across_lots(self, bid_ledger):
        place(bid_ledger, "acc-1", "lot-1", Decimal("600"))
        with pytest.raises(InsufficientBalance):
            place(bid_ledger, "acc-1", "lot-2", Decimal("500"))
        assert bid_ledger.bid_for("acc-1", "lot-2") is None
        assert bid_ledger.exposure("acc-1") == Decimal("600")

    def test_exposure_equal_to_balance_allowed(self, bid_ledger):
        place(bid_ledger, "acc-1", "lot-1", Decimal("600"))
        place(bid_ledger, "acc-1", "lot-2", Decimal("400"))
        assert bid_ledger.exposure("acc-1") == Decimal("1000")

    def test_below_floor(self, bid_ledger):
        with pytest.raises(InvalidAmount):
            place(bid_ledger, "acc-1", "lot-1", Decimal("74.99"))

    def test_at_floor_allowed(self, bid_ledger):
        assert place(bid_ledger, "acc-1", "lot-1", Decimal("75")).amount == Decimal("75")

    def test_non_numeric_amount(self, bid_ledger):
        with pytest.raises(InvalidAmount):
            place(bid_ledger, "acc-1", "lot-1", "lots")

    def test_lot_not_open(self, bid_ledger):
        with pytest.raises(LotUnavailable):
            place(bid_ledger, "acc-1", "lot-4", Decimal("100"))

    def test_unknown_lot_is_unavailable(self, bid_ledger):
        with pytest.raises(LotUnavailable):
            place(bid_ledger, "acc-1", "lot-99", Decimal("100"), open_ids=OPEN + ("lot-99",))

    def test_not_accepting(self, bid_ledger):
        with pytest.raises(RoundFrozen):
            place(bid_ledger, "acc-1", "lot-1", Decimal("100"), accepting=False)

    def test_unknown_account(self, bid_ledger):
        with pytest.raises(AccountNotFound):
            place(bid_ledger, "acc-99", "lot-1", Decimal("100"))

    def test_frozen_checked_before_everything(self, bid_ledger):
        with pytest.raises(RoundFrozen):
            place(bid_ledger, "acc-99", "lot-99", "junk", accepting=False)

    def test_rejection_leaves_ledger_unchanged(self, bid_ledger):
        place(bid_ledger, "acc-1", "lot-1", Decimal("100"))
        before = bid_ledger.snapshot()
        with pytest.raises(InvalidAmount):
            place(bid_ledger, "acc-1", "lot-1", Decimal("1"))
        assert bid_ledger.snapshot() == before


# =============================================================================
# REMOVE BID / CLEAR
# =============================================================================

class TestRemoveBid:

    def test_remove_releases_exposure(self, bid_ledger):
        place(bid_ledger, "acc-1", "lot-1", Decimal("600"))
        removed = bid_ledger.remove_bid("acc-1", "lot-1", accepting=True)
        assert removed.amount == Decimal("600")
        assert bid_ledger.exposure("acc-1") == Decimal("0")
        place(bid_ledger, "acc-1", "lot-2", Decimal("1000"))

    def test_remove_missing(self, bid_ledger):
        with pytest.raises(BidNotFound):
            bid_ledger.remove_bid("acc-1", "lot-1", accepting=True)

    def test_remove_when_not_accepting(self, bid_ledger):
        place(bid_ledger, "acc-1", "lot-1", Decimal("100"))
        with pytest.raises(RoundFrozen):
            bid_ledger.remove_bid("acc-1", "lot-1", accepting=False)
        assert bid_ledger.bid_for("acc-1", "lot-1") is not None

    def test_clear(self, bid_ledger):
        place(bid_ledger, "acc-1", "lot-1", Decimal("100"))
        place(bid_ledger, "acc-2", "lot-1", Decimal("110"))
        assert bid_ledger.clear() == 2
        assert bid_ledger.snapshot() == ()

    def test_bids_for_lot_in_submission_order(self, bid_ledger):
        place(bid_ledger, "acc-2", "lot-1", Decimal("110"))
        place(bid_ledger, "acc-1", "lot-1", Decimal("100"))
        place(bid_ledger, "acc-2", "lot-1", Decimal("120"))
        assert [b.account_id for b in bid_ledger.bids_for_lot("lot-1")] == ["acc-1", "acc-2"]
        assert bid_ledger.highest_bid("lot-1").amount == Decimal("120")
