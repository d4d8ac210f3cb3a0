"""
Unit tests for settlement: winner selection, debit totals and apply.
"""

import pytest
from decimal import Decimal

from auction import (
    Bid, Lot, Account, LotCatalog, AccountBook, ExecuteResult, SettlementError,
    compute_settlement, check_settlement, apply_settlement,
)


def bid(lot_id, account_id, amount, seq):
    return Bid(lot_id, account_id, Decimal(amount), seq)


class TestComputeSettlement:

    def test_highest_amount_wins(self):
        s = compute_settlement(1, ("lot-1",), [
            bid("lot-1", "acc-1", "100", 0),
            bid("lot-1", "acc-2", "120", 1),
        ])
        assert s.awards_by_lot == {"lot-1": ("acc-2", Decimal("120"))}
        assert s.debits_dict == {"acc-2": Decimal("120")}
        assert s.unsold_lot_ids == ()

    def test_tie_goes_to_earliest_submission(self):
        s = compute_settlement(1, ("lot-1",), [
            bid("lot-1", "acc-2", "100", 7),
            bid("lot-1", "acc-1", "100", 3),
        ])
        assert s.awards[0].account_id == "acc-1"
        assert s.awards[0].sequence == 3

    def test_debits_sum_per_winner(self):
        s = compute_settlement(4, ("lot-1", "lot-2", "lot-3"), [
            bid("lot-1", "acc-1", "100", 0),
            bid("lot-2", "acc-1", "90", 1),
            bid("lot-3", "acc-2", "70", 2),
        ])
        assert s.debits == (("acc-1", Decimal("190")), ("acc-2", Decimal("70")))
        assert [a.lot_id for a in s.awards] == ["lot-1", "lot-2", "lot-3"]

    def test_unsold_lots(self):
        s = compute_settlement(1, ("lot-1", "lot-2"), [bid("lot-2", "acc-1", "90", 0)])
        assert s.unsold_lot_ids == ("lot-1",)
        assert not s.is_empty()

    def test_bids_outside_open_set_ignored(self):
        s = compute_settlement(1, ("lot-1",), [bid("lot-5", "acc-1", "500", 0)])
        assert s.is_empty()
        assert s.debits == ()

    def test_losers_are_not_debited(self):
        s = compute_settlement(1, ("lot-1",), [
            bid("lot-1", "acc-1", "100", 0),
            bid("lot-1", "acc-3", "200", 1),
        ])
        assert "acc-1" not in s.debits_dict


class TestCheckSettlement:

    def setup_method(self):
        self.lots = {"lot-1": Lot("lot-1", "Tesla", Decimal("75"))}
        self.accounts = {"acc-1": Account("acc-1", "Alice", Decimal("100"))}

    def test_valid(self):
        s = compute_settlement(1, ("lot-1",), [bid("lot-1", "acc-1", "100", 0)])
        check_settlement(s, self.lots, self.accounts)

    def test_overdraft(self):
        s = compute_settlement(1, ("lot-1",), [bid("lot-1", "acc-1", "101", 0)])
        with pytest.raises(SettlementError):
            check_settlement(s, self.lots, self.accounts)

    def test_below_floor(self):
        s = compute_settlement(1, ("lot-1",), [bid("lot-1", "acc-1", "10", 0)])
        with pytest.raises(SettlementError):
            check_settlement(s, self.lots, self.accounts)


class TestApplySettlement:

    def test_apply_then_repeat(self, catalog, account_book):
        s = compute_settlement(1, ("lot-1", "lot-2"), [
            bid("lot-1", "acc-1", "150", 0),
            bid("lot-2", "acc-2", "90", 1),
        ])
        assert apply_settlement(s, catalog, account_book) == ExecuteResult.APPLIED
        assert apply_settlement(s, catalog, account_book) == ExecuteResult.ALREADY_APPLIED
        assert account_book.get_balance("acc-1") == Decimal("850")
        assert account_book.get_balance("acc-2") == Decimal("1410")
        assert catalog.get("lot-1").owner_id == "acc-1"
        assert catalog.get("lot-2").current_price == Decimal("90")

    def test_failed_check_applies_nothing(self, catalog, account_book):
        s = compute_settlement(1, ("lot-1", "lot-2"), [
            bid("lot-1", "acc-2", "100", 0),
            bid("lot-2", "acc-1", "5000", 1),
        ])
        with pytest.raises(SettlementError):
            apply_settlement(s, catalog, account_book)
        assert account_book.get_balance("acc-2") == Decimal("1500")
        assert catalog.get("lot-1").owner_id is None

    def test_resumes_after_debits_only(self, catalog, account_book):
        # Debits recorded, awards not yet: a retry finishes the awards only
        s = compute_settlement(2, ("lot-1",), [bid("lot-1", "acc-1", "150", 0)])
        account_book.apply_debits(2, s.debits_dict)
        assert apply_settlement(s, catalog, account_book) == ExecuteResult.APPLIED
        assert account_book.get_balance("acc-1") == Decimal("850")
        assert catalog.get("lot-1").owner_id == "acc-1"

    def test_empty_settlement(self, catalog, account_book):
        s = compute_settlement(1, ("lot-1",), [])
        assert apply_settlement(s, catalog, account_book) == ExecuteResult.APPLIED
        assert catalog.get("lot-1").current_price == Decimal("75")
        assert account_book.total_balance() == Decimal("4500")
