"""
helpers.py - Shared builders for auction tests

Standard catalog, accounts and engine construction, plus helpers that move
a ManualClock-driven engine through its phases.
"""

from decimal import Decimal
from typing import List

from auction import Lot, Account, AuctionConfig, AuctionEngine, AuctionError, ManualClock
from hypothesis import strategies as st


START_TIME = 1000.0
ROUND_DURATION = 60.0
FREEZE_DURATION = 10.0


def make_lots() -> List[Lot]:
    """Five lots with distinct floor prices."""
    return [
        Lot("lot-1", "Tesla", Decimal("75")),
        Lot("lot-2", "Apple", Decimal("85")),
        Lot("lot-3", "Google", Decimal("65")),
        Lot("lot-4", "Amazon", Decimal("55")),
        Lot("lot-5", "Microsoft", Decimal("90")),
    ]


def make_accounts() -> List[Account]:
    """Three funded accounts."""
    return [
        Account("acc-1", "Alice", Decimal("1000")),
        Account("acc-2", "Bob", Decimal("1500")),
        Account("acc-3", "Charlie", Decimal("2000")),
    ]


def make_engine(
    clock: ManualClock,
    lots_per_round: int = 5,
    seed: int = 42,
    timer_host=None,
    lots=None,
    accounts=None,
) -> AuctionEngine:
    """Engine on a manual clock with verbose output off."""
    return AuctionEngine(
        lots=lots if lots is not None else make_lots(),
        accounts=accounts if accounts is not None else make_accounts(),
        config=AuctionConfig(
            round_duration=ROUND_DURATION,
            freeze_duration=FREEZE_DURATION,
            lots_per_round=lots_per_round,
            seed=seed,
        ),
        clock=clock,
        timer_host=timer_host,
        verbose=False,
    )


def end_round(engine: AuctionEngine) -> None:
    """Advance the clock to the round's end time and run due transitions."""
    engine.clock.set(engine.current_round.end_time)
    engine.step()


def end_freeze(engine: AuctionEngine) -> None:
    """Advance the clock to the freeze end time and run due transitions."""
    engine.clock.set(engine.current_round.freeze_end_time)
    engine.step()


def solvent(engine: AuctionEngine) -> bool:
    """Exposure <= balance for every account."""
    return all(v.exposure <= v.balance for v in engine.account_snapshots())


# =============================================================================
# RANDOM OPERATION SEQUENCES
# =============================================================================

ACCOUNT_IDS = ["acc-1", "acc-2", "acc-3"]
LOT_IDS = ["lot-1", "lot-2", "lot-3", "lot-4", "lot-5"]


def apply_operation(engine: AuctionEngine, op) -> bool:
    """
    Run one (kind, account_index, lot_index, value) operation.

    kind is "bid", "remove" or "wait" (advance the clock by value seconds
    and run due transitions). Returns False if the command was rejected.
    """
    kind, account_index, lot_index, value = op
    account_id = ACCOUNT_IDS[account_index]
    lot_id = LOT_IDS[lot_index]
    try:
        if kind == "bid":
            engine.place_bid(lot_id, Decimal(value), account_id=account_id)
        elif kind == "remove":
            engine.remove_bid(lot_id, account_id=account_id)
        else:
            engine.clock.advance(value)
            engine.step()
    except AuctionError:
        return False
    return True


operations = st.lists(
    st.one_of(
        st.tuples(st.just("bid"), st.integers(0, 2), st.integers(0, 4), st.integers(0, 2200)),
        st.tuples(st.just("remove"), st.integers(0, 2), st.integers(0, 4), st.just(0)),
        st.tuples(st.just("wait"), st.just(0), st.just(0), st.integers(1, 40)),
    ),
    max_size=60,
)
