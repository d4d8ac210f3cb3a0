#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Auction Engine Step by Step

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - Catalog, accounts, opening the first round
  4-6:  Bidding      - Placing, replacing and rejected bids
  7-8:  Settlement   - Round end, freeze window, next round
  9-10: Safety       - Duplicate timers, a seeded multi-round simulation

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Tuple
import sys

import numpy as np

from auction import (
    AuctionEngine, AuctionConfig, Lot, Account, ManualClock,
    AuctionError, TransitionResult,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    round_duration: float = 60.0
    freeze_duration: float = 10.0
    lots_per_round: int = 3
    seed: int = 7

    lots: List[Tuple[str, str, str]] = field(default_factory=lambda: [
        ("lot-1", "Tesla", "75"),
        ("lot-2", "Apple", "85"),
        ("lot-3", "Google", "65"),
        ("lot-4", "Amazon", "55"),
        ("lot-5", "Microsoft", "90"),
    ])
    accounts: List[Tuple[str, str, str]] = field(default_factory=lambda: [
        ("acc-1", "Alice", "1000"),
        ("acc-2", "Bob", "1500"),
        ("acc-3", "Charlie", "2000"),
    ])

    # Simulation (Step 10)
    simulation_rounds: int = 25


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def print_catalog(engine: AuctionEngine):
    print(f"  {'Lot':<10} {'Price':>8} {'Owner':<8} {'High':>8} {'Bids':>4} {'Mine':>8}  Open")
    for row in engine.catalog_snapshot():
        print(f"  {row.label:<10} {row.current_price:>8} {row.owner_name or '-':<8} "
              f"{row.highest_bid:>8} {row.bid_count:>4} {row.viewer_bid:>8}  "
              f"{'yes' if row.is_available else ''}")


def print_accounts(engine: AuctionEngine):
    for view in engine.account_snapshots():
        print(f"  {view.name:<8} balance={view.balance:>8}  exposure={view.exposure:>6}  "
              f"available={view.available_balance:>8}")


def build_engine(clock: ManualClock, verbose: bool = True) -> AuctionEngine:
    return AuctionEngine(
        lots=[Lot(lot_id, label, Decimal(floor)) for lot_id, label, floor in CONFIG.lots],
        accounts=[Account(acc_id, name, Decimal(bal)) for acc_id, name, bal in CONFIG.accounts],
        config=AuctionConfig(
            round_duration=CONFIG.round_duration,
            freeze_duration=CONFIG.freeze_duration,
            lots_per_round=CONFIG.lots_per_round,
            seed=CONFIG.seed,
        ),
        clock=clock,
        verbose=verbose,
    )


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_catalog() -> Tuple[AuctionEngine, ManualClock]:
    step_header(1, "THE CATALOG", "Meet the lots and the accounts that bid on them.")
    clock = ManualClock()
    engine = build_engine(clock)
    print(f"Phase: {engine.phase.value}")
    print_catalog(engine)
    section_header("Accounts")
    print_accounts(engine)
    return engine, clock


def step_02_start(engine: AuctionEngine):
    step_header(2, "OPEN THE FIRST ROUND",
                f"start() draws {CONFIG.lots_per_round} lots with a seeded RNG.")
    engine.start()
    print(f"\nOpen lots: {engine.current_round.open_lot_ids}")
    print(f"Time remaining: {engine.time_remaining_ms()} ms")
    print_catalog(engine)


def step_03_viewer(engine: AuctionEngine):
    step_header(3, "PERSPECTIVE", "Snapshots are computed for the selected account.")
    print(f"Selected account: {engine.viewing_account_id}")
    engine.select_account("acc-2")
    print(f"After select_account('acc-2'): {engine.account_snapshot().name}")
    engine.select_account("acc-1")


# ============================================================================
# PHASE 2: BIDDING (Steps 4-6)
# ============================================================================

def step_04_bids(engine: AuctionEngine):
    step_header(4, "PLACE BIDS", "Each account may hold one bid per open lot.")
    open_ids = engine.current_round.open_lot_ids
    engine.place_bid(open_ids[0], Decimal("150"))
    engine.place_bid(open_ids[0], Decimal("120"), account_id="acc-2")
    engine.place_bid(open_ids[1], Decimal("200"), account_id="acc-3")
    print()
    print_catalog(engine)


def step_05_replace(engine: AuctionEngine):
    step_header(5, "REPLACE AND REMOVE", "A new bid on the same lot replaces the old one.")
    open_ids = engine.current_round.open_lot_ids
    engine.place_bid(open_ids[0], Decimal("160"), account_id="acc-2")
    engine.remove_bid(open_ids[1], account_id="acc-3")
    print()
    print_accounts(engine)


def step_06_rejections(engine: AuctionEngine):
    step_header(6, "REJECTED BIDS", "Every rejected command leaves the state unchanged.")
    open_ids = engine.current_round.open_lot_ids
    closed = next(lot_id for lot_id in engine.catalog.lot_ids() if lot_id not in open_ids)
    attempts = [
        ("below floor", open_ids[1], Decimal("1")),
        ("not open", closed, Decimal("500")),
        ("over balance", open_ids[2], Decimal("900")),
    ]
    for label, lot_id, amount in attempts:
        section_header(label)
        try:
            engine.place_bid(lot_id, amount)
        except AuctionError:
            pass
    print()
    print_accounts(engine)


# ============================================================================
# PHASE 3: SETTLEMENT (Steps 7-8)
# ============================================================================

def step_07_settle(engine: AuctionEngine, clock: ManualClock):
    step_header(7, "ROUND END", "Highest bid wins; ties go to the earliest bid.")
    clock.advance(CONFIG.round_duration)
    engine.step()
    print()
    print_catalog(engine)
    section_header("Balances after settlement")
    print_accounts(engine)
    print(f"\nFreeze: {engine.time_remaining_ms()} ms until the next round")


def step_08_next_round(engine: AuctionEngine, clock: ManualClock):
    step_header(8, "NEXT ROUND", "After the freeze window a new draw opens.")
    clock.advance(CONFIG.freeze_duration)
    engine.step()
    print(f"Round {engine.current_round.generation}: {engine.current_round.open_lot_ids}")


# ============================================================================
# PHASE 4: SAFETY (Steps 9-10)
# ============================================================================

def step_09_duplicate_timer(engine: AuctionEngine, clock: ManualClock):
    step_header(9, "DUPLICATE TIMERS", "A timer delivered twice settles once.")
    lot_id = engine.current_round.open_lot_ids[0]
    engine.place_bid(lot_id, engine.catalog.get(lot_id).floor_price + 5, account_id="acc-3")
    event = engine.events.peek_next()
    clock.set(event.trigger_time)
    first = engine.fire(event)
    second = engine.fire(event)
    print(f"\nfirst delivery: {first.value}, second delivery: {second.value}")
    assert second == TransitionResult.STALE
    print_accounts(engine)


def step_10_simulation():
    step_header(10, "SEEDED SIMULATION",
                f"{CONFIG.simulation_rounds} rounds with random bidders; solvency holds throughout.")
    clock = ManualClock()
    engine = build_engine(clock, verbose=False)
    engine.start()
    rng_bids = np.random.default_rng(CONFIG.seed)
    rejected = 0
    accepted = 0

    for _ in range(CONFIG.simulation_rounds):
        for lot_id in engine.current_round.open_lot_ids:
            floor = engine.catalog.get(lot_id).floor_price
            for account in engine.state.accounts:
                if rng_bids.random() < 0.5:
                    continue
                amount = floor + Decimal(int(rng_bids.integers(0, 200)))
                try:
                    engine.place_bid(lot_id, amount, account_id=account.account_id)
                    accepted += 1
                except AuctionError:
                    rejected += 1
        clock.advance(CONFIG.round_duration)
        engine.step()
        clock.advance(CONFIG.freeze_duration)
        engine.step()

    print(f"Accepted bids: {accepted}, rejected: {rejected}")
    print(f"Rounds settled: {len(engine.settlements)}")
    print_catalog(engine)
    print_accounts(engine)
    initial = sum(Decimal(bal) for _, _, bal in CONFIG.accounts)
    spent = sum((a.amount for s in engine.settlements for a in s.awards), Decimal("0"))
    print(f"\n✓ Spent {spent}; balances {engine.accounts.total_balance()} = {initial} - {spent}")
    engine.stop()


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       ROUND AUCTION - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    engine, clock = step_01_catalog()
    wait_for_enter()
    step_02_start(engine)
    wait_for_enter()
    step_03_viewer(engine)
    wait_for_enter()
    step_04_bids(engine)
    wait_for_enter()
    step_05_replace(engine)
    wait_for_enter()
    step_06_rejections(engine)
    wait_for_enter()
    step_07_settle(engine, clock)
    wait_for_enter()
    step_08_next_round(engine, clock)
    wait_for_enter()
    step_09_duplicate_timer(engine, clock)
    wait_for_enter()
    step_10_simulation()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See auction/engine.py for commands, transitions and queries
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
