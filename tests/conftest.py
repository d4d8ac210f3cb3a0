"""
conftest.py - Shared pytest fixtures for auction tests

Provides common fixtures used across unit, conformance and functional tests:
- Standard catalog and accounts
- Manual clock
- Engines (all lots open, partial draw, with a recording timer host)
"""

import pytest

from auction import LotCatalog, AccountBook, BidLedger, ManualClock

from tests.helpers import START_TIME, make_lots, make_accounts, make_engine
from tests.fake_timer_host import RecordingTimerHost


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Manual clock starting at a non-zero time."""
    return ManualClock(START_TIME)


@pytest.fixture
def catalog():
    return LotCatalog(make_lots())


@pytest.fixture
def account_book():
    return AccountBook(make_accounts())


@pytest.fixture
def bid_ledger(catalog, account_book):
    return BidLedger(catalog, account_book)


# =============================================================================
# ENGINE FIXTURES
# =============================================================================

@pytest.fixture
def engine(clock):
    """Started engine where every lot is open each round."""
    eng = make_engine(clock)
    eng.start()
    return eng


@pytest.fixture
def idle_engine(clock):
    """Engine that has not been started."""
    return make_engine(clock)


@pytest.fixture
def partial_engine(clock):
    """Started engine drawing 2 of 5 lots per round."""
    eng = make_engine(clock, lots_per_round=2)
    eng.start()
    return eng


@pytest.fixture
def timer_host():
    return RecordingTimerHost()


@pytest.fixture
def hosted_engine(clock, timer_host):
    """Started engine whose deadlines go to a RecordingTimerHost."""
    eng = make_engine(clock, timer_host=timer_host)
    eng.start()
    return eng
