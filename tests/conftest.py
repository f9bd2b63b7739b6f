"""
conftest.py - Shared pytest fixtures for payledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Engines (default policy, verbose, test mode)
- Funded engines with one or two clients
- Helpers to build decimals and compare snapshots
"""

import pytest
from decimal import Decimal
from typing import Dict, Iterable

from payledger import (
    LedgerEngine, LedgerPolicy, AccountSnapshot,
    Deposit, Withdrawal,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def D(value) -> Decimal:
    """Decimal from a string or int; never from a float."""
    return Decimal(str(value))


def accounts_by_client(snapshot: Iterable[AccountSnapshot]) -> Dict[int, AccountSnapshot]:
    return {account.client: account for account in snapshot}


def assert_account(engine: LedgerEngine, client: int, available, held, locked: bool = False):
    """Assert an account's funds exactly, and that total is derived."""
    account = engine.get_account(client)
    assert account is not None, f"client {client} unknown"
    assert account.available == D(available), f"available {account.available} != {available}"
    assert account.held == D(held), f"held {account.held} != {held}"
    assert account.total == D(available) + D(held)
    assert account.locked is locked


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def engine():
    """Fresh engine with the default policy."""
    return LedgerEngine(verbose=False)


@pytest.fixture
def test_engine():
    """Engine that allows set_funds()."""
    return LedgerEngine(verbose=False, test_mode=True)


@pytest.fixture
def funded_engine(engine):
    """Client 1 with a 10.0 deposit (tx 1)."""
    engine.apply(Deposit(tx=1, client=1, amount=D("10.0")))
    return engine


@pytest.fixture
def two_client_engine(engine):
    """Client 1 deposited 10.0 (tx 1) and withdrew 4.0 (tx 2); client 2 deposited 7.5 (tx 3)."""
    engine.apply(Deposit(tx=1, client=1, amount=D("10.0")))
    engine.apply(Withdrawal(tx=2, client=1, amount=D("4.0")))
    engine.apply(Deposit(tx=3, client=2, amount=D("7.5")))
    return engine


@pytest.fixture
def strict_engine():
    """Engine that ignores records for locked accounts."""
    return LedgerEngine(policy=LedgerPolicy(reject_when_locked=True), verbose=False)
