"""
test_policy.py - Unit tests for LedgerPolicy switches

Tests:
- reject_when_locked: records for locked clients are ignored
- WithdrawalDisputeMode.REFUND: chargeback returns the withdrawal
- WithdrawalDisputeMode.FREEZE: disputes move no funds
"""

import pytest
from payledger import (
    LedgerEngine, LedgerPolicy, WithdrawalDisputeMode, ApplyResult, DisputeState,
    Deposit, Withdrawal, Dispute, Resolve, Chargeback,
)

from conftest import D, assert_account


def _locked_client(engine: LedgerEngine) -> LedgerEngine:
    """Client 1 with 10.0 deposited (tx 1), 2.0 more (tx 2), tx 1 charged back."""
    engine.apply(Deposit(tx=1, client=1, amount=D("10")))
    engine.apply(Deposit(tx=2, client=1, amount=D("2")))
    engine.apply(Dispute(client=1, tx=1))
    engine.apply(Chargeback(client=1, tx=1))
    return engine


class TestRejectWhenLocked:

    def test_deposit_ignored_when_locked(self, strict_engine):
        _locked_client(strict_engine)
        assert strict_engine.apply(Deposit(tx=3, client=1, amount=D("5"))) is ApplyResult.IGNORED
        assert_account(strict_engine, 1, "2", "0", locked=True)

    def test_withdrawal_ignored_when_locked(self, strict_engine):
        _locked_client(strict_engine)
        assert strict_engine.apply(Withdrawal(tx=3, client=1, amount=D("1"))) is ApplyResult.IGNORED
        assert_account(strict_engine, 1, "2", "0", locked=True)

    def test_dispute_ignored_when_locked(self, strict_engine):
        _locked_client(strict_engine)
        assert strict_engine.apply(Dispute(client=1, tx=2)) is ApplyResult.IGNORED
        assert strict_engine.get_history(2).state is DisputeState.UNDISPUTED

    def test_other_clients_unaffected(self, strict_engine):
        _locked_client(strict_engine)
        assert strict_engine.apply(Deposit(tx=3, client=2, amount=D("5"))) is ApplyResult.APPLIED
        assert_account(strict_engine, 2, "5", "0")

    def test_default_policy_keeps_processing(self, engine):
        _locked_client(engine)
        assert engine.apply(Deposit(tx=3, client=1, amount=D("5"))) is ApplyResult.APPLIED
        assert_account(engine, 1, "7", "0", locked=True)

    def test_open_dispute_frozen_by_lock(self, strict_engine):
        """With rejection on, a dispute open at lock time can no longer settle."""
        strict_engine.apply(Deposit(tx=1, client=1, amount=D("10")))
        strict_engine.apply(Deposit(tx=2, client=1, amount=D("2")))
        strict_engine.apply(Dispute(client=1, tx=1))
        strict_engine.apply(Dispute(client=1, tx=2))
        strict_engine.apply(Chargeback(client=1, tx=1))
        assert strict_engine.apply(Resolve(client=1, tx=2)) is ApplyResult.IGNORED
        assert_account(strict_engine, 1, "0", "2", locked=True)


class TestRefundMode:

    @pytest.fixture
    def refund_engine(self):
        engine = LedgerEngine(policy=LedgerPolicy(withdrawal_disputes=WithdrawalDisputeMode.REFUND))
        engine.apply(Deposit(tx=1, client=1, amount=D("10")))
        engine.apply(Withdrawal(tx=2, client=1, amount=D("4")))
        return engine

    def test_dispute_holds_withdrawal(self, refund_engine):
        refund_engine.apply(Dispute(client=1, tx=2))
        assert_account(refund_engine, 1, "6", "4")

    def test_chargeback_returns_withdrawal(self, refund_engine):
        refund_engine.apply(Dispute(client=1, tx=2))
        refund_engine.apply(Chargeback(client=1, tx=2))
        assert_account(refund_engine, 1, "10", "0", locked=True)

    def test_deposit_chargeback_unchanged(self, refund_engine):
        refund_engine.apply(Deposit(tx=3, client=1, amount=D("5")))
        refund_engine.apply(Dispute(client=1, tx=3))
        refund_engine.apply(Chargeback(client=1, tx=3))
        assert_account(refund_engine, 1, "6", "0", locked=True)


class TestFreezeMode:

    @pytest.fixture
    def freeze_engine(self):
        engine = LedgerEngine(policy=LedgerPolicy(withdrawal_disputes=WithdrawalDisputeMode.FREEZE))
        engine.apply(Deposit(tx=1, client=1, amount=D("10")))
        engine.apply(Withdrawal(tx=2, client=1, amount=D("4")))
        return engine

    def test_dispute_moves_nothing(self, freeze_engine):
        assert freeze_engine.apply(Dispute(client=1, tx=2)) is ApplyResult.APPLIED
        assert_account(freeze_engine, 1, "6", "0")
        assert freeze_engine.get_history(2).state is DisputeState.DISPUTED

    def test_resolve_moves_nothing(self, freeze_engine):
        freeze_engine.apply(Dispute(client=1, tx=2))
        freeze_engine.apply(Resolve(client=1, tx=2))
        assert_account(freeze_engine, 1, "6", "0")
        assert freeze_engine.get_history(2).state is DisputeState.RESOLVED

    def test_chargeback_only_locks(self, freeze_engine):
        freeze_engine.apply(Dispute(client=1, tx=2))
        freeze_engine.apply(Chargeback(client=1, tx=2))
        assert_account(freeze_engine, 1, "6", "0", locked=True)

    def test_deposit_disputes_still_hold(self, freeze_engine):
        freeze_engine.apply(Deposit(tx=3, client=1, amount=D("1")))
        freeze_engine.apply(Dispute(client=1, tx=3))
        assert_account(freeze_engine, 1, "6", "1")
