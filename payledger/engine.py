"""
engine.py - Stateful Client Ledger Engine

The LedgerEngine is the only component that mutates account state. It replays
transaction records strictly in arrival order and keeps the history needed to
resolve disputes that arrive later in the stream.

Key responsibilities:
    - Dispatches each record kind exhaustively (Deposit, Withdrawal, Dispute,
      Resolve, Chargeback)
    - Validates business rules before touching state; rejected records are
      ignored without error
    - Tracks the dispute state of every accepted deposit and withdrawal
    - Verifies the funds invariant after every applied record and raises
      InvariantViolation if it breaks
"""

from __future__ import annotations
from dataclasses import replace
from decimal import Decimal, Inexact, getcontext, localcontext
from typing import Dict, Iterable, List, Optional, TextIO, Tuple, assert_never
import sys

from .core import (
    # Records
    Deposit, Withdrawal, Dispute, Resolve, Chargeback,
    TransactionRecord, FundsRecord,
    # State
    Account, AccountSnapshot, HistoryEntry, DisputeState,
    ApplyResult, LedgerPolicy, WithdrawalDisputeMode,
    # Exceptions
    LedgerError, InvariantViolation,
    # Helpers
    ZERO, quantize_amount,
)


class LedgerEngine:
    """
    Single-pass ledger over client accounts with a dispute lifecycle.

    Design Principles:
        - Business-rule rejections are silent: an insufficient withdrawal or
          a dispute against an unknown, foreign or settled transaction
          changes nothing and raises nothing.
        - Internal-consistency faults are loud: negative available or held
          funds after an applied record raise InvariantViolation. No
          rollback is attempted.
        - All state (accounts and history) lives on the instance.

    Thread Safety:
        Not thread-safe. Use one engine per transaction stream.

    Example:
        engine = LedgerEngine()
        engine.apply(Deposit(tx=1, client=1, amount=Decimal("5.0")))
        engine.apply(Dispute(client=1, tx=1))
        engine.snapshot()
        # [AccountSnapshot(client=1, available=Decimal('0.0000'), held=Decimal('5.0000'), ...)]
    """

    def __init__(
        self,
        policy: Optional[LedgerPolicy] = None,
        verbose: bool = False,
        test_mode: bool = False,
        stream: Optional[TextIO] = None,
    ):
        """
        Create an engine.

        Args:
            policy: Business-rule switches (default: LedgerPolicy())
            verbose: Print one line per applied or ignored record (default: False)
            test_mode: Allow set_funds() to seed account state (default: False)
            stream: Where verbose output goes (default: sys.stderr)
        """
        self.policy = policy or LedgerPolicy()
        self.accounts: Dict[int, Account] = {}
        self.history: Dict[int, HistoryEntry] = {}
        self.verbose = verbose
        self._test_mode = test_mode
        self._stream = stream
        self.applied_count = 0
        self.ignored_count = 0

    # ========================================================================
    # READ-ONLY ACCESS
    # ========================================================================

    def snapshot(self) -> List[AccountSnapshot]:
        """Return every account, ordered by client id."""
        return [self.accounts[client].snapshot() for client in sorted(self.accounts)]

    def get_account(self, client: int) -> Optional[AccountSnapshot]:
        """Return a snapshot of one account, or None if the client is unknown."""
        account = self.accounts.get(client)
        return account.snapshot() if account is not None else None

    def get_history(self, tx: int) -> Optional[HistoryEntry]:
        """Return a copy of the history entry for a deposit or withdrawal id."""
        entry = self.history.get(tx)
        return replace(entry) if entry is not None else None

    def list_clients(self) -> List[int]:
        """List all known client ids."""
        return sorted(self.accounts)

    def total_funds(self) -> Decimal:
        """Sum of available + held over all accounts, in client order."""
        return sum((self.accounts[c].total for c in sorted(self.accounts)), ZERO)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            'applied': self.applied_count,
            'ignored': self.ignored_count,
            'accounts': len(self.accounts),
            'history': len(self.history),
        }

    # ========================================================================
    # TEST SUPPORT (Mutating)
    # ========================================================================

    def set_funds(
        self,
        client: int,
        available: Decimal,
        held: Decimal = ZERO,
        locked: bool = False,
    ) -> None:
        """
        Overwrite an account's funds directly.

        WARNING: This bypasses every business rule and the invariant check.
        It is only available in test mode.

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_funds() is disabled outside test mode. "
                "Apply Deposit/Withdrawal records to change funds. "
                "Set test_mode=True when creating LedgerEngine for testing."
            )
        account = self._get_or_create_account(client)
        account.available = available
        account.held = held
        account.locked = locked

    # ========================================================================
    # RECORD PROCESSING (Mutating)
    # ========================================================================

    def apply_all(self, records: Iterable[TransactionRecord]) -> LedgerEngine:
        """
        Apply records from a single-pass iterable, in order.

        Each record is fully applied and verified before the next one is
        pulled, so a lazy decoder is consumed one row at a time.
        """
        for record in records:
            self.apply(record)
        return self

    def apply(self, record: TransactionRecord) -> ApplyResult:
        """
        Apply one record.

        The client account is created on first sight, even if the record is
        then ignored.

        Returns:
            ApplyResult.APPLIED if state changed
            ApplyResult.IGNORED if a business rule rejected the record

        Raises:
            InvariantViolation: If the account has negative available or held
                funds after the record was applied (e.g. a dispute on a
                deposit that was already withdrawn), or if the record cannot
                be applied without rounding
        """
        record = self._normalize(record)
        account = self._get_or_create_account(record.client)

        valid, reason = self._validate(account, record)
        if not valid:
            self.ignored_count += 1
            self._log(f"✗ IGNORED: {record!r}: {reason}")
            return ApplyResult.IGNORED

        self._execute_exact(account, record)
        self._verify_account(account)

        self.applied_count += 1
        self._log(f"✓ APPLIED: {record!r}")
        return ApplyResult.APPLIED

    def _normalize(self, record: TransactionRecord) -> TransactionRecord:
        """Round deposit and withdrawal amounts to the policy's precision."""
        if self.policy.amount_places is None or not isinstance(record, (Deposit, Withdrawal)):
            return record
        return replace(record, amount=quantize_amount(record.amount, self.policy.amount_places))

    def _get_or_create_account(self, client: int) -> Account:
        account = self.accounts.get(client)
        if account is None:
            account = Account(client=client)
            self.accounts[client] = account
        return account

    def _validate(self, account: Account, record: TransactionRecord) -> Tuple[bool, str]:
        """
        Check business rules without mutating anything.

        Returns:
            Tuple of (valid: bool, reason: str)
            If valid is True, reason is an empty string
        """
        if account.locked and self.policy.reject_when_locked:
            return False, "account locked"

        match record:
            case Deposit() | Withdrawal():
                if record.tx in self.history:
                    return False, f"duplicate tx {record.tx}"
                if isinstance(record, Withdrawal) and account.available < record.amount:
                    return False, f"insufficient funds: {account.available} < {record.amount}"
                return True, ""
            case Dispute():
                valid, reason = self._check_reference(record, DisputeState.UNDISPUTED)
                if not valid:
                    return valid, reason
                entry = self.history[record.tx]
                if (
                    self.policy.reject_unfunded_disputes
                    and isinstance(entry.record, Deposit)
                    and account.available < entry.amount
                ):
                    return False, f"insufficient funds to hold: {account.available} < {entry.amount}"
                return True, ""
            case Resolve() | Chargeback():
                return self._check_reference(record, DisputeState.DISPUTED)
            case _:
                assert_never(record)

    def _check_reference(self, record, required: DisputeState) -> Tuple[bool, str]:
        entry = self.history.get(record.tx)
        if entry is None:
            return False, f"unknown tx {record.tx}"
        if entry.client != record.client:
            return False, f"tx {record.tx} belongs to client {entry.client}"
        if entry.state is not required:
            return False, f"tx {record.tx} is {entry.state.value}"
        return True, ""

    def _execute_exact(self, account: Account, record: TransactionRecord) -> None:
        """
        Run _execute with Inexact trapped.

        A sum that needs more digits than the context precision raises
        InvariantViolation instead of being rounded. Earlier mutations of
        the same record are not rolled back.
        """
        try:
            with localcontext() as ctx:
                ctx.traps[Inexact] = True
                self._execute(account, record)
        except Inexact:
            raise InvariantViolation(
                f"Failed exact arithmetic check for client {account.client}: "
                f"{record!r} needs more than {getcontext().prec} digits",
                client=account.client,
                account=account.snapshot(),
            ) from None

    def _execute(self, account: Account, record: TransactionRecord) -> None:
        """Apply a validated record to the account and the history."""
        match record:
            case Deposit():
                account.available += record.amount
                self.history[record.tx] = HistoryEntry(record)
            case Withdrawal():
                account.available -= record.amount
                self.history[record.tx] = HistoryEntry(record)
            case Dispute():
                entry = self.history[record.tx]
                self._hold(account, entry.record)
                entry.state = DisputeState.DISPUTED
            case Resolve():
                entry = self.history[record.tx]
                self._release(account, entry.record)
                entry.state = DisputeState.RESOLVED
            case Chargeback():
                entry = self.history[record.tx]
                self._charge_back(account, entry.record)
                entry.state = DisputeState.CHARGED_BACK
                account.locked = True
            case _:
                assert_never(record)

    def _hold(self, account: Account, disputed: FundsRecord) -> None:
        """Move the disputed amount into held."""
        if isinstance(disputed, Deposit):
            account.available -= disputed.amount
            account.held += disputed.amount
        elif self.policy.withdrawal_disputes is not WithdrawalDisputeMode.FREEZE:
            account.held += disputed.amount

    def _release(self, account: Account, disputed: FundsRecord) -> None:
        """Inverse of _hold."""
        if isinstance(disputed, Deposit):
            account.held -= disputed.amount
            account.available += disputed.amount
        elif self.policy.withdrawal_disputes is not WithdrawalDisputeMode.FREEZE:
            account.held -= disputed.amount

    def _charge_back(self, account: Account, disputed: FundsRecord) -> None:
        """Remove the disputed amount from held; REFUND returns a withdrawal."""
        mode = self.policy.withdrawal_disputes
        if isinstance(disputed, Deposit):
            account.held -= disputed.amount
        elif mode is WithdrawalDisputeMode.HOLD:
            account.held -= disputed.amount
        elif mode is WithdrawalDisputeMode.REFUND:
            account.held -= disputed.amount
            account.available += disputed.amount

    def _verify_account(self, account: Account) -> None:
        """
        Raise InvariantViolation if either pool went negative.

        If this fires, the engine logic is wrong (or state was seeded in
        test mode); the stream must not be processed further.
        """
        if account.available < ZERO:
            raise InvariantViolation(
                f"Failed available non-negative check for client {account.client}: {account.snapshot()}",
                client=account.client,
                account=account.snapshot(),
            )
        if account.held < ZERO:
            raise InvariantViolation(
                f"Failed held non-negative check for client {account.client}: {account.snapshot()}",
                client=account.client,
                account=account.snapshot(),
            )

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message, file=self._stream or sys.stderr)
