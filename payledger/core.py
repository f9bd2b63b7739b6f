"""
Core types for the payments ledger.

This module provides the foundational data structures used by the engine:
1. Transaction records: Deposit, Withdrawal, Dispute, Resolve, Chargeback
2. Dispute state and ledger history entries
3. Client accounts (mutable, engine-owned) and their immutable snapshots
4. Exceptions: LedgerError and its subclasses
5. Policy: the configurable switches of the engine

Records are frozen and validated on construction. Only the engine mutates
an Account.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from enum import Enum
from typing import Optional, Union


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Amounts are summed and compared exactly. The context is configured once at
# import time; nothing else in the package touches it.
#
#   - prec=50: far beyond any realistic balance at four fractional digits
#   - rounding=ROUND_HALF_EVEN: used only when amounts are quantized on entry
#
_LEDGER_DECIMAL_CONTEXT = getcontext()
_LEDGER_DECIMAL_CONTEXT.prec = 50
_LEDGER_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Fractional digits used when reporting, and by default when amounts enter.
DECIMAL_PLACES = 4

# Client ids are unsigned 16-bit, transaction ids unsigned 32-bit.
MAX_CLIENT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1

# Largest accepted amount (96-bit integer range). Keeps every amount at four
# places, and every realistic balance, inside the context precision.
MAX_AMOUNT = Decimal(2**96 - 1)

ZERO = Decimal("0")


def quantize_amount(value: Decimal, places: Optional[int] = DECIMAL_PLACES) -> Decimal:
    """
    Round an amount to a fixed number of fractional digits (banker's rounding).

    Returns the value unchanged if places is None.
    """
    if places is None:
        return value
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_EVEN)


# Starting balance of a new account, at reporting precision.
ZERO_AMOUNT = quantize_amount(ZERO)


# ============================================================================
# ENUMS
# ============================================================================

class TransactionKind(Enum):
    """Wire names of the five record kinds."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeState(Enum):
    """
    Dispute lifecycle of a Deposit or Withdrawal.

    UNDISPUTED -> DISPUTED -> RESOLVED | CHARGED_BACK
    RESOLVED and CHARGED_BACK are terminal.
    """
    UNDISPUTED = "undisputed"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"

    @property
    def is_terminal(self) -> bool:
        return self in (DisputeState.RESOLVED, DisputeState.CHARGED_BACK)


class ApplyResult(Enum):
    """
    Outcome of applying a record.

    APPLIED: The record changed engine state.
    IGNORED: The record was rejected by a business rule and changed nothing.
    """
    APPLIED = "applied"
    IGNORED = "ignored"


class WithdrawalDisputeMode(Enum):
    """
    How a dispute against a withdrawal moves funds.

    HOLD: the disputed amount is added to held (a claim that the withdrawal
          was erroneous); a chargeback removes it from held again.
    REFUND: as HOLD, but a chargeback credits the amount back to available.
    FREEZE: no funds move; only the dispute state changes.
    """
    HOLD = "hold"
    REFUND = "refund"
    FREEZE = "freeze"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InvariantViolation(LedgerError):
    """
    Raised when an account ends up with negative available or held funds,
    or when applying a record would need more digits than the context holds.

    This is an internal-consistency fault, never a business-rule rejection.
    The engine does not roll back; processing should stop.
    """

    def __init__(self, message: str, client: int, account: 'AccountSnapshot'):
        super().__init__(message)
        self.client = client
        self.account = account


class DecodeError(LedgerError):
    """Raised when an input row cannot be turned into a transaction record."""

    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _check_id(name: str, value: int, maximum: int) -> None:
    # bool is an int subclass; an id of True is a bug, not client 1
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > maximum:
        raise ValueError(f"{name} out of range 0..{maximum}: {value}")


def _check_amount(value: Decimal) -> None:
    if not isinstance(value, Decimal):
        raise ValueError(f"amount must be Decimal, got {type(value).__name__}")
    if value.is_nan() or value.is_infinite():
        raise ValueError(f"amount must be finite, got {value}")
    if value < ZERO:
        raise ValueError(f"amount must be non-negative, got {value}")
    if value > MAX_AMOUNT:
        raise ValueError(f"amount exceeds maximum {MAX_AMOUNT}, got {value}")


# ============================================================================
# TRANSACTION RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Deposit:
    """
    Credit to a client's available funds.

    Attributes:
        tx: Globally unique transaction id.
        client: Client id.
        amount: Non-negative, finite amount.
    """
    tx: int
    client: int
    amount: Decimal

    def __post_init__(self):
        _check_id("tx", self.tx, MAX_TX_ID)
        _check_id("client", self.client, MAX_CLIENT_ID)
        _check_amount(self.amount)

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.DEPOSIT

    def __repr__(self) -> str:
        return f"Deposit(tx={self.tx}, client={self.client}, amount={self.amount})"


@dataclass(frozen=True, slots=True)
class Withdrawal:
    """
    Debit from a client's available funds.

    Attributes:
        tx: Globally unique transaction id.
        client: Client id.
        amount: Non-negative, finite amount.
    """
    tx: int
    client: int
    amount: Decimal

    def __post_init__(self):
        _check_id("tx", self.tx, MAX_TX_ID)
        _check_id("client", self.client, MAX_CLIENT_ID)
        _check_amount(self.amount)

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.WITHDRAWAL

    def __repr__(self) -> str:
        return f"Withdrawal(tx={self.tx}, client={self.client}, amount={self.amount})"


@dataclass(frozen=True, slots=True)
class Dispute:
    """Claim that the referenced deposit or withdrawal was erroneous."""
    client: int
    tx: int

    def __post_init__(self):
        _check_id("client", self.client, MAX_CLIENT_ID)
        _check_id("tx", self.tx, MAX_TX_ID)

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.DISPUTE

    def __repr__(self) -> str:
        return f"Dispute(client={self.client}, ref={self.tx})"


@dataclass(frozen=True, slots=True)
class Resolve:
    """Reverses a dispute, releasing the held amount."""
    client: int
    tx: int

    def __post_init__(self):
        _check_id("client", self.client, MAX_CLIENT_ID)
        _check_id("tx", self.tx, MAX_TX_ID)

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.RESOLVE

    def __repr__(self) -> str:
        return f"Resolve(client={self.client}, ref={self.tx})"


@dataclass(frozen=True, slots=True)
class Chargeback:
    """Finalizes a dispute: the held amount leaves the account and it locks."""
    client: int
    tx: int

    def __post_init__(self):
        _check_id("client", self.client, MAX_CLIENT_ID)
        _check_id("tx", self.tx, MAX_TX_ID)

    @property
    def kind(self) -> TransactionKind:
        return TransactionKind.CHARGEBACK

    def __repr__(self) -> str:
        return f"Chargeback(client={self.client}, ref={self.tx})"


# Records that can be referenced by a dispute.
FundsRecord = Union[Deposit, Withdrawal]

# Records that reference a prior FundsRecord.
ReferenceRecord = Union[Dispute, Resolve, Chargeback]

TransactionRecord = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]


# ============================================================================
# LEDGER HISTORY
# ============================================================================

@dataclass(slots=True)
class HistoryEntry:
    """
    An accepted deposit or withdrawal with its current dispute state.

    The record is stored after entry rounding, so the amount is exactly what
    moved through the account.
    """
    record: FundsRecord
    state: DisputeState = DisputeState.UNDISPUTED

    @property
    def client(self) -> int:
        return self.record.client

    @property
    def amount(self) -> Decimal:
        return self.record.amount


# ============================================================================
# ACCOUNTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """
    Read-only view of a client account.

    total is computed from available and held when the snapshot is taken.
    """
    client: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass(slots=True)
class Account:
    """
    Mutable account state owned by a LedgerEngine.

    total is derived and never stored.
    """
    client: int
    available: Decimal = field(default=ZERO_AMOUNT)
    held: Decimal = field(default=ZERO_AMOUNT)
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def is_consistent(self) -> bool:
        """True if neither pool is negative."""
        return self.available >= ZERO and self.held >= ZERO

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client=self.client,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


# ============================================================================
# POLICY
# ============================================================================

@dataclass(frozen=True, slots=True)
class LedgerPolicy:
    """
    Configurable business rules of the engine.

    Attributes:
        reject_when_locked: Ignore every record for a locked client.
            Off by default: locked accounts keep processing normally.
        withdrawal_disputes: Fund movement for disputes against withdrawals.
        amount_places: Fractional digits amounts are rounded to when a
            deposit or withdrawal is applied (None = keep exact input).
        reject_unfunded_disputes: Ignore a dispute on a deposit whose amount
            exceeds the client's available funds. Off by default: the hold
            is applied and the funds check raises InvariantViolation.
    """
    reject_when_locked: bool = False
    withdrawal_disputes: WithdrawalDisputeMode = WithdrawalDisputeMode.HOLD
    amount_places: Optional[int] = DECIMAL_PLACES
    reject_unfunded_disputes: bool = False

    def __post_init__(self):
        if not isinstance(self.withdrawal_disputes, WithdrawalDisputeMode):
            raise ValueError(
                f"withdrawal_disputes must be WithdrawalDisputeMode, got {self.withdrawal_disputes!r}"
            )
        if self.amount_places is not None and self.amount_places < 0:
            raise ValueError(f"amount_places must be >= 0, got {self.amount_places}")
