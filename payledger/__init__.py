"""
payledger - Client Payments Ledger

Replays deposits, withdrawals and the dispute lifecycle (dispute, resolve,
chargeback) over exact decimals and reports the final state of every client
account.

Usage:
    from decimal import Decimal
    from payledger import LedgerEngine, Deposit, Withdrawal, Dispute, Resolve

    engine = LedgerEngine()
    engine.apply(Deposit(tx=1, client=1, amount=Decimal("5.0")))
    engine.apply(Withdrawal(tx=2, client=1, amount=Decimal("1.5")))
    engine.apply(Dispute(client=1, tx=1))
    engine.apply(Resolve(client=1, tx=1))

    for account in engine.snapshot():
        print(account.client, account.available, account.held, account.total, account.locked)

    # Or from a CSV feed
    from payledger import read_transactions_from_path, accounts_to_csv
    engine = LedgerEngine().apply_all(read_transactions_from_path("transactions.csv"))
    print(accounts_to_csv(engine.snapshot()))
"""

# Core types
from .core import (
    Deposit,
    Withdrawal,
    Dispute,
    Resolve,
    Chargeback,
    TransactionRecord,
    FundsRecord,
    ReferenceRecord,
    TransactionKind,
    DisputeState,
    HistoryEntry,
    Account,
    AccountSnapshot,
    ApplyResult,
    LedgerPolicy,
    WithdrawalDisputeMode,
    LedgerError,
    InvariantViolation,
    DecodeError,
    quantize_amount,
    DECIMAL_PLACES,
    MAX_CLIENT_ID,
    MAX_TX_ID,
    MAX_AMOUNT,
)

# Engine
from .engine import LedgerEngine

# CSV collaborators
from .decoder import read_transactions, read_transactions_from_path, decode_row
from .report import format_amount, account_rows, write_accounts, accounts_to_csv

__all__ = [
    # Records
    'Deposit', 'Withdrawal', 'Dispute', 'Resolve', 'Chargeback',
    'TransactionRecord', 'FundsRecord', 'ReferenceRecord', 'TransactionKind',
    # State
    'DisputeState', 'HistoryEntry', 'Account', 'AccountSnapshot',
    'ApplyResult', 'LedgerPolicy', 'WithdrawalDisputeMode',
    # Errors
    'LedgerError', 'InvariantViolation', 'DecodeError',
    # Numerics
    'quantize_amount', 'DECIMAL_PLACES', 'MAX_CLIENT_ID', 'MAX_TX_ID', 'MAX_AMOUNT',
    # Engine
    'LedgerEngine',
    # Decoder
    'read_transactions', 'read_transactions_from_path', 'decode_row',
    # Report
    'format_amount', 'account_rows', 'write_accounts', 'accounts_to_csv',
]

__version__ = '1.0.0'
