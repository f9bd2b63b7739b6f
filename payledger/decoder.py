"""
decoder.py - CSV Transaction Decoder

Turns a CSV transaction feed into typed records, one row at a time:

    type,       client, tx, amount
    deposit,         1,  1,    1.0
    dispute,         1,  1,

Whitespace around every field is trimmed and the header decides column
order. Rows are parsed lazily, so a large file is never held in memory.
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union
import csv

from .core import (
    Deposit, Withdrawal, Dispute, Resolve, Chargeback,
    TransactionKind, TransactionRecord,
    DecodeError,
    MAX_AMOUNT, MAX_CLIENT_ID, MAX_TX_ID,
)


REQUIRED_COLUMNS = ("type", "client", "tx")
AMOUNT_COLUMN = "amount"


def read_transactions_from_path(path: Union[str, Path]) -> Iterator[TransactionRecord]:
    """
    Lazily decode transactions from a CSV file.

    The file stays open until the iterator is exhausted or closed.

    Raises:
        OSError: If the file cannot be opened
        UnicodeDecodeError: If the file is not UTF-8 (a leading BOM is skipped)
        DecodeError: On the first malformed row
    """
    with open(path, newline="", encoding="utf-8-sig") as handle:
        yield from read_transactions(handle)


def read_transactions(source: Iterable[str]) -> Iterator[TransactionRecord]:
    """
    Lazily decode transactions from CSV text.

    Args:
        source: An open text stream or any iterable of CSV lines

    Yields:
        Transaction records in input order

    Raises:
        DecodeError: If the header is missing required columns, or a row
                     has an unknown type, bad ids or a bad amount
    """
    reader = csv.reader(source, skipinitialspace=True)
    columns: Optional[Dict[str, int]] = None

    for row in reader:
        fields = [value.strip() for value in row]
        if not any(fields):
            continue
        if columns is None:
            columns = _parse_header(fields, reader.line_num)
            continue
        yield decode_row(_row_to_dict(fields, columns), reader.line_num)

    if columns is None:
        raise DecodeError("missing header row")


def decode_row(row: Dict[str, str], line: Optional[int] = None) -> TransactionRecord:
    """
    Decode one CSV row (already trimmed) into a transaction record.

    Args:
        row: Mapping from column name to raw string value
        line: 1-based line number used in error messages

    Raises:
        DecodeError: If the row does not describe a valid record
    """
    raw_kind = row.get("type", "").lower()
    try:
        kind = TransactionKind(raw_kind)
    except ValueError:
        raise DecodeError(f"unknown transaction type {raw_kind!r}", line) from None

    client = _parse_id(row.get("client", ""), "client", MAX_CLIENT_ID, line)
    tx = _parse_id(row.get("tx", ""), "tx", MAX_TX_ID, line)

    if kind is TransactionKind.DEPOSIT:
        return Deposit(tx=tx, client=client, amount=_parse_amount(row.get(AMOUNT_COLUMN, ""), line))
    if kind is TransactionKind.WITHDRAWAL:
        return Withdrawal(tx=tx, client=client, amount=_parse_amount(row.get(AMOUNT_COLUMN, ""), line))
    if kind is TransactionKind.DISPUTE:
        return Dispute(client=client, tx=tx)
    if kind is TransactionKind.RESOLVE:
        return Resolve(client=client, tx=tx)
    return Chargeback(client=client, tx=tx)


def _parse_header(fields, line: int) -> Dict[str, int]:
    columns = {name.lower(): index for index, name in enumerate(fields)}
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise DecodeError(f"header is missing column(s): {', '.join(missing)}", line)
    return columns


def _row_to_dict(fields, columns: Dict[str, int]) -> Dict[str, str]:
    # Trailing empty columns may be omitted (e.g. "dispute,1,1")
    return {
        name: fields[index] if index < len(fields) else ""
        for name, index in columns.items()
    }


def _parse_id(raw: str, name: str, maximum: int, line: Optional[int]) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise DecodeError(f"{name} must be an unsigned integer, got {raw!r}", line)
    value = int(raw)
    if value > maximum:
        raise DecodeError(f"{name} out of range 0..{maximum}: {value}", line)
    return value


def _parse_amount(raw: str, line: Optional[int]) -> Decimal:
    if not raw:
        raise DecodeError("amount is required", line)
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise DecodeError(f"amount is not a number: {raw!r}", line) from None
    if not amount.is_finite():
        raise DecodeError(f"amount must be finite, got {raw!r}", line)
    if amount < 0:
        raise DecodeError(f"amount must be non-negative, got {raw!r}", line)
    if amount > MAX_AMOUNT:
        raise DecodeError(f"amount out of range 0..{MAX_AMOUNT}: {raw}", line)
    return amount
