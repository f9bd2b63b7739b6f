"""
report.py - Account Report Formatter

Renders an engine snapshot as CSV:

    client,available,held,total,locked
    1,1.5000,0.0000,1.5000,false

Amounts always carry DECIMAL_PLACES fractional digits.
"""

from __future__ import annotations
from decimal import Decimal
from io import StringIO
from typing import Dict, Iterable, Iterator, TextIO
import csv

from .core import AccountSnapshot, DECIMAL_PLACES, quantize_amount


REPORT_COLUMNS = ("client", "available", "held", "total", "locked")


def format_amount(value: Decimal, places: int = DECIMAL_PLACES) -> str:
    """Format an amount in fixed-point notation with exactly `places` digits."""
    return format(quantize_amount(value, places), "f")


def account_rows(snapshot: Iterable[AccountSnapshot]) -> Iterator[Dict[str, str]]:
    """Yield one report row per account, in snapshot order."""
    for account in snapshot:
        yield {
            "client": str(account.client),
            "available": format_amount(account.available),
            "held": format_amount(account.held),
            "total": format_amount(account.total),
            "locked": "true" if account.locked else "false",
        }


def write_accounts(snapshot: Iterable[AccountSnapshot], stream: TextIO) -> None:
    """Write the report, header included, to a text stream."""
    writer = csv.DictWriter(stream, fieldnames=REPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(account_rows(snapshot))


def accounts_to_csv(snapshot: Iterable[AccountSnapshot]) -> str:
    """Return the report as a string."""
    buffer = StringIO()
    write_accounts(snapshot, buffer)
    return buffer.getvalue()
