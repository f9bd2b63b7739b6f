"""
cli.py - Command line entry point

    payledger transactions.csv > accounts.csv

Exit codes:
    0  report written
    1  internal-consistency fault (InvariantViolation)
    2  usage error, unreadable file or malformed input
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import sys

from .core import DecodeError, InvariantViolation, LedgerPolicy, WithdrawalDisputeMode
from .decoder import read_transactions_from_path
from .engine import LedgerEngine
from .report import write_accounts


EXIT_OK = 0
EXIT_FAULT = 1
EXIT_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payledger",
        description="Replay a CSV transaction feed and print the final client accounts as CSV.",
    )
    parser.add_argument("input", help="path to the transactions CSV file")
    parser.add_argument(
        "--reject-locked",
        action="store_true",
        help="ignore every transaction for a client whose account is locked",
    )
    parser.add_argument(
        "--withdrawal-disputes",
        choices=[mode.value for mode in WithdrawalDisputeMode],
        default=WithdrawalDisputeMode.HOLD.value,
        help="fund movement for disputes against withdrawals (default: hold)",
    )
    parser.add_argument(
        "--reject-unfunded-disputes",
        action="store_true",
        help="ignore a dispute on a deposit larger than the client's available funds "
             "instead of stopping with an internal-consistency fault",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log every applied and ignored transaction to stderr",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """Process the input file and write the report to stdout."""
    policy = LedgerPolicy(
        reject_when_locked=args.reject_locked,
        withdrawal_disputes=WithdrawalDisputeMode(args.withdrawal_disputes),
        reject_unfunded_disputes=args.reject_unfunded_disputes,
    )
    engine = LedgerEngine(policy=policy, verbose=args.verbose)

    try:
        engine.apply_all(read_transactions_from_path(args.input))
    except OSError as e:
        print(f"payledger: cannot read {args.input}: {e.strerror or e}", file=sys.stderr)
        return EXIT_INPUT
    except UnicodeDecodeError as e:
        print(f"payledger: {args.input}: not valid UTF-8: {e.reason} at byte {e.start}", file=sys.stderr)
        return EXIT_INPUT
    except DecodeError as e:
        print(f"payledger: {args.input}: {e}", file=sys.stderr)
        return EXIT_INPUT
    except InvariantViolation as e:
        print(f"payledger: internal consistency fault: {e}", file=sys.stderr)
        return EXIT_FAULT

    write_accounts(engine.snapshot(), sys.stdout)
    if args.verbose:
        print(f"{engine.stats}", file=sys.stderr)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
