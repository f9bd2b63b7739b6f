"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the payments ledger.
Any compliant engine MUST pass these tests.

The tests are organized by invariant:
1. test_fund_invariants.py - Non-negative funds and fund conservation
2. test_dispute_properties.py - Dispute round-trips and terminal states
3. test_stream_determinism.py - Reproducible, single-pass processing

These tests use hypothesis for property-based testing.
"""
