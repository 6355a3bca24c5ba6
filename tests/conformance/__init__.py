"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ticketing ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - STX conservation and revenue bookkeeping invariants
2. atomicity.py - All-or-nothing contract calls
3. idempotency.py - Duplicate execution handling and caller nonces
4. determinism.py - Reproducible behavior (replay, clone_at)
5. canonicalization.py - Content-addressable identity of records
6. temporal.py - Height ordering and refund windows

These tests use hypothesis for property-based testing.
"""
