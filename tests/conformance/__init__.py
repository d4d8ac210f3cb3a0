"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the auction engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. solvency.py - Exposure never exceeds balance
2. uniqueness.py - One bid per (account, lot); distinct open sets
3. conservation.py - Debits equal awards; balances only decrease
4. atomicity.py - All-or-nothing commands and settlement
5. idempotency.py - Duplicate and stale timer delivery
6. determinism.py - Reproducible rounds from a seed

These tests use hypothesis for property-based testing.
"""
