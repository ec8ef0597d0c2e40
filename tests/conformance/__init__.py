"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the issuance pipeline.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - Failed requests leave no trace
2. idempotency.py - A transaction id is recorded at most once
3. conservation.py - Committed submissions never overdraw
4. range.py - Exact amounts within the protocol range

These tests use hypothesis for property-based testing.
"""
