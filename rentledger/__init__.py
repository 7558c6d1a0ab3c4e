"""Rent payment reconciliation and tenant ledger engine."""

__version__ = "0.1.0"
