"""
Bank Ledger Core

Transfer and ledger core for a banking back office: approval-gated,
double-entry transfers between accounts with Decimal balances and a
hash-chained audit trail.
"""

__version__ = "1.0.0"
