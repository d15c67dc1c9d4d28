"""
Ledger persistence backends.
"""

from .csv_ledger_store import CSVLedgerStore

__all__ = ["CSVLedgerStore"]
