"""
Budget Ledger - Source Package

The data core of a personal budgeting tool: monthly budget periods,
a transaction ledger, reconciliation of planned vs. actual spend, and
plain or passphrase-encrypted backups.

DESIGN PRINCIPLES:
1. Every record is normalized at the storage boundary
2. Reads never fail on corrupted data, they fall back to defaults
3. Writes report failure explicitly, never silently
4. The ledger is authoritative for a category once it has transactions
5. Storage backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Ledger Team"
