"""Ledger Layer - balance storage and accounting.

Components:
- LedgerStore: Abstract transactional key-value state
- MemoryLedgerStore: Dictionary store with an undo journal
- SQLiteLedgerStore: SQLite store with SAVEPOINT transactions
- BalanceLedger: Credit/debit with the distinct-asset index
"""

from tokenminter.ledger.balances import (
    MAX_QUANTITY,
    BalanceLedger,
    validate_amount,
    validate_asset_id,
)
from tokenminter.ledger.base import LedgerStore
from tokenminter.ledger.memory_store import MemoryLedgerStore
from tokenminter.ledger.sqlite_store import SQLiteLedgerStore

__all__ = [
    # Abstract interface
    "LedgerStore",
    # Concrete stores
    "MemoryLedgerStore",
    "SQLiteLedgerStore",
    # Accounting
    "BalanceLedger",
    "MAX_QUANTITY",
    "validate_amount",
    "validate_asset_id",
]
