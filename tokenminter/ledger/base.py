"""Abstract base class for ledger state storage.

This module defines the contract every backing store must satisfy. The store
is the only shared mutable resource of the ledger: balances, the per-owner
distinct-asset index, approvals and permit nonces all live here.

Key Principle: Every mutation made inside ``transaction()`` is either
committed as a unit or rolled back as a unit. Transactions nest; an inner
failure that propagates out of an outer block rolls back the outer block too.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional


class LedgerStore(ABC):
    """Durable key-value state for one ledger instance.

    Absent records read as zero / False / None. Writing a zero balance deletes
    the record. The store does not enforce ledger invariants (index
    consistency, overflow); BalanceLedger does that on top of it.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open an atomic unit of work.

        Usage:
            >>> with store.transaction():
            ...     store.set_balance("0xA11ce", 1, 10)
            ...     store.add_to_index("0xA11ce", 1)
        """
        pass

    # Balances

    @abstractmethod
    def get_balance(self, owner: str, asset_id: int) -> int:
        """Return the stored quantity, 0 if absent."""
        pass

    @abstractmethod
    def set_balance(self, owner: str, asset_id: int, quantity: int) -> None:
        """Store a quantity; 0 removes the record."""
        pass

    # Distinct-asset index

    @abstractmethod
    def add_to_index(self, owner: str, asset_id: int) -> None:
        pass

    @abstractmethod
    def remove_from_index(self, owner: str, asset_id: int) -> None:
        pass

    @abstractmethod
    def count_index(self, owner: str) -> int:
        """Number of asset ids in the owner's index."""
        pass

    @abstractmethod
    def list_index(self, owner: str) -> List[int]:
        """Asset ids in the owner's index, ascending."""
        pass

    # Approvals

    @abstractmethod
    def get_operator_approval(self, owner: str, operator: str) -> bool:
        pass

    @abstractmethod
    def set_operator_approval(self, owner: str, operator: str, approved: bool) -> None:
        pass

    @abstractmethod
    def get_single_approval(self, owner: str, asset_id: int) -> Optional[str]:
        pass

    @abstractmethod
    def set_single_approval(self, owner: str, asset_id: int, spender: Optional[str]) -> None:
        """Store the approved spender; None clears it."""
        pass

    # Permit nonces

    @abstractmethod
    def get_nonce(self, owner: str) -> int:
        pass

    @abstractmethod
    def set_nonce(self, owner: str, nonce: int) -> None:
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        return None
