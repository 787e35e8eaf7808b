"""In-memory ledger store.

State lives in plain dictionaries. Atomicity comes from an undo journal:
while a transaction is open, every write records a closure that restores the
previous value. Rolling back replays the journal backwards to the mark taken
when the (possibly nested) transaction began.
"""

from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from tokenminter.ledger.base import LedgerStore
from tokenminter.utils.logging import get_logger

logger = get_logger(__name__)


class MemoryLedgerStore(LedgerStore):
    """Dictionary-backed store with nested transaction support.

    Example:
        >>> store = MemoryLedgerStore()
        >>> with store.transaction():
        ...     store.set_balance("0xA11ce", 1, 10)
        >>> store.get_balance("0xA11ce", 1)
        10
    """

    def __init__(self):
        """Initialize empty state."""
        self._balances: Dict[Tuple[str, int], int] = {}
        self._index: Dict[str, Set[int]] = {}
        self._operators: Dict[Tuple[str, str], bool] = {}
        self._single_approvals: Dict[Tuple[str, int], str] = {}
        self._nonces: Dict[str, int] = {}

        self._journal: List[Callable[[], None]] = []
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        mark = len(self._journal)
        self._depth += 1
        try:
            yield
        except BaseException:
            self._rollback_to(mark)
            raise
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._journal.clear()

    def _rollback_to(self, mark: int) -> None:
        undone = len(self._journal) - mark
        while len(self._journal) > mark:
            undo = self._journal.pop()
            undo()
        if undone:
            logger.debug("Rolled back %d journaled writes", undone)

    def _record(self, undo: Callable[[], None]) -> None:
        if self._depth > 0:
            self._journal.append(undo)

    def _put(self, table: dict, key, value, absent) -> None:
        """Write ``value`` under ``key``; ``absent`` deletes the key."""
        missing = key not in table
        previous = table.get(key)

        def undo() -> None:
            if missing:
                table.pop(key, None)
            else:
                table[key] = previous

        self._record(undo)
        if value == absent:
            table.pop(key, None)
        else:
            table[key] = value

    # Balances

    def get_balance(self, owner: str, asset_id: int) -> int:
        return self._balances.get((owner, asset_id), 0)

    def set_balance(self, owner: str, asset_id: int, quantity: int) -> None:
        self._put(self._balances, (owner, asset_id), quantity, 0)

    # Distinct-asset index

    def add_to_index(self, owner: str, asset_id: int) -> None:
        assets = self._index.setdefault(owner, set())
        if asset_id in assets:
            return
        assets.add(asset_id)
        self._record(lambda: assets.discard(asset_id))

    def remove_from_index(self, owner: str, asset_id: int) -> None:
        assets = self._index.get(owner)
        if not assets or asset_id not in assets:
            return
        assets.discard(asset_id)
        self._record(lambda: assets.add(asset_id))

    def count_index(self, owner: str) -> int:
        return len(self._index.get(owner, ()))

    def list_index(self, owner: str) -> List[int]:
        return sorted(self._index.get(owner, ()))

    # Approvals

    def get_operator_approval(self, owner: str, operator: str) -> bool:
        return self._operators.get((owner, operator), False)

    def set_operator_approval(self, owner: str, operator: str, approved: bool) -> None:
        self._put(self._operators, (owner, operator), bool(approved), False)

    def get_single_approval(self, owner: str, asset_id: int) -> Optional[str]:
        return self._single_approvals.get((owner, asset_id))

    def set_single_approval(self, owner: str, asset_id: int, spender: Optional[str]) -> None:
        self._put(self._single_approvals, (owner, asset_id), spender, None)

    # Permit nonces

    def get_nonce(self, owner: str) -> int:
        return self._nonces.get(owner, 0)

    def set_nonce(self, owner: str, nonce: int) -> None:
        self._put(self._nonces, owner, nonce, 0)

    def __repr__(self) -> str:
        return f"MemoryLedgerStore({len(self._balances)} balances)"
