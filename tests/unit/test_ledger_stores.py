"""Unit tests for ledger stores.

Both backends must behave identically, so every test runs against each.
"""

from pathlib import Path

import pytest

from tokenminter.ledger.base import LedgerStore
from tokenminter.ledger.memory_store import MemoryLedgerStore
from tokenminter.ledger.sqlite_store import SQLiteLedgerStore
from tokenminter.utils.exceptions import StorageError

ALICE = "0x00000000000000000000000000000000000A11CE"
BOB = "0x0000000000000000000000000000000000000B0B"
HUGE = 2**256 - 1


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest) -> LedgerStore:
    """Create a fresh store for each backend."""
    if request.param == "memory":
        instance: LedgerStore = MemoryLedgerStore()
    else:
        instance = SQLiteLedgerStore(":memory:")
    yield instance
    instance.close()


class TestBalances:
    """Test balance reads and writes."""

    def test_missing_balance_is_zero(self, store: LedgerStore) -> None:
        """Test unknown (owner, asset) pairs read as zero."""
        assert store.get_balance(ALICE, 1) == 0

    def test_set_and_get(self, store: LedgerStore) -> None:
        """Test a written balance reads back."""
        store.set_balance(ALICE, 1, 10)
        store.set_balance(ALICE, 1, 12)

        assert store.get_balance(ALICE, 1) == 12
        assert store.get_balance(BOB, 1) == 0

    def test_full_width_values(self, store: LedgerStore) -> None:
        """Test 256-bit ids and quantities are stored exactly."""
        store.set_balance(ALICE, HUGE, HUGE)
        assert store.get_balance(ALICE, HUGE) == HUGE

    def test_zero_deletes(self, store: LedgerStore) -> None:
        """Test writing zero removes the balance."""
        store.set_balance(ALICE, 1, 10)
        store.set_balance(ALICE, 1, 0)

        assert store.get_balance(ALICE, 1) == 0


class TestIndex:
    """Test the distinct-asset index."""

    def test_add_and_list_sorted(self, store: LedgerStore) -> None:
        """Test assets list in ascending numeric order."""
        for asset_id in (30, 2, HUGE, 100):
            store.add_to_index(ALICE, asset_id)

        assert store.list_index(ALICE) == [2, 30, 100, HUGE]
        assert store.count_index(ALICE) == 4

    def test_add_is_idempotent(self, store: LedgerStore) -> None:
        """Test adding the same asset twice counts once."""
        store.add_to_index(ALICE, 1)
        store.add_to_index(ALICE, 1)

        assert store.count_index(ALICE) == 1

    def test_remove(self, store: LedgerStore) -> None:
        """Test removing an asset from the index."""
        store.add_to_index(ALICE, 1)
        store.add_to_index(ALICE, 2)
        store.remove_from_index(ALICE, 1)

        assert store.list_index(ALICE) == [2]
        assert store.count_index(BOB) == 0


class TestApprovalState:
    """Test approval and nonce storage."""

    def test_operator_approval(self, store: LedgerStore) -> None:
        """Test operator approval can be set and revoked."""
        assert store.get_operator_approval(ALICE, BOB) is False

        store.set_operator_approval(ALICE, BOB, True)
        assert store.get_operator_approval(ALICE, BOB) is True
        assert store.get_operator_approval(BOB, ALICE) is False

        store.set_operator_approval(ALICE, BOB, False)
        assert store.get_operator_approval(ALICE, BOB) is False

    def test_single_approval(self, store: LedgerStore) -> None:
        """Test single-asset approval can be set, replaced and cleared."""
        assert store.get_single_approval(ALICE, 1) is None

        store.set_single_approval(ALICE, 1, BOB)
        assert store.get_single_approval(ALICE, 1) == BOB

        store.set_single_approval(ALICE, 1, ALICE)
        assert store.get_single_approval(ALICE, 1) == ALICE

        store.set_single_approval(ALICE, 1, None)
        assert store.get_single_approval(ALICE, 1) is None

    def test_nonce(self, store: LedgerStore) -> None:
        """Test nonces start at zero and persist."""
        assert store.get_nonce(ALICE) == 0

        store.set_nonce(ALICE, 1)
        store.set_nonce(ALICE, 2)

        assert store.get_nonce(ALICE) == 2


class TestTransactions:
    """Test atomicity of store transactions."""

    def test_commit(self, store: LedgerStore) -> None:
        """Test writes inside a transaction persist on success."""
        with store.transaction():
            store.set_balance(ALICE, 1, 5)
            store.add_to_index(ALICE, 1)

        assert store.get_balance(ALICE, 1) == 5
        assert store.list_index(ALICE) == [1]

    def test_rollback_restores_every_table(self, store: LedgerStore) -> None:
        """Test an exception undoes all writes made in the transaction."""
        store.set_balance(ALICE, 1, 5)
        store.add_to_index(ALICE, 1)
        store.set_single_approval(ALICE, 1, BOB)

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.set_balance(ALICE, 1, 0)
                store.remove_from_index(ALICE, 1)
                store.set_balance(BOB, 1, 5)
                store.add_to_index(BOB, 1)
                store.set_single_approval(ALICE, 1, None)
                store.set_operator_approval(ALICE, BOB, True)
                store.set_nonce(ALICE, 9)
                raise RuntimeError("abort")

        assert store.get_balance(ALICE, 1) == 5
        assert store.get_balance(BOB, 1) == 0
        assert store.list_index(ALICE) == [1]
        assert store.list_index(BOB) == []
        assert store.get_single_approval(ALICE, 1) == BOB
        assert store.get_operator_approval(ALICE, BOB) is False
        assert store.get_nonce(ALICE) == 0

    def test_nested_inner_rollback(self, store: LedgerStore) -> None:
        """Test a failed inner transaction keeps the outer one's writes."""
        with store.transaction():
            store.set_balance(ALICE, 1, 5)
            with pytest.raises(RuntimeError):
                with store.transaction():
                    store.set_balance(ALICE, 2, 7)
                    raise RuntimeError("inner")
            store.set_balance(ALICE, 3, 9)

        assert store.get_balance(ALICE, 1) == 5
        assert store.get_balance(ALICE, 2) == 0
        assert store.get_balance(ALICE, 3) == 9

    def test_nested_outer_rollback(self, store: LedgerStore) -> None:
        """Test a failed outer transaction undoes committed inner writes."""
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.set_balance(ALICE, 1, 5)
                raise RuntimeError("outer")

        assert store.get_balance(ALICE, 1) == 0


class TestSQLiteLedgerStore:
    """SQLite-specific behavior."""

    def test_file_database_persists(self, tmp_path: Path) -> None:
        """Test state survives reopening a file database."""
        db_path = str(tmp_path / "nested" / "ledger.db")

        store = SQLiteLedgerStore(db_path)
        store.set_balance(ALICE, 1, 42)
        store.add_to_index(ALICE, 1)
        store.close()

        reopened = SQLiteLedgerStore(db_path)
        assert Path(db_path).exists()
        assert reopened.get_balance(ALICE, 1) == 42
        assert reopened.list_index(ALICE) == [1]
        reopened.close()

    def test_invalid_path_raises_storage_error(self, tmp_path: Path) -> None:
        """Test an unopenable database is reported as StorageError."""
        directory = tmp_path / "is_a_directory"
        directory.mkdir()

        with pytest.raises(StorageError):
            SQLiteLedgerStore(str(directory))


class TestMemoryLedgerStore:
    """Memory-specific behavior."""

    def test_writes_outside_transaction_are_not_journaled(self) -> None:
        """Test the journal is empty once no transaction is open."""
        store = MemoryLedgerStore()
        store.set_balance(ALICE, 1, 5)
        with store.transaction():
            store.set_balance(ALICE, 1, 6)

        assert store._journal == []
        assert store.get_balance(ALICE, 1) == 6
