"""SQLite ledger store implementation.

This module provides the SQLiteLedgerStore class for persisting ledger state
in a SQLite database, including connection management, table creation and
nested transactions through SAVEPOINTs.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from tokenminter.ledger.base import LedgerStore
from tokenminter.utils.exceptions import StorageError
from tokenminter.utils.logging import get_logger

logger = get_logger(__name__)

IN_MEMORY = ":memory:"


class SQLiteLedgerStore(LedgerStore):
    """Manages ledger state in SQLite.

    One connection is shared by every caller; the ledger API serializes
    access with its own lock, so the connection is opened with
    ``check_same_thread=False``. The connection runs in autocommit mode and
    transactions are expressed as SAVEPOINTs so they can nest.

    Attributes:
        db_path: Path to the SQLite database file, or ":memory:".
    """

    def __init__(self, db_path: str = IN_MEMORY):
        """Initialize the store and create tables.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        if db_path != IN_MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._connection: Optional[sqlite3.Connection] = None
        self._depth = 0
        self.create_tables()

    def _get_connection(self) -> sqlite3.Connection:
        """Get the shared database connection, opening it on first use."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self.db_path,
                isolation_level=None,
                check_same_thread=False,
            )
        return self._connection

    def create_tables(self) -> None:
        """Create necessary database tables if they don't exist."""
        schema_path = Path(__file__).parent / "schema.sql"
        try:
            with open(schema_path, "r") as f:
                schema = f.read()

            conn = self._get_connection()
            conn.executescript(schema)
            logger.info(f"Ledger database initialized at {self.db_path}")
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to create tables: {e}")
            raise StorageError(f"Database initialization failed: {e}") from e

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._get_connection().execute(sql, params)
        except sqlite3.Error as e:
            logger.error(f"Ledger statement failed: {e}")
            raise StorageError(f"Database error: {e}") from e

    def _fetch_value(self, sql: str, params: Sequence[Any]) -> Optional[str]:
        row = self._execute(sql, params).fetchone()
        return row[0] if row else None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._depth += 1
        name = f"ledger_sp_{self._depth}"
        self._execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException:
            self._execute(f"ROLLBACK TO SAVEPOINT {name}")
            self._execute(f"RELEASE SAVEPOINT {name}")
            raise
        else:
            self._execute(f"RELEASE SAVEPOINT {name}")
        finally:
            self._depth -= 1

    # Balances

    def get_balance(self, owner: str, asset_id: int) -> int:
        value = self._fetch_value(
            "SELECT quantity FROM balances WHERE owner = ? AND asset_id = ?",
            (owner, str(asset_id)),
        )
        return int(value) if value is not None else 0

    def set_balance(self, owner: str, asset_id: int, quantity: int) -> None:
        if quantity == 0:
            self._execute(
                "DELETE FROM balances WHERE owner = ? AND asset_id = ?",
                (owner, str(asset_id)),
            )
            return
        self._execute(
            """
            INSERT INTO balances (owner, asset_id, quantity) VALUES (?, ?, ?)
            ON CONFLICT(owner, asset_id) DO UPDATE SET quantity = excluded.quantity
            """,
            (owner, str(asset_id), str(quantity)),
        )

    # Distinct-asset index

    def add_to_index(self, owner: str, asset_id: int) -> None:
        self._execute(
            "INSERT OR IGNORE INTO owner_assets (owner, asset_id) VALUES (?, ?)",
            (owner, str(asset_id)),
        )

    def remove_from_index(self, owner: str, asset_id: int) -> None:
        self._execute(
            "DELETE FROM owner_assets WHERE owner = ? AND asset_id = ?",
            (owner, str(asset_id)),
        )

    def count_index(self, owner: str) -> int:
        value = self._fetch_value(
            "SELECT COUNT(*) FROM owner_assets WHERE owner = ?", (owner,)
        )
        return int(value or 0)

    def list_index(self, owner: str) -> List[int]:
        rows = self._execute(
            "SELECT asset_id FROM owner_assets WHERE owner = ?", (owner,)
        ).fetchall()
        return sorted(int(row[0]) for row in rows)

    # Approvals

    def get_operator_approval(self, owner: str, operator: str) -> bool:
        value = self._fetch_value(
            "SELECT 1 FROM operator_approvals WHERE owner = ? AND operator = ?",
            (owner, operator),
        )
        return value is not None

    def set_operator_approval(self, owner: str, operator: str, approved: bool) -> None:
        if approved:
            self._execute(
                "INSERT OR IGNORE INTO operator_approvals (owner, operator) VALUES (?, ?)",
                (owner, operator),
            )
        else:
            self._execute(
                "DELETE FROM operator_approvals WHERE owner = ? AND operator = ?",
                (owner, operator),
            )

    def get_single_approval(self, owner: str, asset_id: int) -> Optional[str]:
        return self._fetch_value(
            "SELECT spender FROM single_approvals WHERE owner = ? AND asset_id = ?",
            (owner, str(asset_id)),
        )

    def set_single_approval(self, owner: str, asset_id: int, spender: Optional[str]) -> None:
        if spender is None:
            self._execute(
                "DELETE FROM single_approvals WHERE owner = ? AND asset_id = ?",
                (owner, str(asset_id)),
            )
            return
        self._execute(
            """
            INSERT INTO single_approvals (owner, asset_id, spender) VALUES (?, ?, ?)
            ON CONFLICT(owner, asset_id) DO UPDATE SET spender = excluded.spender
            """,
            (owner, str(asset_id), spender),
        )

    # Permit nonces

    def get_nonce(self, owner: str) -> int:
        value = self._fetch_value(
            "SELECT nonce FROM permit_nonces WHERE owner = ?", (owner,)
        )
        return int(value) if value is not None else 0

    def set_nonce(self, owner: str, nonce: int) -> None:
        self._execute(
            """
            INSERT INTO permit_nonces (owner, nonce) VALUES (?, ?)
            ON CONFLICT(owner) DO UPDATE SET nonce = excluded.nonce
            """,
            (owner, str(nonce)),
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
