"""Per-(owner, asset) quantity accounting.

BalanceLedger is the single serialization point for value: every mint,
transfer and composition step ends in credit() or debit(). Both keep the
owner's distinct-asset index in step with the balance inside one store
transaction, so no reader can observe a balance and index that disagree.

Index transitions:
    0 -> positive   asset added to the owner's index
    positive -> 0   asset removed from the owner's index
    otherwise       index untouched
"""

from typing import List

from tokenminter.identity.codec import UINT256_MAX
from tokenminter.ledger.base import LedgerStore
from tokenminter.utils.exceptions import (
    InsufficientBalanceError,
    InvalidAssetIdError,
    InvalidQuantityError,
    QuantityOverflowError,
)
from tokenminter.utils.logging import get_logger

logger = get_logger(__name__)

MAX_QUANTITY = UINT256_MAX


def validate_asset_id(asset_id: int) -> None:
    """Reject asset ids that are not unsigned 256-bit integers."""
    if isinstance(asset_id, bool) or not isinstance(asset_id, int):
        raise InvalidAssetIdError(f"asset id must be an int, got {asset_id!r}")
    if not 0 <= asset_id <= UINT256_MAX:
        raise InvalidAssetIdError(f"asset id out of uint256 range: {asset_id}")


def validate_amount(amount: int) -> None:
    """Reject quantities that are negative or not integers."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidQuantityError(f"amount must be an int, got {amount!r}")
    if amount < 0:
        raise InvalidQuantityError(f"amount must be non-negative, got {amount}")


class BalanceLedger:
    """Balance storage with a per-owner distinct-asset index.

    Example:
        >>> ledger = BalanceLedger(MemoryLedgerStore())
        >>> ledger.credit("0xA11ce", 1, 10)
        >>> ledger.debit("0xA11ce", 1, 4)
        >>> ledger.get("0xA11ce", 1), ledger.count_distinct("0xA11ce")
        (6, 1)
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    def get(self, owner: str, asset_id: int) -> int:
        """Return the owner's quantity of ``asset_id`` (0 if none)."""
        return self.store.get_balance(owner, asset_id)

    def credit(self, owner: str, asset_id: int, amount: int) -> None:
        """Add ``amount`` of ``asset_id`` to ``owner``.

        Raises:
            InvalidAssetIdError: If asset_id is not a uint256
            InvalidQuantityError: If amount is negative
            QuantityOverflowError: If the new balance would exceed MAX_QUANTITY
        """
        validate_asset_id(asset_id)
        validate_amount(amount)

        with self.store.transaction():
            current = self.store.get_balance(owner, asset_id)
            updated = current + amount
            if updated > MAX_QUANTITY:
                raise QuantityOverflowError(
                    f"Credit overflows balance of asset {asset_id} for {owner}: "
                    f"{current} + {amount} > {MAX_QUANTITY}"
                )

            self.store.set_balance(owner, asset_id, updated)
            if current == 0 and updated > 0:
                self.store.add_to_index(owner, asset_id)

        logger.debug("credit owner=%s asset=%s amount=%s -> %s", owner, asset_id, amount, updated)

    def debit(self, owner: str, asset_id: int, amount: int) -> None:
        """Remove ``amount`` of ``asset_id`` from ``owner``.

        Raises:
            InvalidAssetIdError: If asset_id is not a uint256
            InvalidQuantityError: If amount is negative
            InsufficientBalanceError: If amount exceeds the balance
        """
        validate_asset_id(asset_id)
        validate_amount(amount)

        with self.store.transaction():
            current = self.store.get_balance(owner, asset_id)
            if amount > current:
                raise InsufficientBalanceError(
                    f"Insufficient balance of asset {asset_id} for {owner}: "
                    f"need {amount}, have {current}"
                )

            updated = current - amount
            self.store.set_balance(owner, asset_id, updated)
            if current > 0 and updated == 0:
                self.store.remove_from_index(owner, asset_id)

        logger.debug("debit owner=%s asset=%s amount=%s -> %s", owner, asset_id, amount, updated)

    def count_distinct(self, owner: str) -> int:
        """Number of distinct assets the owner holds a positive balance of."""
        return self.store.count_index(owner)

    def held_assets(self, owner: str) -> List[int]:
        """Asset ids the owner holds a positive balance of, ascending."""
        return self.store.list_index(owner)
