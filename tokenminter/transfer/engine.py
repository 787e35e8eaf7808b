"""Authorization-checked single and batch transfers.

The two entry points use different authorization rules:

    transfer        caller is owner, operator, or the single-asset approved spender
    batch_transfer  caller is owner or operator; single-asset approvals are ignored

Each call is one store transaction: either every debit and credit lands or
none does.
"""

from typing import List, Optional, Sequence

from tokenminter.approval.manager import ApprovalManager
from tokenminter.ledger.balances import BalanceLedger, validate_amount, validate_asset_id
from tokenminter.utils.config import NULL_ACCOUNT
from tokenminter.utils.events import EventSink, LedgerEvent, LedgerEventType, discard_event
from tokenminter.utils.exceptions import (
    InvalidRecipientError,
    LengthMismatchError,
    NotApprovedError,
    NotOperatorError,
)
from tokenminter.utils.logging import get_logger, log_with_context

logger = get_logger(__name__)


class TransferEngine:
    """Moves value between accounts.

    Args:
        balances: Balance ledger to mutate
        approvals: Approval state used for authorization
        emit: Receives a LedgerEvent per successful transfer call

    Example:
        >>> engine = TransferEngine(balances, approvals)
        >>> engine.transfer(caller=alice, from_=alice, to=bob, asset_id=1, amount=5)
    """

    def __init__(
        self,
        balances: BalanceLedger,
        approvals: ApprovalManager,
        emit: Optional[EventSink] = None,
    ):
        self.balances = balances
        self.approvals = approvals
        self.emit = emit or discard_event

    def can_transfer(self, caller: str, from_: str, asset_id: int) -> bool:
        """Authorization predicate for single transfers."""
        return (
            caller == from_
            or self.approvals.is_approved_for_all(from_, caller)
            or self.approvals.is_single_approved(from_, asset_id, caller)
        )

    def can_batch_transfer(self, caller: str, from_: str) -> bool:
        """Authorization predicate for batch transfers (operator-only)."""
        return caller == from_ or self.approvals.is_approved_for_all(from_, caller)

    def transfer(self, caller: str, from_: str, to: str, asset_id: int, amount: int) -> None:
        """Move ``amount`` of ``asset_id`` from ``from_`` to ``to``.

        Self-transfers perform a real debit and credit so balance checks
        still apply.

        Raises:
            InvalidRecipientError: If ``to`` is the null account
            NotApprovedError: If caller is not authorized
            InsufficientBalanceError: If ``from_`` holds too little
            QuantityOverflowError: If the recipient balance would overflow
        """
        validate_asset_id(asset_id)
        validate_amount(amount)

        if to == NULL_ACCOUNT:
            raise InvalidRecipientError("Invalid to address")
        if not self.can_transfer(caller, from_, asset_id):
            raise NotApprovedError("Not approved")

        with self.balances.store.transaction():
            self.balances.debit(from_, asset_id, amount)
            self.balances.credit(to, asset_id, amount)
            self.approvals.clear_single_approval(from_, asset_id)

        self.emit(
            LedgerEvent(
                LedgerEventType.TRANSFER_SINGLE,
                {"operator": caller, "from": from_, "to": to, "asset_id": asset_id, "amount": amount},
            )
        )
        log_with_context(
            logger, "info", "Transfer committed",
            caller=caller, from_=from_, to=to, asset=asset_id, amount=amount,
        )

    def batch_transfer(
        self,
        caller: str,
        from_: str,
        to: str,
        asset_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        """Move several assets from ``from_`` to ``to`` as one atomic unit.

        All debits are applied before any credit, so a shortfall on any asset
        aborts the batch before the recipient sees anything.

        Raises:
            LengthMismatchError: If asset_ids and amounts differ in length
            InvalidRecipientError: If ``to`` is the null account
            NotOperatorError: If caller is neither owner nor operator
            InsufficientBalanceError: If any debit exceeds the balance
            QuantityOverflowError: If any credit would overflow
        """
        asset_ids: List[int] = list(asset_ids)
        amounts: List[int] = list(amounts)

        if len(asset_ids) != len(amounts):
            raise LengthMismatchError(
                f"asset_ids and amounts differ in length: {len(asset_ids)} != {len(amounts)}"
            )
        for asset_id, amount in zip(asset_ids, amounts):
            validate_asset_id(asset_id)
            validate_amount(amount)

        if to == NULL_ACCOUNT:
            raise InvalidRecipientError("Invalid to address")
        if not self.can_batch_transfer(caller, from_):
            raise NotOperatorError("Caller is neither owner nor operator")

        with self.balances.store.transaction():
            for asset_id, amount in zip(asset_ids, amounts):
                self.balances.debit(from_, asset_id, amount)
            for asset_id, amount in zip(asset_ids, amounts):
                self.balances.credit(to, asset_id, amount)
            for asset_id in asset_ids:
                self.approvals.clear_single_approval(from_, asset_id)

        self.emit(
            LedgerEvent(
                LedgerEventType.TRANSFER_BATCH,
                {
                    "operator": caller,
                    "from": from_,
                    "to": to,
                    "asset_ids": asset_ids,
                    "amounts": amounts,
                },
            )
        )
        log_with_context(
            logger, "info", "Batch transfer committed",
            caller=caller, from_=from_, to=to, assets=len(asset_ids),
        )
