"""Approval management.

Three ways to move someone else's assets exist:

- Operator approval: blanket authorization for every asset of an owner.
- Single-asset approval: one spender per (owner, asset), cleared after the
  next successful transfer of that asset out of the owner's account.
- Permit: an off-ledger signed message that sets operator approval without
  the owner submitting the call, protected by a per-owner nonce and an
  optional expiry.
"""

import time
from typing import Callable, Optional

from tokenminter.approval.signatures import EIP712PermitVerifier, Permit, SignatureVerifier
from tokenminter.ledger.balances import BalanceLedger, validate_asset_id
from tokenminter.ledger.base import LedgerStore
from tokenminter.utils.config import NULL_ACCOUNT
from tokenminter.utils.events import EventSink, LedgerEvent, LedgerEventType, discard_event
from tokenminter.utils.exceptions import (
    InsufficientBalanceError,
    InvalidOperatorError,
    InvalidSignatureError,
    NonceMismatchError,
    PermitExpiredError,
)
from tokenminter.utils.logging import get_logger, log_with_context

logger = get_logger(__name__)


def _system_clock() -> int:
    return int(time.time())


class ApprovalManager:
    """Operator, single-asset and permit approvals.

    Args:
        store: Backing ledger store
        balances: Balance ledger, consulted for single-asset approvals
        verifier: Permit signature verifier (defaults to EIP-712 with the default domain)
        clock: Returns the current Unix time in seconds; compared against permit expiry
        emit: Receives a LedgerEvent per approval change
    """

    def __init__(
        self,
        store: LedgerStore,
        balances: BalanceLedger,
        verifier: Optional[SignatureVerifier] = None,
        clock: Optional[Callable[[], int]] = None,
        emit: Optional[EventSink] = None,
    ):
        self.store = store
        self.balances = balances
        self.verifier = verifier or EIP712PermitVerifier()
        self.clock = clock or _system_clock
        self.emit = emit or discard_event

    # Operator approvals

    def set_operator_approval(self, owner: str, operator: str, approved: bool) -> None:
        """Grant or revoke blanket approval for ``operator`` over ``owner``'s assets.

        Raises:
            InvalidOperatorError: If operator equals owner
        """
        if operator == owner:
            raise InvalidOperatorError("Owner cannot approve itself as operator")

        self.store.set_operator_approval(owner, operator, approved)
        self.emit(
            LedgerEvent(
                LedgerEventType.APPROVAL_FOR_ALL,
                {"owner": owner, "operator": operator, "approved": approved},
            )
        )
        log_with_context(
            logger, "info", "Operator approval set",
            owner=owner, operator=operator, approved=approved,
        )

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.store.get_operator_approval(owner, operator)

    # Single-asset approvals

    def set_single_approval(self, owner: str, asset_id: int, spender: Optional[str]) -> None:
        """Approve ``spender`` to transfer ``asset_id`` out of ``owner``'s account.

        Passing ``None`` as spender clears the approval.

        Raises:
            InsufficientBalanceError: If owner holds none of the asset
        """
        validate_asset_id(asset_id)
        if self.balances.get(owner, asset_id) == 0:
            raise InsufficientBalanceError(
                f"Cannot approve asset {asset_id}: {owner} holds none of it"
            )

        self.store.set_single_approval(owner, asset_id, spender)
        self.emit(
            LedgerEvent(
                LedgerEventType.APPROVAL,
                {"owner": owner, "spender": spender, "asset_id": asset_id},
            )
        )
        log_with_context(
            logger, "info", "Single-asset approval set",
            owner=owner, asset=asset_id, spender=spender,
        )

    def get_single_approval(self, owner: str, asset_id: int) -> Optional[str]:
        return self.store.get_single_approval(owner, asset_id)

    def is_single_approved(self, owner: str, asset_id: int, spender: str) -> bool:
        approved = self.store.get_single_approval(owner, asset_id)
        return approved is not None and approved == spender

    def clear_single_approval(self, owner: str, asset_id: int) -> None:
        """Drop the single-asset approval after a transfer out of ``owner``."""
        if self.store.get_single_approval(owner, asset_id) is not None:
            self.store.set_single_approval(owner, asset_id, None)
            logger.debug("Cleared single-asset approval owner=%s asset=%s", owner, asset_id)

    # Permits

    def permit_nonce(self, owner: str) -> int:
        return self.store.get_nonce(owner)

    def permit(
        self,
        holder: str,
        spender: str,
        nonce: int,
        expiry: int,
        allowed: bool,
        signature: bytes | str,
    ) -> None:
        """Apply a signed operator approval.

        Checks run in order: signature, nonce, expiry. On success exactly one
        operator approval is written and the holder's nonce is incremented.
        Accounts must already be in checksum form (see to_account); the
        recovered signer is compared to ``holder`` exactly.

        Raises:
            InvalidSignatureError: If the signature does not recover to holder
            NonceMismatchError: If nonce is not the holder's current nonce
            PermitExpiredError: If expiry is set and has passed
            InvalidOperatorError: If spender equals holder
        """
        permit = Permit(holder=holder, spender=spender, nonce=nonce, expiry=expiry, allowed=allowed)

        if holder == NULL_ACCOUNT:
            raise InvalidSignatureError("Permit holder cannot be the null account")

        signer = self.verifier.recover_permit_signer(permit, signature)
        if signer is None or signer != holder:
            raise InvalidSignatureError(f"Permit signature does not recover to {holder}")

        current_nonce = self.store.get_nonce(holder)
        if nonce != current_nonce:
            raise NonceMismatchError(
                f"Permit nonce mismatch for {holder}: expected {current_nonce}, got {nonce}"
            )

        now = self.clock()
        if expiry != 0 and now > expiry:
            raise PermitExpiredError(f"Permit expired at {expiry} (now {now})")

        if spender == holder:
            raise InvalidOperatorError("Holder cannot permit itself as operator")

        with self.store.transaction():
            self.store.set_operator_approval(holder, spender, allowed)
            self.store.set_nonce(holder, current_nonce + 1)
        self.emit(
            LedgerEvent(
                LedgerEventType.APPROVAL_FOR_ALL,
                {"owner": holder, "operator": spender, "approved": allowed, "nonce": current_nonce},
            )
        )
        log_with_context(
            logger, "info", "Permit applied",
            holder=holder, spender=spender, allowed=allowed, nonce=current_nonce,
        )
