"""Permit signature verification.

A permit is an EIP-712 typed message signed by a holder that grants or
revokes operator approval for a spender. The ledger only verifies
signatures; it never signs on anyone's behalf. The typed-data layout is:

    EIP712Domain(string name, string version, address verifyingContract)
    Permit(address holder, address spender, uint256 nonce, uint256 expiry, bool allowed)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data

from tokenminter.utils.config import NULL_ACCOUNT
from tokenminter.utils.logging import get_logger

logger = get_logger(__name__)

PERMIT_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Permit": [
        {"name": "holder", "type": "address"},
        {"name": "spender", "type": "address"},
        {"name": "nonce", "type": "uint256"},
        {"name": "expiry", "type": "uint256"},
        {"name": "allowed", "type": "bool"},
    ],
}


@dataclass(frozen=True)
class PermitDomain:
    """Binds permit signatures to one ledger instance.

    Attributes:
        name: Domain name
        version: Domain version
        verifying_contract: Address identifying this ledger
    """

    name: str = "ERC721o"
    version: str = "1"
    verifying_contract: str = NULL_ACCOUNT


@dataclass(frozen=True)
class Permit:
    """Signed meta-approval fields.

    Attributes:
        holder: Account granting (or revoking) approval
        spender: Operator being approved
        nonce: Must equal the holder's current permit nonce
        expiry: Unix timestamp after which the permit is void; 0 = never
        allowed: Approval value to set
    """

    holder: str
    spender: str
    nonce: int
    expiry: int = 0
    allowed: bool = True


def build_permit_message(permit: Permit, domain: PermitDomain) -> Dict[str, Any]:
    """Build the full EIP-712 typed-data structure for a permit.

    The same structure is used for verification here and can be handed to
    any EIP-712 signer off-ledger.
    """
    return {
        "types": PERMIT_TYPES,
        "domain": {
            "name": domain.name,
            "version": domain.version,
            "verifyingContract": domain.verifying_contract,
        },
        "primaryType": "Permit",
        "message": {
            "holder": permit.holder,
            "spender": permit.spender,
            "nonce": permit.nonce,
            "expiry": permit.expiry,
            "allowed": permit.allowed,
        },
    }


class SignatureVerifier(ABC):
    """Recovers the signer of a permit."""

    @abstractmethod
    def recover_permit_signer(self, permit: Permit, signature: bytes | str) -> Optional[str]:
        """Return the account that signed ``permit``, or None if unrecoverable.

        Args:
            permit: Permit fields as submitted
            signature: 65-byte signature (bytes or 0x-prefixed hex)

        Returns:
            Recovered account, or None when the signature is malformed
        """
        pass


class EIP712PermitVerifier(SignatureVerifier):
    """EIP-712 permit verification backed by eth_account.

    Example:
        >>> verifier = EIP712PermitVerifier(PermitDomain(verifying_contract=ledger_address))
        >>> verifier.recover_permit_signer(permit, signature) == permit.holder
        True
    """

    def __init__(self, domain: Optional[PermitDomain] = None):
        self.domain = domain or PermitDomain()

    def recover_permit_signer(self, permit: Permit, signature: bytes | str) -> Optional[str]:
        try:
            signable = encode_typed_data(full_message=build_permit_message(permit, self.domain))
            return Account.recover_message(signable, signature=signature)
        except Exception as e:
            logger.warning("Permit signature could not be recovered: %s", e)
            return None
