"""Approval Layer - authorization state.

Components:
- ApprovalManager: Operator, single-asset and permit approvals
- SignatureVerifier: Abstract permit signer recovery
- EIP712PermitVerifier: eth_account-backed EIP-712 recovery
- Permit / PermitDomain: Signed message fields and domain binding
"""

from tokenminter.approval.manager import ApprovalManager
from tokenminter.approval.signatures import (
    PERMIT_TYPES,
    EIP712PermitVerifier,
    Permit,
    PermitDomain,
    SignatureVerifier,
    build_permit_message,
)

__all__ = [
    "ApprovalManager",
    "SignatureVerifier",
    "EIP712PermitVerifier",
    "Permit",
    "PermitDomain",
    "PERMIT_TYPES",
    "build_permit_message",
]
