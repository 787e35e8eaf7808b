"""Account address normalization.

Accounts are keys for balances, approvals and permit nonces, and permit
signers are recovered in EIP-55 checksum form. Every account entering the
ledger is converted to that one spelling so that differently-cased inputs
name the same account.
"""

from eth_utils import to_checksum_address

from tokenminter.utils.exceptions import InvalidAccountError


def to_account(address: str) -> str:
    """Return the checksummed spelling of ``address``.

    Raises:
        InvalidAccountError: If address is not a 20-byte hex address
    """
    try:
        return to_checksum_address(address)
    except (TypeError, ValueError) as e:
        raise InvalidAccountError(f"Invalid account address: {address!r}") from e
