"""Custom exceptions for TokenMinter.

This module defines the exception hierarchy for the ledger. Every failed
ledger call raises exactly one of these; nothing is partially committed.
"""


class TokenMinterError(Exception):
    """Base exception for all TokenMinter errors.

    All custom exceptions in the application should inherit from this class.
    """

    pass


class ConfigurationError(TokenMinterError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Unknown storage backend
        - Missing minter account
        - Configuration file not found
    """

    pass


class StorageError(TokenMinterError):
    """Raised when the backing store fails.

    Examples:
        - Database connection failed
        - SQL statement failed
        - Schema initialization failed
    """

    pass


class LedgerError(TokenMinterError):
    """Base exception for rejected ledger operations.

    Parent class for all balance, authorization and composition errors.
    """

    pass


class ValidationError(LedgerError, ValueError):
    """Raised when call arguments are malformed."""

    pass


class LengthMismatchError(ValidationError):
    """Raised when parallel arrays differ in length or are empty.

    Examples:
        - batch_transfer with 2 asset ids and 3 amounts
        - compose with an empty asset list
    """

    pass


class InvalidQuantityError(ValidationError):
    """Raised when a quantity, ratio or count is out of range.

    Examples:
        - Negative transfer amount
        - Zero ratio in a composition
        - Zero compose count
    """

    pass


class InvalidAssetIdError(ValidationError):
    """Raised when an asset id is not an unsigned 256-bit integer."""

    pass


class IdentityMismatchError(ValidationError):
    """Raised when a supplied recipe does not hash to the claimed portfolio id."""

    pass


class InvalidAccountError(ValidationError):
    """Raised when an account is not a 20-byte hex address.

    Examples:
        - Truncated address string
        - Non-hex characters
        - Empty string
    """

    pass


class InvalidRecipientError(LedgerError):
    """Raised when value is sent to the null account."""

    pass


class BalanceError(LedgerError):
    """Base exception for balance arithmetic failures."""

    pass


class InsufficientBalanceError(BalanceError):
    """Raised when a debit exceeds the holder's balance.

    Examples:
        - Transfer more than held
        - Compose without enough of one component
        - Decompose more portfolio units than held
    """

    pass


class QuantityOverflowError(BalanceError):
    """Raised when a credit would exceed the representable quantity range."""

    pass


class AuthorizationError(LedgerError):
    """Base exception for authorization failures."""

    pass


class NotApprovedError(AuthorizationError):
    """Raised when a single transfer is attempted by an unauthorized caller."""

    pass


class NotOperatorError(AuthorizationError):
    """Raised when a batch transfer caller is neither the owner nor an operator.

    Batch transfers never consult single-asset approvals, so a caller holding
    only a per-asset approval gets this error instead of NotApprovedError.
    """

    pass


class InvalidOperatorError(AuthorizationError):
    """Raised when an owner tries to approve itself as operator."""

    pass


class UnauthorizedMinterError(AuthorizationError):
    """Raised when an account without the minter role calls mint."""

    pass


class PermitError(LedgerError):
    """Base exception for signed meta-approval failures."""

    pass


class InvalidSignatureError(PermitError):
    """Raised when a permit signature does not recover to the holder."""

    pass


class NonceMismatchError(PermitError):
    """Raised when a permit nonce differs from the holder's current nonce."""

    pass


class PermitExpiredError(PermitError):
    """Raised when a permit is submitted after its expiry."""

    pass
