"""Identity Layer.

Components:
- IdentityCodec: Content-addressed portfolio id derivation
- derive_portfolio_id: Functional shortcut
- to_account: Checksummed account normalization
"""

from tokenminter.identity.accounts import to_account
from tokenminter.identity.codec import UINT256_MAX, IdentityCodec, derive_portfolio_id

__all__ = [
    "IdentityCodec",
    "derive_portfolio_id",
    "to_account",
    "UINT256_MAX",
]
