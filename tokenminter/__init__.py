"""TokenMinter - semi-fungible asset ledger with composable portfolios.

Accounts hold quantities of numbered assets. Holders can bundle assets into
portfolios whose ids are derived from their recipe, delegate transfers to
operators or single-asset spenders, and grant operator approval with
EIP-712 signed permits.
"""

from tokenminter.api.minter_api import MinterAPI, create_minter

__version__ = "0.1.0"

__all__ = [
    "MinterAPI",
    "create_minter",
]
