"""API Layer - user-facing ledger interface.

Components:
- MinterAPI: Queries, mint, approvals, transfers and composition behind one lock
- create_minter: Build a MinterAPI from YAML config and environment overrides
"""

from tokenminter.api.minter_api import MinterAPI, create_minter

__all__ = [
    "MinterAPI",
    "create_minter",
]
