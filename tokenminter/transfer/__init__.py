"""Transfer Layer - authorized value movement.

Components:
- TransferEngine: Single (owner/operator/single-approval) and batch (owner/operator) transfers
"""

from tokenminter.transfer.engine import TransferEngine

__all__ = [
    "TransferEngine",
]
