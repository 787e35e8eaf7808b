"""Content-addressed portfolio identifiers.

A portfolio id is the keccak-256 digest of its component asset ids followed
by its ratios, each packed as a 32-byte big-endian word. This is the same
value Solidity computes for ``keccak256(abi.encodePacked(ids, ratios))`` with
two ``uint256[]`` arguments, so ids line up with those produced on-chain.
"""

from typing import Sequence

from eth_utils import keccak

from tokenminter.utils.exceptions import InvalidAssetIdError, InvalidQuantityError

UINT256_MAX = 2**256 - 1

WORD_SIZE = 32


def _pack_uint256(values: Sequence[int]) -> bytes:
    return b"".join(value.to_bytes(WORD_SIZE, "big") for value in values)


class IdentityCodec:
    """Derives portfolio ids from (asset ids, ratios) pairs.

    Derivation is pure and position-sensitive: swapping two asset ids, or two
    ratios, yields a different id. Identical pairs always collapse to the same
    id, so composing the same basket twice grows one portfolio position.

    Example:
        >>> codec = IdentityCodec()
        >>> codec.derive([1, 2, 3], [1, 1, 1]) == codec.derive([1, 2, 3], [1, 1, 1])
        True
    """

    def derive(self, asset_ids: Sequence[int], ratios: Sequence[int]) -> int:
        """Compute the portfolio id for a composition.

        Callers are expected to have rejected length mismatches already.

        Args:
            asset_ids: Ordered component asset ids
            ratios: Ordered component ratios

        Returns:
            Portfolio asset id as an unsigned 256-bit integer

        Raises:
            InvalidAssetIdError: If an asset id is outside the uint256 range
            InvalidQuantityError: If a ratio is outside the uint256 range
        """
        for asset_id in asset_ids:
            if not 0 <= asset_id <= UINT256_MAX:
                raise InvalidAssetIdError(f"asset id out of uint256 range: {asset_id}")
        for ratio in ratios:
            if not 0 <= ratio <= UINT256_MAX:
                raise InvalidQuantityError(f"ratio out of uint256 range: {ratio}")

        digest = keccak(_pack_uint256(asset_ids) + _pack_uint256(ratios))
        return int.from_bytes(digest, "big")


def derive_portfolio_id(asset_ids: Sequence[int], ratios: Sequence[int]) -> int:
    """Module-level shortcut for IdentityCodec().derive()."""
    return IdentityCodec().derive(asset_ids, ratios)
