"""Portfolio composition.

A portfolio is an asset whose id is derived from its recipe (component ids
and ratios). No recipe table is stored: decompose and recompose callers pass
the recipe back in, and the engine re-derives the id to check it matches the
portfolio being spent.

Conservation per call, for a recipe (ids, ratios) and ``count`` units:

    compose    -ratios[i] * count of ids[i],  +count of portfolio
    decompose  +ratios[i] * count of ids[i],  -count of portfolio
    recompose  net component deltas,          -count old, +count new
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from tokenminter.identity.codec import IdentityCodec
from tokenminter.ledger.balances import BalanceLedger, validate_asset_id
from tokenminter.utils.events import EventSink, LedgerEvent, LedgerEventType, discard_event
from tokenminter.utils.exceptions import (
    IdentityMismatchError,
    InvalidQuantityError,
    LengthMismatchError,
)
from tokenminter.utils.logging import get_logger, log_with_context

logger = get_logger(__name__)


@dataclass(frozen=True)
class Recipe:
    """A validated composition recipe.

    Attributes:
        asset_ids: Ordered component asset ids
        ratios: Ordered positive ratios, one per component
    """

    asset_ids: tuple
    ratios: tuple

    @classmethod
    def of(cls, asset_ids: Sequence[int], ratios: Sequence[int]) -> "Recipe":
        """Validate and freeze a recipe.

        Raises:
            LengthMismatchError: If lengths differ or the recipe is empty
            InvalidAssetIdError: If an asset id is not a uint256
            InvalidQuantityError: If a ratio is not a positive int
        """
        asset_ids = tuple(asset_ids)
        ratios = tuple(ratios)

        if len(asset_ids) != len(ratios):
            raise LengthMismatchError(
                f"asset_ids and ratios differ in length: {len(asset_ids)} != {len(ratios)}"
            )
        if not asset_ids:
            raise LengthMismatchError("Recipe must contain at least one asset")

        for asset_id in asset_ids:
            validate_asset_id(asset_id)
        for ratio in ratios:
            if isinstance(ratio, bool) or not isinstance(ratio, int) or ratio <= 0:
                raise InvalidQuantityError(f"ratio must be a positive int, got {ratio!r}")

        return cls(asset_ids=asset_ids, ratios=ratios)

    def amounts(self, count: int) -> List[int]:
        """Component quantities for ``count`` portfolio units."""
        return [ratio * count for ratio in self.ratios]


def _validate_count(count: int) -> None:
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidQuantityError(f"count must be a positive int, got {count!r}")


class CompositionEngine:
    """Compose, decompose and recompose portfolios.

    Args:
        balances: Balance ledger to mutate
        codec: Portfolio id derivation
        emit: Receives a LedgerEvent per successful call

    Example:
        >>> engine = CompositionEngine(balances)
        >>> portfolio_id = engine.compose(alice, [1, 2, 3], [1, 1, 1], 5)
        >>> engine.decompose(alice, portfolio_id, [1, 2, 3], [1, 1, 1], 5)
    """

    def __init__(
        self,
        balances: BalanceLedger,
        codec: Optional[IdentityCodec] = None,
        emit: Optional[EventSink] = None,
    ):
        self.balances = balances
        self.codec = codec or IdentityCodec()
        self.emit = emit or discard_event

    def _verify(self, portfolio_id: int, recipe: Recipe) -> None:
        derived = self.codec.derive(recipe.asset_ids, recipe.ratios)
        if derived != portfolio_id:
            raise IdentityMismatchError(
                f"Recipe does not reconstruct portfolio {portfolio_id} (derives {derived})"
            )

    def compose(
        self,
        caller: str,
        asset_ids: Sequence[int],
        ratios: Sequence[int],
        count: int,
    ) -> int:
        """Bundle components into ``count`` units of a portfolio.

        Returns:
            The portfolio asset id

        Raises:
            LengthMismatchError / InvalidQuantityError: On malformed arguments
            InsufficientBalanceError: If any component is short
            QuantityOverflowError: If the portfolio balance would overflow
        """
        recipe = Recipe.of(asset_ids, ratios)
        _validate_count(count)
        portfolio_id = self.codec.derive(recipe.asset_ids, recipe.ratios)

        with self.balances.store.transaction():
            for asset_id, amount in zip(recipe.asset_ids, recipe.amounts(count)):
                self.balances.debit(caller, asset_id, amount)
            self.balances.credit(caller, portfolio_id, count)

        self.emit(
            LedgerEvent(
                LedgerEventType.COMPOSED,
                {
                    "owner": caller,
                    "portfolio_id": portfolio_id,
                    "asset_ids": list(recipe.asset_ids),
                    "ratios": list(recipe.ratios),
                    "count": count,
                },
            )
        )
        log_with_context(
            logger, "info", "Portfolio composed",
            owner=caller, portfolio=portfolio_id, components=len(recipe.asset_ids), count=count,
        )
        return portfolio_id

    def decompose(
        self,
        caller: str,
        portfolio_id: int,
        asset_ids: Sequence[int],
        ratios: Sequence[int],
        count: int,
    ) -> None:
        """Unbundle ``count`` units of a portfolio back into its components.

        Raises:
            IdentityMismatchError: If the recipe does not derive ``portfolio_id``
            InsufficientBalanceError: If caller holds fewer than ``count`` units
            QuantityOverflowError: If a component balance would overflow
        """
        validate_asset_id(portfolio_id)
        recipe = Recipe.of(asset_ids, ratios)
        _validate_count(count)
        self._verify(portfolio_id, recipe)

        with self.balances.store.transaction():
            self.balances.debit(caller, portfolio_id, count)
            for asset_id, amount in zip(recipe.asset_ids, recipe.amounts(count)):
                self.balances.credit(caller, asset_id, amount)

        self.emit(
            LedgerEvent(
                LedgerEventType.DECOMPOSED,
                {
                    "owner": caller,
                    "portfolio_id": portfolio_id,
                    "asset_ids": list(recipe.asset_ids),
                    "ratios": list(recipe.ratios),
                    "count": count,
                },
            )
        )
        log_with_context(
            logger, "info", "Portfolio decomposed",
            owner=caller, portfolio=portfolio_id, count=count,
        )

    def recompose(
        self,
        caller: str,
        old_portfolio_id: int,
        asset_ids: Sequence[int],
        old_ratios: Sequence[int],
        new_ratios: Sequence[int],
        count: int,
        new_asset_ids: Optional[Sequence[int]] = None,
    ) -> int:
        """Re-weight ``count`` units of a portfolio in one atomic step.

        Only the net change of each component is applied, so unchanged
        components are never touched and the caller does not need to be able
        to hold the full decomposed quantity at once. The old portfolio units
        are always debited, even when every component delta is a credit.

        Args:
            caller: Holder of the old portfolio
            old_portfolio_id: Portfolio being re-weighted
            asset_ids: Component ids of the old portfolio
            old_ratios: Ratios of the old portfolio
            new_ratios: Ratios of the new portfolio
            count: Portfolio units to convert
            new_asset_ids: Component ids of the new portfolio; defaults to asset_ids

        Returns:
            The new portfolio asset id

        Raises:
            LengthMismatchError: If any recipe is malformed
            IdentityMismatchError: If (asset_ids, old_ratios) does not derive old_portfolio_id
            InsufficientBalanceError: If a positive delta or the old portfolio debit is short
        """
        validate_asset_id(old_portfolio_id)
        old_recipe = Recipe.of(asset_ids, old_ratios)
        if new_asset_ids is None:
            new_asset_ids = old_recipe.asset_ids
        new_recipe = Recipe.of(new_asset_ids, new_ratios)
        _validate_count(count)
        self._verify(old_portfolio_id, old_recipe)
        new_portfolio_id = self.codec.derive(new_recipe.asset_ids, new_recipe.ratios)

        deltas: Dict[int, int] = {}
        for asset_id, amount in zip(old_recipe.asset_ids, old_recipe.amounts(count)):
            deltas[asset_id] = deltas.get(asset_id, 0) - amount
        for asset_id, amount in zip(new_recipe.asset_ids, new_recipe.amounts(count)):
            deltas[asset_id] = deltas.get(asset_id, 0) + amount

        with self.balances.store.transaction():
            for asset_id, delta in deltas.items():
                if delta > 0:
                    self.balances.debit(caller, asset_id, delta)
            for asset_id, delta in deltas.items():
                if delta < 0:
                    self.balances.credit(caller, asset_id, -delta)
            self.balances.debit(caller, old_portfolio_id, count)
            self.balances.credit(caller, new_portfolio_id, count)

        self.emit(
            LedgerEvent(
                LedgerEventType.RECOMPOSED,
                {
                    "owner": caller,
                    "old_portfolio_id": old_portfolio_id,
                    "new_portfolio_id": new_portfolio_id,
                    "asset_ids": list(new_recipe.asset_ids),
                    "ratios": list(new_recipe.ratios),
                    "count": count,
                },
            )
        )
        log_with_context(
            logger, "info", "Portfolio recomposed",
            owner=caller, old=old_portfolio_id, new=new_portfolio_id, count=count,
        )
        return new_portfolio_id
