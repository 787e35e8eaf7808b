"""Composition Layer - portfolio bundling.

Components:
- CompositionEngine: compose / decompose / recompose
- Recipe: Validated (asset_ids, ratios) pair
"""

from tokenminter.composition.engine import CompositionEngine, Recipe

__all__ = [
    "CompositionEngine",
    "Recipe",
]
