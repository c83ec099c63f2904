"""Ingredient quantity parsing and recipe scaling."""

from recipebook.scaling.quantities import (
    FRACTION_GLYPHS,
    IngredientQuantity,
    ParsedQuantity,
    multiply_ingredient,
    parse_ingredient,
    parse_quantity,
    render_quantity,
)
from recipebook.scaling.recipes import (
    MIN_MULTIPLIER,
    clamp_multiplier,
    cost_per_serving,
    format_ingredient_list,
    parse_servings,
    scale_ingredients,
    toggle_checked,
)

__all__ = [
    "FRACTION_GLYPHS",
    "MIN_MULTIPLIER",
    "IngredientQuantity",
    "ParsedQuantity",
    "clamp_multiplier",
    "cost_per_serving",
    "format_ingredient_list",
    "multiply_ingredient",
    "parse_ingredient",
    "parse_quantity",
    "parse_servings",
    "render_quantity",
    "scale_ingredients",
    "toggle_checked",
]
