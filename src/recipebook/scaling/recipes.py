"""Recipe-level helpers built on the quantity engine."""

import re

from recipebook.scaling.quantities import multiply_ingredient

MIN_MULTIPLIER = 0.1
LIST_BULLET = "•"

_FIRST_INTEGER = re.compile(r"\d+", re.ASCII)


def clamp_multiplier(value: float, minimum: float = MIN_MULTIPLIER) -> float:
    """Keep a user-entered multiplier at or above the minimum."""
    return max(minimum, value)


def scale_ingredients(ingredients: list[str], multiplier: float) -> list[str]:
    """Scale every ingredient line of a recipe by the same multiplier."""
    return [multiply_ingredient(line, multiplier) for line in ingredients]


def format_ingredient_list(ingredients: list[str], multiplier: float = 1) -> str:
    """
    Format scaled ingredients as a bulleted plain-text list for copying.

    Example:
        ["2 cups flour", "1 egg"], 2 -> "• 4 cups flour\\n• 2 egg"
    """
    return "\n".join(
        f"{LIST_BULLET} {line}" for line in scale_ingredients(ingredients, multiplier)
    )


def parse_servings(servings: str | None) -> int:
    """Get the first whole number from a yield text such as "Makes 12 cookies"."""
    match = _FIRST_INTEGER.search(servings or "")
    if not match:
        return 1
    return int(match.group(0))


def cost_per_serving(cost: float, servings: str | None) -> float:
    """Split the recipe cost across its servings, rounded to cents."""
    count = parse_servings(servings)
    if cost <= 0 or count <= 0:
        return 0.0
    return round(cost / count, 2)


def toggle_checked(checked: list[str], ingredient: str) -> list[str]:
    """Add or remove an ingredient from the checked-off list."""
    if ingredient in checked:
        return [item for item in checked if item != ingredient]
    return [*checked, ingredient]
