"""Ingredient quantity parsing, scaling and fraction rendering.

All functions are pure and never raise for string or number input.
Unparseable text degrades to a plausible display string.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

# =============================================================================
# Constants
# =============================================================================

# Some values are deliberately truncated (kitchen rounding), e.g. ⅓ -> 0.333.
FRACTION_GLYPHS: Mapping[str, float] = MappingProxyType(
    {
        "¼": 0.25,
        "½": 0.5,
        "¾": 0.75,
        "⅐": 0.142,
        "⅑": 0.111,
        "⅒": 0.1,
        "⅓": 0.333,
        "⅔": 0.666,
        "⅕": 0.2,
        "⅖": 0.4,
        "⅗": 0.6,
        "⅘": 0.8,
        "⅙": 0.166,
        "⅚": 0.833,
        "⅛": 0.125,
        "⅜": 0.375,
        "⅝": 0.625,
        "⅞": 0.875,
    }
)

# Optional whole number for mixed numbers ("1 1/2"), then fraction, decimal,
# integer or a single glyph. Anchored at the start of the line. Digits are
# ASCII only; any Unicode whitespace (e.g. a no-break space) separates a mixed number.
QUANTITY_PATTERN = re.compile(
    rf"^([0-9]+\s+)?([0-9]+/[0-9]+|[0-9]+\.[0-9]+|[0-9]+|[{''.join(FRACTION_GLYPHS)}])"
)

# Largest denominator still considered a "kitchen" fraction.
MAX_DENOMINATOR = 16
# Relative tolerance for the continued-fraction search.
TOLERANCE = 1e-6
MAX_ITERATIONS = 64
_EPSILON = 1e-12


# =============================================================================
# Parsing
# =============================================================================


@dataclass(frozen=True)
class ParsedQuantity:
    """Result of scanning an ingredient line for a leading quantity.

    When no quantity is found, ``value`` is 1 and ``remainder`` is the whole
    line, but ``found`` is False so it can be told apart from an explicit "1".
    """

    value: float
    remainder: str
    found: bool


@dataclass(frozen=True)
class IngredientQuantity:
    """Quantity and the rest of the line ("cups flour, sifted")."""

    quantity: float
    unit_and_name: str


def _piece_value(piece: str) -> float:
    """Evaluate one whitespace-separated piece of a quantity token."""
    if piece in FRACTION_GLYPHS:
        return FRACTION_GLYPHS[piece]

    if "/" in piece:
        numerator, _, denominator = piece.partition("/")
        try:
            num = float(numerator)
            den = float(denominator)
        except ValueError:
            return 0.0
        if den == 0:
            return 0.0
        return num / den

    try:
        return float(piece)
    except ValueError:
        return 0.0


def parse_quantity(line: str) -> ParsedQuantity:
    """
    Parse the leading quantity of an ingredient line.

    Handles formats like:
    - "2 eggs"
    - "1.5 cups milk"
    - "1/3 cup butter"
    - "1 1/2 cups sugar"
    - "¾ tsp salt" and "1 ½ cups flour"
    """
    match = QUANTITY_PATTERN.match(line)
    if not match:
        return ParsedQuantity(value=1.0, remainder=line, found=False)

    value = sum(_piece_value(piece) for piece in match.group(0).split())
    return ParsedQuantity(
        value=value,
        remainder=line[match.end() :].strip(),
        found=True,
    )


def parse_ingredient(line: str) -> IngredientQuantity:
    """
    Split an ingredient line into its quantity and unit-and-name text.

    Lines without a leading quantity report a quantity of 1 and the full
    original text, the same as a line that starts with an explicit "1".
    Use parse_quantity() when the difference matters.
    """
    parsed = parse_quantity(line)
    return IngredientQuantity(quantity=parsed.value, unit_and_name=parsed.remainder)


# =============================================================================
# Rendering
# =============================================================================


def _format_decimal(value: float) -> str:
    text = f"{value:.2f}"
    if text.endswith(".00"):
        return text[:-3]
    return text


def render_quantity(value: float) -> str:
    """
    Render a positive quantity as a whole number, fraction or mixed number.

    Uses continued-fraction convergents until the approximation is within
    TOLERANCE (relative). Quantities that need a denominator above
    MAX_DENOMINATOR fall back to a two-decimal string ("0.67", "2.50", "3").

    Examples:
        3.0 -> "3"
        0.75 -> "3/4"
        1.5 -> "1 1/2"
    """
    if not math.isfinite(value) or value <= 0:
        return _format_decimal(value)

    h1, h2 = 1, 0
    k1, k2 = 0, 1
    b = value
    converged = False

    for _ in range(MAX_ITERATIONS):
        a = math.floor(b)
        h1, h2 = a * h1 + h2, h1
        k1, k2 = a * k1 + k2, k1

        if abs(value - h1 / k1) <= value * TOLERANCE:
            converged = True
            break
        # Denominators only grow from here on
        if k1 > MAX_DENOMINATOR:
            break

        remainder = b - a
        if remainder < _EPSILON:
            break
        b = 1 / remainder

    if not converged or k1 > MAX_DENOMINATOR:
        return _format_decimal(value)

    whole, numerator = divmod(h1, k1)
    if numerator == 0:
        return str(whole)
    if whole == 0:
        return f"{numerator}/{k1}"
    return f"{whole} {numerator}/{k1}"


# =============================================================================
# Scaling
# =============================================================================


def multiply_ingredient(line: str, multiplier: float) -> str:
    """
    Scale the leading quantity of an ingredient line.

    Args:
        line: Free-text ingredient line, e.g. "1 1/2 cups sugar".
        multiplier: Scale factor applied to the quantity.

    Returns:
        The line with its quantity re-rendered, e.g. "3 cups sugar" for a
        multiplier of 2. Lines without a leading quantity are returned
        unchanged; a zero or negative result leaves only the remaining text.
    """
    if multiplier == 1:
        return line

    parsed = parse_quantity(line)
    if not parsed.found:
        return line
    if parsed.value == 0:
        return parsed.remainder

    scaled = parsed.value * multiplier
    if not math.isfinite(scaled):
        return line
    if scaled <= 0:
        return parsed.remainder

    return f"{render_quantity(scaled)} {parsed.remainder}".rstrip()
