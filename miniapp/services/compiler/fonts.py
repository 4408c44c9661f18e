"""
Font weight normalization shared by the spec decoder and both compilers.
"""
import math
from typing import Any

FONT_WEIGHTS = {
    "ultralight": 100,
    "thin": 200,
    "light": 300,
    "regular": 400,
    "normal": 400,
    "medium": 500,
    "semibold": 600,
    "bold": 700,
    "heavy": 800,
}

DEFAULT_FONT_WEIGHT = 400


def normalize_font_weight(value: Any) -> float:
    """
    Map a numeric string or a named weight onto the 100-800 scale.

    >>> normalize_font_weight("semibold")
    600.0
    >>> normalize_font_weight("550")
    550.0
    >>> normalize_font_weight("chunky")
    400.0
    """
    if isinstance(value, bool):
        return float(DEFAULT_FONT_WEIGHT)
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else float(DEFAULT_FONT_WEIGHT)
    if not isinstance(value, str):
        return float(DEFAULT_FONT_WEIGHT)

    text = value.strip().lower()
    try:
        number = float(text)
    except ValueError:
        return float(FONT_WEIGHTS.get(text, DEFAULT_FONT_WEIGHT))
    if not math.isfinite(number):
        return float(DEFAULT_FONT_WEIGHT)
    return number


def css_font_weight(value: Any) -> int:
    """Integral CSS weight"""
    return int(normalize_font_weight(value))
