"""Numeric coercion helpers.

Configuration rows arrive from spreadsheets, YAML and JSON payloads, so a
"number" may be an int, a float, a numeric string, an empty string or None.
"""

import math
from typing import Any


def to_number(value: Any) -> float | None:
    """Coerce a loosely typed value into a finite float.

    Args:
        value: Raw value (number, numeric string, None, ...)

    Returns:
        The float value, or None for empty, unparseable or non-finite input
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None

    return number if math.isfinite(number) else None


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into the closed interval [lo, hi]."""
    return max(lo, min(hi, value))
