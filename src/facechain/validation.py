"""Value checks shared by the geometry and result records."""

from __future__ import annotations

import math
from numbers import Real


def is_valid_number(value: object) -> bool:
    """Return True for finite real numbers (bools excluded)."""
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def is_valid_probability(value: object) -> bool:
    """Return True for finite numbers within [0, 1]."""
    return is_valid_number(value) and 0.0 <= value <= 1.0  # type: ignore[operator]
