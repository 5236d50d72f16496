"""
Integer-safe allocation and number formatting helpers shared by the validators.
"""

import math
from typing import List, Optional, Sequence

# Absorbs float noise such as 55.99999999 before flooring
_FLOOR_EPSILON = 1e-9


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def floor_safe(value: float) -> int:
    return int(math.floor(value + _FLOOR_EPSILON))


def is_finite_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def largest_index(values: Sequence[float]) -> int:
    """Index of the largest value; the first one wins ties."""
    best = 0
    for i, value in enumerate(values):
        if value > values[best]:
            best = i
    return best


def distribute_proportionally(weights: Sequence[float], total: int) -> List[int]:
    """
    Split an integer total across weights so the parts sum to exactly the total.

    Each part is floored from its proportional share; whatever is left over
    goes to the largest part (first one on ties). When every weight is zero
    the total is split evenly.

    Args:
        weights: Current values used as proportions (negatives count as zero)
        total: Integer total the parts must sum to

    Returns:
        List of integer parts, same length as weights
    """
    if not weights:
        return []

    total = int(total)
    clean = [max(float(w), 0.0) for w in weights]
    weight_sum = sum(clean)

    if weight_sum <= 0:
        parts = [total // len(clean)] * len(clean)
    else:
        parts = [floor_safe(w * total / weight_sum) for w in clean]

    remainder = total - sum(parts)
    if remainder:
        parts[largest_index(parts)] += remainder

    return parts


def values_equal(left: Optional[float], right: Optional[float], tolerance: float = 1e-9) -> bool:
    if left is None or right is None:
        return left is right
    return abs(left - right) <= tolerance


def format_amount(value: float) -> str:
    """Format a number with thousands separators, dropping zero cents."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_money(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"${format_amount(value)}"
