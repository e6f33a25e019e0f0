"""Shared helpers for moving values between model types and pandas."""

import math
from decimal import Decimal
from typing import Union


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def float_to_decimal(value: float) -> Decimal:
    """Convert a numeric cell to Decimal through its shortest repr.

    ``Decimal(str(x))`` keeps ``125.5`` as ``Decimal('125.5')`` instead of the
    binary expansion ``Decimal(125.5)`` would give for non-representable values.

    Raises:
        TypeError: If value is not numeric
    """
    if not isinstance(value, (int, float)):
        raise TypeError(f"Expected numeric type, got {type(value)}")
    return Decimal(str(value))


def recency_to_float(value: Union[int, float]) -> float:
    """Recency as float; the no-purchase sentinel becomes NaN."""
    return math.nan if value == math.inf else float(value)
