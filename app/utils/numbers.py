"""
Numeric helpers shared by dashboard and summary payloads.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union


def round_half_up(value: Union[int, float, Decimal]) -> int:
    """Round to the nearest integer with halves going up, e.g. 12.5 -> 13."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
