"""
sovcoin settlement math

Everything that turns an amount into another amount lives here and is pure:
no ledger access, no clock, no collaborators.

Components:
- safe_math:   checked u64/u128 arithmetic
- fixed_point: scaled-integer decimals for ratios and prices
- fee:         basis-point fee extraction and gross-up
- reserve:     required reserve ratio and reserve/bond split
"""

from sovcoin.math.fee import extract_fee, gross_up
from sovcoin.math.fixed_point import FixedPoint
from sovcoin.math.reserve import required_reserve_bps, split_reserve
from sovcoin.math.safe_math import (
    BASIS_POINT_MAX,
    U64_MAX,
    Rounding,
    mul_div,
    percentage_of,
    safe_add,
    safe_div,
    safe_mul,
    safe_sub,
)

__all__ = [
    "BASIS_POINT_MAX",
    "U64_MAX",
    "FixedPoint",
    "Rounding",
    "extract_fee",
    "gross_up",
    "mul_div",
    "percentage_of",
    "required_reserve_bps",
    "safe_add",
    "safe_div",
    "safe_mul",
    "safe_sub",
    "split_reserve",
]
