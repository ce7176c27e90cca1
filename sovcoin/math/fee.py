"""
Basis-point protocol fee math.
"""

from typing import Tuple

from sovcoin.core.exceptions import InvalidFeeBasisPoints
from sovcoin.math.safe_math import (
    BASIS_POINT_MAX,
    Rounding,
    check_width,
    mul_div,
    safe_sub,
)


def extract_fee(amount: int, fee_bps: int) -> Tuple[int, int]:
    """
    Split a gross amount into (net, fee).

        fee = floor(amount * fee_bps / 10000)
        net = amount - fee

    Raises:
        InvalidFeeBasisPoints: fee_bps outside [0, 10000]
    """
    if fee_bps < 0 or fee_bps > BASIS_POINT_MAX:
        raise InvalidFeeBasisPoints(details={"fee_bps": fee_bps})
    check_width(amount)
    if fee_bps == 0:
        return amount, 0

    fee = mul_div(amount, fee_bps, BASIS_POINT_MAX, Rounding.DOWN)
    return safe_sub(amount, fee), fee


def gross_up(net: int, fee_bps: int) -> int:
    """
    Smallest-safe gross input that yields at least ``net`` after extract_fee().

        gross = ceil(net * 10000 / (10000 - fee_bps))

    Rounds up so a caller funding ``gross`` is never short of ``net``.
    A 100% fee has no finite gross-up and is rejected.
    """
    if fee_bps < 0 or fee_bps >= BASIS_POINT_MAX:
        raise InvalidFeeBasisPoints(details={"fee_bps": fee_bps})
    check_width(net)
    if fee_bps == 0:
        return net

    return mul_div(net, BASIS_POINT_MAX, BASIS_POINT_MAX - fee_bps, Rounding.UP)
