"""
sovcoin/math/reserve.py

Reserve requirement and mint-proceeds allocation.

required_reserve_bps
    base_bps + (rating - 1) * numerator / denominator

    Lower credit ratings (higher ordinals) need a larger liquid buffer. The
    ramp is evaluated in FixedPoint and only truncated to whole basis points
    at the end, so e.g. 30/9 per notch accumulates as 3.333.. per notch
    instead of 3 per notch.

split_reserve
    reserve = floor(net * required_bps / 10000), bond = net - reserve.
    Both sides must be non-zero; an all-reserve or all-bond allocation is
    rejected rather than silently accepted.
"""

from typing import Tuple

from sovcoin.core.exceptions import (
    InvalidBondRating,
    InvalidBondReserveRatio,
    InvalidCalculatedAmount,
    InvalidReservePercentage,
    ReserveExceeds100Percent,
)
from sovcoin.math.fixed_point import FixedPoint
from sovcoin.math.safe_math import (
    BASIS_POINT_MAX,
    percentage_of,
    safe_add,
    safe_sub,
)

MIN_RATING = 1
MAX_RATING = 10


def validate_rating(rating: int) -> int:
    if not isinstance(rating, int) or rating < MIN_RATING or rating > MAX_RATING:
        raise InvalidBondRating(details={"rating": rating})
    return rating


def required_reserve_bps(
    base_bps: int,
    rating: int,
    numerator: int,
    denominator: int,
) -> int:
    """
    Required liquid-reserve percentage in basis points.

    Raises:
        InvalidReservePercentage: base_bps > 10000
        InvalidBondRating:        rating outside [1, 10]
        InvalidBondReserveRatio:  denominator == 0
        ReserveExceeds100Percent: result > 10000
    """
    if base_bps < 0 or base_bps > BASIS_POINT_MAX:
        raise InvalidReservePercentage(details={"base_bps": base_bps})
    validate_rating(rating)
    if denominator <= 0 or numerator < 0:
        raise InvalidBondReserveRatio(
            details={"numerator": numerator, "denominator": denominator}
        )

    notches = FixedPoint.from_int(rating - 1)
    adjustment = notches.mul(FixedPoint.from_int(numerator)).div(
        FixedPoint.from_int(denominator)
    )
    total = FixedPoint.from_int(base_bps).add(adjustment)

    bps = total.to_integer()
    if bps > BASIS_POINT_MAX:
        raise ReserveExceeds100Percent(details={"required_bps": bps, "rating": rating})
    return bps


def split_reserve(net_amount: int, required_bps: int) -> Tuple[int, int]:
    """
    Divide net mint proceeds into (reserve_amount, bond_amount).

    Raises:
        InvalidReservePercentage: required_bps outside [0, 10000]
        InvalidCalculatedAmount:  either side would be zero
    """
    if required_bps < 0 or required_bps > BASIS_POINT_MAX:
        raise InvalidReservePercentage(details={"required_bps": required_bps})

    reserve_amount = percentage_of(net_amount, required_bps)
    bond_amount = safe_sub(net_amount, reserve_amount)

    if reserve_amount == 0 or bond_amount == 0:
        raise InvalidCalculatedAmount(
            details={
                "net_amount": net_amount,
                "reserve_amount": reserve_amount,
                "bond_amount": bond_amount,
            }
        )
    if safe_add(reserve_amount, bond_amount) != net_amount:
        raise InvalidCalculatedAmount(details={"net_amount": net_amount})
    return reserve_amount, bond_amount
