"""
sovcoin/math/safe_math.py

Checked integer arithmetic over fixed-width unsigned types.

Python integers never wrap, so "overflow" here means leaving the range of
the declared width. Every monetary value is a u64; products that need
headroom are evaluated as u128 and narrowed back with to_u64().

No monetary computation anywhere in sovcoin may use bare +, -, *, // on
amounts. Use these.
"""

import logging
from enum import Enum

from sovcoin.core.exceptions import DivisionByZero, MathOverflow

logger = logging.getLogger(__name__)

U8   = 8
U16  = 16
U64  = 64
U128 = 128

U64_MAX  = (1 << U64) - 1
U128_MAX = (1 << U128) - 1

BASIS_POINT_MAX = 10_000


class Rounding(Enum):
    UP   = "up"
    DOWN = "down"


def _max_for(bits: int) -> int:
    return (1 << bits) - 1


def _fail(op: str, a: int, b: int, bits: int, exc_type=MathOverflow):
    logger.debug("math error in %s(%d, %d) at u%d", op, a, b, bits)
    return exc_type(details={"op": op, "lhs": a, "rhs": b, "width": f"u{bits}"})


def check_width(value: int, bits: int = U64) -> int:
    """Return value if it is a valid unsigned integer of the given width."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"amount must be int, got {type(value).__name__}")
    if value < 0 or value > _max_for(bits):
        logger.debug("value %d out of range for u%d", value, bits)
        raise MathOverflow(details={"value": value, "width": f"u{bits}"})
    return value


def safe_add(a: int, b: int, bits: int = U64) -> int:
    result = a + b
    if result > _max_for(bits) or result < 0:
        raise _fail("add", a, b, bits)
    return result


def safe_sub(a: int, b: int, bits: int = U64) -> int:
    result = a - b
    if result < 0 or result > _max_for(bits):
        raise _fail("sub", a, b, bits)
    return result


def safe_mul(a: int, b: int, bits: int = U64) -> int:
    result = a * b
    if result > _max_for(bits) or result < 0:
        raise _fail("mul", a, b, bits)
    return result


def safe_div(a: int, b: int, bits: int = U64) -> int:
    """Floor division. b == 0 raises DivisionByZero."""
    if b == 0:
        raise _fail("div", a, b, bits, DivisionByZero)
    result = a // b
    if result > _max_for(bits) or result < 0:
        raise _fail("div", a, b, bits)
    return result


def safe_shl(a: int, offset: int, bits: int = U64) -> int:
    if offset < 0 or offset >= bits:
        raise _fail("shl", a, offset, bits)
    result = a << offset
    if result > _max_for(bits):
        raise _fail("shl", a, offset, bits)
    return result


def safe_shr(a: int, offset: int, bits: int = U64) -> int:
    if offset < 0 or offset >= bits:
        raise _fail("shr", a, offset, bits)
    return a >> offset


def to_u64(value: int) -> int:
    """Narrow a u128 intermediate back to u64."""
    return check_width(value, U64)


def mul_div(x: int, y: int, denominator: int, rounding: Rounding = Rounding.DOWN) -> int:
    """
    x * y / denominator evaluated in u128, narrowed to u64.

    Rounding.UP adds (denominator - 1) before dividing.
    """
    if denominator == 0:
        raise _fail("mul_div", x, y, U128, DivisionByZero)
    prod = safe_mul(x, y, U128)
    if rounding is Rounding.UP:
        prod = safe_add(prod, denominator - 1, U128)
    return to_u64(safe_div(prod, denominator, U128))


def percentage_of(value: int, bps: int) -> int:
    """floor(value * bps / 10000)"""
    return mul_div(value, bps, BASIS_POINT_MAX, Rounding.DOWN)
