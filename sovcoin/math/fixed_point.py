"""
sovcoin/math/fixed_point.py

Scaled-integer decimal: FixedPoint(value, scale) represents value * 10^-scale.

Used wherever percentages or oracle prices are combined, so no float ever
touches an amount. The mantissa is a u128; all operations go through
safe_math and raise MathError rather than losing digits silently.

    add / sub   align scales by scaling the lower-scale operand up
    mul         multiply mantissas, sum scales
    div         multiply the dividend by 10^6 first, bounding relative
                error to about 1e-6
    to_integer  divide out the scale (truncating), then width-check
"""

from dataclasses import dataclass
from typing import Tuple

from sovcoin.core.exceptions import DivisionByZero, MathError
from sovcoin.math.safe_math import (
    U64,
    U128,
    check_width,
    safe_add,
    safe_div,
    safe_mul,
    safe_sub,
)

EXTRA_PRECISION = 6


def _pow10(exp: int) -> int:
    return safe_mul(1, 10 ** exp, U128)


@dataclass(frozen=True)
class FixedPoint:
    value: int
    scale: int = 0

    def __post_init__(self):
        check_width(self.value, U128)
        if self.scale < 0 or self.scale > 38:
            raise MathError(details={"scale": self.scale})

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def from_int(cls, value: int) -> "FixedPoint":
        return cls(value, 0)

    @classmethod
    def from_decimal(cls, integer: int, fraction: int, places: int) -> "FixedPoint":
        """integer + fraction * 10^-places"""
        return cls(integer, 0).add(cls(fraction, places))

    @classmethod
    def from_str(cls, text: str) -> "FixedPoint":
        """
        Parse a non-negative decimal string such as "17.2345".

        Oracle prices arrive in this form; the number of fractional digits
        becomes the scale.
        """
        text = text.strip()
        if not text or text.startswith("-"):
            raise MathError(f"Invalid decimal string: {text!r}")
        integer_part, _, fraction_part = text.partition(".")
        if not (integer_part or fraction_part):
            raise MathError(f"Invalid decimal string: {text!r}")
        if not (integer_part or "0").isdigit() or (fraction_part and not fraction_part.isdigit()):
            raise MathError(f"Invalid decimal string: {text!r}")
        scale = len(fraction_part)
        mantissa = safe_add(
            safe_mul(int(integer_part or "0"), _pow10(scale), U128),
            int(fraction_part or "0"),
            U128,
        )
        return cls(mantissa, scale)

    # ── Arithmetic ────────────────────────────────────────────

    def _align(self, other: "FixedPoint") -> Tuple[int, int, int]:
        if self.scale == other.scale:
            return self.value, other.value, self.scale
        if self.scale < other.scale:
            factor = _pow10(other.scale - self.scale)
            return safe_mul(self.value, factor, U128), other.value, other.scale
        factor = _pow10(self.scale - other.scale)
        return self.value, safe_mul(other.value, factor, U128), self.scale

    def add(self, other: "FixedPoint") -> "FixedPoint":
        left, right, scale = self._align(other)
        return FixedPoint(safe_add(left, right, U128), scale)

    def sub(self, other: "FixedPoint") -> "FixedPoint":
        left, right, scale = self._align(other)
        return FixedPoint(safe_sub(left, right, U128), scale)

    def mul(self, other: "FixedPoint") -> "FixedPoint":
        return FixedPoint(
            safe_mul(self.value, other.value, U128),
            self.scale + other.scale,
        )

    def div(self, other: "FixedPoint") -> "FixedPoint":
        if other.value == 0:
            raise DivisionByZero(details={"dividend": str(self)})
        scaled = safe_mul(self.value, _pow10(EXTRA_PRECISION), U128)
        result = safe_div(scaled, other.value, U128)
        scale = self.scale + EXTRA_PRECISION - other.scale
        if scale < 0:
            # divisor carried more digits than we added; shift the mantissa
            # back up so the value is preserved at scale 0
            result = safe_mul(result, _pow10(-scale), U128)
            scale = 0
        return FixedPoint(result, scale)

    def to_integer(self, bits: int = U64) -> int:
        """Truncate toward zero and check the result fits the target width."""
        result = safe_div(self.value, _pow10(self.scale), U128)
        return check_width(result, bits)

    # ── Comparison ────────────────────────────────────────────

    def _cmp_key(self, other: "FixedPoint") -> Tuple[int, int]:
        left, right, _ = self._align(other)
        return left, right

    def __lt__(self, other: "FixedPoint") -> bool:
        left, right = self._cmp_key(other)
        return left < right

    def __le__(self, other: "FixedPoint") -> bool:
        left, right = self._cmp_key(other)
        return left <= right

    def equals(self, other: "FixedPoint") -> bool:
        """Value equality across scales (== compares representation)."""
        left, right = self._cmp_key(other)
        return left == right

    def __str__(self) -> str:
        if self.scale == 0:
            return str(self.value)
        digits = str(self.value).rjust(self.scale + 1, "0")
        return f"{digits[:-self.scale]}.{digits[-self.scale:]}"
