"""
tests/test_fee_reserve.py

Protocol fee extraction and reserve allocation.

Laws tested:

  FEE
    net + fee == amount, fee rounds down
    gross_up(net) always yields at least net after extract_fee
    fee_bps outside [0, 10000] is rejected

  RESERVE
    required_reserve_bps is non-decreasing in rating
    reserve + bond == net, both non-zero
    a requirement above 100% is rejected, not clamped
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sovcoin.core.exceptions import (
    InvalidBondRating,
    InvalidBondReserveRatio,
    InvalidCalculatedAmount,
    InvalidFeeBasisPoints,
    InvalidReservePercentage,
    ReserveExceeds100Percent,
)
from sovcoin.math.fee import extract_fee, gross_up
from sovcoin.math.reserve import required_reserve_bps, split_reserve

amounts = st.integers(min_value=0, max_value=10 ** 15)
fee_bps = st.integers(min_value=0, max_value=10_000)


# ─────────────────────────────────────────────────────────────
# Fee
# ─────────────────────────────────────────────────────────────

class TestExtractFee:

    def test_fifty_bps(self):
        assert extract_fee(1_000_000, 50) == (995_000, 5_000)

    def test_zero_fee(self):
        assert extract_fee(123, 0) == (123, 0)

    def test_full_fee(self):
        assert extract_fee(123, 10_000) == (0, 123)

    def test_fee_rounds_down(self):
        assert extract_fee(199, 50) == (199, 0)

    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_rejects_out_of_range(self, bps):
        with pytest.raises(InvalidFeeBasisPoints):
            extract_fee(100, bps)

    @given(amount=amounts, bps=fee_bps)
    def test_parts_sum_to_amount(self, amount, bps):
        net, fee = extract_fee(amount, bps)
        assert net + fee == amount
        assert fee == amount * bps // 10_000


class TestGrossUp:

    def test_exact(self):
        assert gross_up(995_000, 50) == 1_000_000

    def test_rounds_up(self):
        assert gross_up(1, 50) == 2

    def test_full_fee_rejected(self):
        with pytest.raises(InvalidFeeBasisPoints):
            gross_up(100, 10_000)

    @given(net=amounts, bps=st.integers(min_value=0, max_value=9_999))
    def test_gross_up_covers_net(self, net, bps):
        gross = gross_up(net, bps)
        received, _ = extract_fee(gross, bps)
        assert received >= net


# ─────────────────────────────────────────────────────────────
# Reserve requirement
# ─────────────────────────────────────────────────────────────

class TestRequiredReserve:

    @pytest.mark.parametrize("rating,expected", [(1, 3000), (4, 3010), (10, 3030)])
    def test_ramp(self, rating, expected):
        assert required_reserve_bps(3000, rating, 30, 9) == expected

    def test_fractional_notches_accumulate(self):
        # 10/3 per notch: 3 notches → 10, not 3 * 3
        assert required_reserve_bps(0, 4, 10, 3) == 10
        assert required_reserve_bps(0, 3, 10, 3) == 6

    @pytest.mark.parametrize("rating", [0, 11])
    def test_rating_bounds(self, rating):
        with pytest.raises(InvalidBondRating):
            required_reserve_bps(3000, rating, 30, 9)

    def test_zero_denominator(self):
        with pytest.raises(InvalidBondReserveRatio):
            required_reserve_bps(3000, 1, 30, 0)

    def test_base_above_100_percent(self):
        with pytest.raises(InvalidReservePercentage):
            required_reserve_bps(10_001, 1, 30, 9)

    def test_result_above_100_percent(self):
        with pytest.raises(ReserveExceeds100Percent):
            required_reserve_bps(10_000, 10, 9, 9)

    @given(
        base=st.integers(min_value=0, max_value=5_000),
        numerator=st.integers(min_value=0, max_value=100),
        denominator=st.integers(min_value=1, max_value=100),
        ratings=st.tuples(
            st.integers(min_value=1, max_value=10),
            st.integers(min_value=1, max_value=10),
        ),
    )
    def test_monotonic_in_rating(self, base, numerator, denominator, ratings):
        low, high = sorted(ratings)
        assert (
            required_reserve_bps(base, low, numerator, denominator)
            <= required_reserve_bps(base, high, numerator, denominator)
        )


# ─────────────────────────────────────────────────────────────
# Split
# ─────────────────────────────────────────────────────────────

class TestSplitReserve:

    def test_reference_split(self):
        assert split_reserve(995_000, 3000) == (298_500, 696_500)

    def test_all_bond_rejected(self):
        with pytest.raises(InvalidCalculatedAmount):
            split_reserve(1, 3000)

    def test_all_reserve_rejected(self):
        with pytest.raises(InvalidCalculatedAmount):
            split_reserve(100, 10_000)

    def test_bps_out_of_range(self):
        with pytest.raises(InvalidReservePercentage):
            split_reserve(100, 10_001)

    @given(
        net=st.integers(min_value=10_000, max_value=10 ** 15),
        bps=st.integers(min_value=1, max_value=9_999),
    )
    def test_split_conserves_net(self, net, bps):
        reserve, bond = split_reserve(net, bps)
        assert reserve + bond == net
        assert reserve > 0 and bond > 0
        assert reserve == net * bps // 10_000
