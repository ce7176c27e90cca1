"""
Currency conversion between the settlement asset and sovereign-coin units.

Prices are "target units per one settlement unit" as FixedPoint values
read from a PriceFeed. A currency with a cross feed is priced as
base * quote (scales summed), for feeds quoted against an intermediate.

    to_target(amount)     = floor(amount * 10^d * price.value / 10^(price.scale + d))
    to_settlement(amount) = floor(amount * 10^price.scale / price.value)

USD converts 1:1 without reading any feed.
"""

import logging
from typing import Dict, Mapping, Optional

from sovcoin.core.exceptions import InvalidPriceFeed, MathError
from sovcoin.math.fixed_point import FixedPoint
from sovcoin.math.safe_math import U64, U128, check_width, safe_div, safe_mul

logger = logging.getLogger(__name__)

PEGGED_CURRENCY = "USD"


class PriceFeed:
    """Source of one price. read() raises InvalidPriceFeed when unusable."""

    def read(self) -> FixedPoint:
        raise NotImplementedError


class StaticPriceFeed(PriceFeed):
    """Fixed decimal-string price, e.g. StaticPriceFeed("17.25")."""

    def __init__(self, price: str):
        try:
            self._price = FixedPoint.from_str(price)
        except MathError as exc:
            raise InvalidPriceFeed(details={"price": price}) from exc

    def read(self) -> FixedPoint:
        return self._price

    def __repr__(self) -> str:
        return f"StaticPriceFeed({str(self._price)!r})"


class CurrencyConverter:
    """Interface consumed by the settlement engine."""

    def to_target(self, settlement_amount: int, currency: str, decimals: int) -> int:
        raise NotImplementedError

    def to_settlement(self, target_amount: int, currency: str, decimals: int) -> int:
        raise NotImplementedError

    def bond_equivalent(self, settlement_amount: int, currency: str, bond_decimals: int) -> int:
        """Settlement amount expressed in bond-instrument units."""
        return self.to_target(settlement_amount, currency, bond_decimals)


class OracleCurrencyConverter(CurrencyConverter):
    def __init__(
        self,
        feeds:       Optional[Mapping[str, PriceFeed]] = None,
        cross_feeds: Optional[Mapping[str, PriceFeed]] = None,
    ):
        self._feeds:       Dict[str, PriceFeed] = dict(feeds or {})
        self._cross_feeds: Dict[str, PriceFeed] = dict(cross_feeds or {})

    def set_feed(self, currency: str, feed: PriceFeed, cross_feed: Optional[PriceFeed] = None) -> None:
        self._feeds[currency] = feed
        if cross_feed is not None:
            self._cross_feeds[currency] = cross_feed

    def price(self, currency: str) -> FixedPoint:
        feed = self._feeds.get(currency)
        if feed is None:
            raise InvalidPriceFeed(details={"currency": currency, "reason": "no feed"})
        price = feed.read()
        cross = self._cross_feeds.get(currency)
        if cross is not None:
            price = price.mul(cross.read())
        if price.value == 0:
            raise InvalidPriceFeed(details={"currency": currency, "reason": "zero price"})
        return price

    def to_target(self, settlement_amount: int, currency: str, decimals: int) -> int:
        check_width(settlement_amount, U64)
        if currency == PEGGED_CURRENCY:
            return settlement_amount
        price = self.price(currency)
        scaled = safe_mul(settlement_amount, 10 ** decimals, U128)
        product = safe_mul(scaled, price.value, U128)
        result = safe_div(product, 10 ** (price.scale + decimals), U128)
        logger.debug("to_target %d -> %d %s @ %s", settlement_amount, result, currency, price)
        return check_width(result, U64)

    def to_settlement(self, target_amount: int, currency: str, decimals: int) -> int:
        check_width(target_amount, U64)
        if currency == PEGGED_CURRENCY:
            return target_amount
        price = self.price(currency)
        scaled = safe_mul(target_amount, 10 ** price.scale, U128)
        result = safe_div(scaled, price.value, U128)
        logger.debug("to_settlement %d %s -> %d @ %s", target_amount, currency, result, price)
        return check_width(result, U64)
