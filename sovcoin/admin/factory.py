"""
sovcoin/admin/factory.py

Factory administration: the instructions that configure the system before
any mint or redemption can run.

Every instruction runs inside host.transaction(). All of them except the
fee-operator list changes emit exactly one journal event on success.
Caller identity is a plain string compared to the factory authority;
signatures are the host's concern, not ours.
"""

import logging
from typing import Optional

from sovcoin.core.exceptions import (
    FactoryAlreadyInitialized,
    InvalidAmount,
    InvalidBondReserveRatio,
    InvalidFeeBasisPoints,
    InvalidReservePercentage,
    InvalidYieldDistribution,
    NameTooLong,
    StateUpdateFailed,
    SymbolTooLong,
    Unauthorized,
    UriTooLong,
)
from sovcoin.core.models import (
    BOND_DECIMALS,
    MAX_NAME_BYTES,
    MAX_SYMBOL_BYTES,
    MAX_URI_BYTES,
    SETTLEMENT_ASSET,
    Accounts,
    BondMapping,
    FactoryConfig,
    SovereignCoinState,
    fits_bytes,
)
from sovcoin.ledger.journal import EventType
from sovcoin.math.reserve import required_reserve_bps
from sovcoin.math.safe_math import BASIS_POINT_MAX, U8, check_width, safe_add
from sovcoin.runtime.host import SettlementHost

logger = logging.getLogger(__name__)


class FactoryAdmin:
    def __init__(self, host: SettlementHost):
        self.host = host

    # ── Factory ───────────────────────────────────────────────

    def initialize_factory(
        self,
        authority:                 str,
        base_reserve_bps:          int,
        reserve_ratio_numerator:   int,
        reserve_ratio_denominator: int,
        yield_share_protocol:      int,
        yield_share_issuer:        int,
        yield_share_holders:       int,
        fee_bps:                   int = 0,
    ) -> FactoryConfig:
        if self.host.state.factory is not None:
            raise FactoryAlreadyInitialized()
        if base_reserve_bps < 0 or base_reserve_bps > BASIS_POINT_MAX:
            raise InvalidReservePercentage(details={"base_reserve_bps": base_reserve_bps})
        if reserve_ratio_denominator <= 0 or reserve_ratio_numerator < 0:
            raise InvalidBondReserveRatio(
                details={
                    "numerator":   reserve_ratio_numerator,
                    "denominator": reserve_ratio_denominator,
                }
            )
        shares = (yield_share_protocol, yield_share_issuer, yield_share_holders)
        if any(s < 0 for s in shares) or sum(shares) != BASIS_POINT_MAX:
            raise InvalidYieldDistribution(details={"sum": sum(shares)})
        _check_fee(fee_bps)

        factory = FactoryConfig(
            authority=                 authority,
            base_reserve_bps=          base_reserve_bps,
            reserve_ratio_numerator=   reserve_ratio_numerator,
            reserve_ratio_denominator= reserve_ratio_denominator,
            yield_share_protocol=      yield_share_protocol,
            yield_share_issuer=        yield_share_issuer,
            yield_share_holders=       yield_share_holders,
            fee_bps=                   fee_bps,
        )
        with self.host.transaction("initialize_factory"):
            self.host.state.factory = factory
            self.host.emit(EventType.FACTORY_INITIALIZED, factory.to_dict())

        logger.info("factory initialized by %s", authority)
        return factory

    def register_bond_mapping(
        self,
        authority:       str,
        currency:        str,
        bond_instrument: str,
        rating:          int,
        bond_decimals:   int = BOND_DECIMALS,
    ) -> BondMapping:
        factory = self._require_authority(authority)
        check_width(bond_decimals, U8)
        mapping = BondMapping(
            currency=        currency,
            bond_instrument= bond_instrument,
            rating=          rating,
            bond_decimals=   bond_decimals,
        )

        with self.host.transaction("register_bond_mapping"):
            factory.add_mapping(mapping)
            self.host.emit(EventType.BOND_MAPPING_REGISTERED, mapping.to_dict())

        logger.info("bond mapping %s -> %s (rating %d)", currency, bond_instrument, rating)
        return mapping

    def update_protocol_fee(self, authority: str, fee_bps: int) -> None:
        factory = self._require_authority(authority)
        _check_fee(fee_bps)

        with self.host.transaction("update_protocol_fee"):
            previous, factory.fee_bps = factory.fee_bps, fee_bps
            self.host.emit(
                EventType.PROTOCOL_FEE_UPDATED,
                {"previous_fee_bps": previous, "fee_bps": fee_bps},
            )
        logger.info("protocol fee %d -> %d bps", previous, fee_bps)

    def add_fee_operator(self, authority: str, operator: str) -> None:
        self._require_authority(authority)
        with self.host.transaction("add_fee_operator"):
            factory = self.host.factory
            if operator not in factory.fee_operators:
                factory.fee_operators.append(operator)

    def remove_fee_operator(self, authority: str, operator: str) -> None:
        self._require_authority(authority)
        with self.host.transaction("remove_fee_operator"):
            factory = self.host.factory
            if operator in factory.fee_operators:
                factory.fee_operators.remove(operator)

    # ── Coins ─────────────────────────────────────────────────

    def create_sovereign_coin(
        self,
        creator:  str,
        name:     str,
        symbol:   str,
        currency: str,
        decimals: int,
        uri:      str = "",
    ) -> SovereignCoinState:
        """
        Register a new sovereign coin against the active bond mapping for
        its currency. The required reserve percentage is fixed here, from
        the mapping's rating and the factory's ratio, and never recomputed.
        """
        factory = self.host.factory
        if not fits_bytes(name, MAX_NAME_BYTES):
            raise NameTooLong(details={"name": name})
        if not fits_bytes(symbol, MAX_SYMBOL_BYTES):
            raise SymbolTooLong(details={"symbol": symbol})
        if uri and not fits_bytes(uri, MAX_URI_BYTES):
            raise UriTooLong(details={"bytes": len(uri.encode("utf-8"))})
        check_width(decimals, U8)

        mapping = factory.mapping_for(currency)
        reserve_bps = required_reserve_bps(
            factory.base_reserve_bps,
            mapping.rating,
            factory.reserve_ratio_numerator,
            factory.reserve_ratio_denominator,
        )
        coin = SovereignCoinState(
            symbol=               symbol,
            name=                 name,
            creator=              creator,
            currency=             currency,
            bond_instrument=      mapping.bond_instrument,
            rating=               mapping.rating,
            decimals=             decimals,
            required_reserve_bps= reserve_bps,
            uri=                  uri,
            bond_decimals=        mapping.bond_decimals,
        )

        with self.host.transaction("create_sovereign_coin"):
            before = factory.total_sovereign_coins
            self.host.add_coin(coin)
            factory.total_sovereign_coins = safe_add(before, 1)
            if factory.total_sovereign_coins != before + 1:
                raise StateUpdateFailed(details={"total_sovereign_coins": before})
            self.host.emit(EventType.SOVEREIGN_COIN_CREATED, coin.to_dict())

        logger.info(
            "sovereign coin %s created for %s (rating %d, reserve %d bps)",
            symbol, currency, mapping.rating, reserve_bps,
        )
        return coin

    # ── Protocol vault ────────────────────────────────────────

    def withdraw_from_protocol(
        self,
        operator:    str,
        destination: str,
        amount:      int,
    ) -> None:
        factory = self.host.factory
        if operator != factory.authority and operator not in factory.fee_operators:
            raise Unauthorized(details={"caller": operator})
        if amount == 0:
            raise InvalidAmount(details={"amount": amount})

        with self.host.transaction("withdraw_from_protocol"):
            self.host.ledger.move(
                Accounts.PROTOCOL_VAULT, destination, SETTLEMENT_ASSET, amount
            )
            self.host.emit(
                EventType.PROTOCOL_WITHDRAWAL,
                {"operator": operator, "destination": destination, "amount": amount},
            )
        logger.info("protocol withdrawal of %d to %s by %s", amount, destination, operator)

    # ── Internal ──────────────────────────────────────────────

    def _require_authority(self, caller: Optional[str]) -> FactoryConfig:
        factory = self.host.factory
        if caller != factory.authority:
            raise Unauthorized(details={"caller": caller})
        return factory


def _check_fee(fee_bps: int) -> None:
    if fee_bps < 0 or fee_bps > BASIS_POINT_MAX:
        raise InvalidFeeBasisPoints(details={"fee_bps": fee_bps})
