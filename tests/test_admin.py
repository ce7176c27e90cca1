"""
tests/test_admin.py

Factory administration instructions.

Laws tested:
    The factory is initialized exactly once, with validated parameters
    Only the authority registers mappings and changes the fee
    At most six bond mappings exist
    A coin's reserve requirement is fixed at creation from its mapping
    A failed instruction leaves no state change and no journal entry
    Protocol withdrawals require the authority or a fee operator
"""

import pytest

from sovcoin.core.exceptions import (
    CoinAlreadyExists,
    FactoryAlreadyInitialized,
    FactoryNotInitialized,
    FiatCurrencyTooLong,
    InsufficientFunds,
    InvalidAmount,
    InvalidBondRating,
    InvalidBondReserveRatio,
    InvalidFeeBasisPoints,
    InvalidReservePercentage,
    InvalidYieldDistribution,
    MathOverflow,
    MaxBondMappingsReached,
    NameTooLong,
    NoBondMappingForCurrency,
    SymbolTooLong,
    Unauthorized,
    UriTooLong,
)
from sovcoin.core.models import SETTLEMENT_ASSET, Accounts
from sovcoin.ledger.journal import EventType

AUTHORITY = "admin"

FACTORY_PARAMS = dict(
    authority=                 AUTHORITY,
    base_reserve_bps=          3000,
    reserve_ratio_numerator=   30,
    reserve_ratio_denominator= 9,
    yield_share_protocol=      2000,
    yield_share_issuer=        3000,
    yield_share_holders=       5000,
    fee_bps=                   50,
)


def event_types(context):
    return [e.event_type for e in context.host.journal.entries()]


# ─────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────

class TestInitializeFactory:

    def test_initialize(self, bare_context):
        factory = bare_context.admin.initialize_factory(**FACTORY_PARAMS)
        assert bare_context.host.factory is factory
        assert factory.fee_bps == 50
        assert factory.total_sovereign_coins == 0
        assert event_types(bare_context) == [EventType.FACTORY_INITIALIZED]

    def test_initialize_once(self, context):
        with pytest.raises(FactoryAlreadyInitialized):
            context.admin.initialize_factory(**FACTORY_PARAMS)

    @pytest.mark.parametrize(
        "override,error",
        [
            ({"base_reserve_bps": 10_001},         InvalidReservePercentage),
            ({"reserve_ratio_denominator": 0},     InvalidBondReserveRatio),
            ({"yield_share_holders": 4999},        InvalidYieldDistribution),
            ({"fee_bps": 10_001},                  InvalidFeeBasisPoints),
        ],
    )
    def test_rejects_bad_parameters(self, bare_context, override, error):
        with pytest.raises(error):
            bare_context.admin.initialize_factory(**{**FACTORY_PARAMS, **override})
        assert bare_context.host.state.factory is None
        assert len(bare_context.host.journal) == 0

    def test_instructions_require_factory(self, bare_context):
        with pytest.raises(FactoryNotInitialized):
            bare_context.admin.register_bond_mapping(AUTHORITY, "USD", "UST", 1)
        with pytest.raises(FactoryNotInitialized):
            bare_context.admin.create_sovereign_coin(AUTHORITY, "Dollar", "USDs", "USD", 6)


# ─────────────────────────────────────────────────────────────
# Bond mappings and fee
# ─────────────────────────────────────────────────────────────

class TestMappings:

    def test_registered_mappings(self, context):
        mapping = context.host.factory.mapping_for("MXN")
        assert (mapping.bond_instrument, mapping.rating) == ("CETES", 4)

    def test_only_authority(self, context):
        with pytest.raises(Unauthorized):
            context.admin.register_bond_mapping("mallory", "BRL", "LTN", 5)

    @pytest.mark.parametrize("rating", [0, 11])
    def test_rating_range(self, context, rating):
        with pytest.raises(InvalidBondRating):
            context.admin.register_bond_mapping(AUTHORITY, "BRL", "LTN", rating)

    def test_currency_length(self, context):
        with pytest.raises(FiatCurrencyTooLong):
            context.admin.register_bond_mapping(AUTHORITY, "TOOLONGCUR", "X", 1)

    def test_bond_decimals_flow_to_coin(self, context):
        context.admin.register_bond_mapping(AUTHORITY, "BRL", "LTN", 5, bond_decimals=2)
        coin = context.admin.create_sovereign_coin(AUTHORITY, "Sovereign Real", "BRLs", "BRL", 6)
        assert coin.bond_decimals == 2
        assert context.host.coin("MXNs").bond_decimals == 6
        assert context.host.journal.last_entry.payload["bond_decimals"] == "2"

    def test_bond_decimals_width(self, context):
        with pytest.raises(MathOverflow):
            context.admin.register_bond_mapping(AUTHORITY, "BRL", "LTN", 5, bond_decimals=256)

    def test_mapping_limit(self, context):
        for currency in ("BRL", "COP", "CLP", "PEN"):
            context.admin.register_bond_mapping(AUTHORITY, currency, f"{currency}-B", 5)
        before = len(context.host.journal)
        with pytest.raises(MaxBondMappingsReached):
            context.admin.register_bond_mapping(AUTHORITY, "ARS", "BONAR", 9)
        assert len(context.host.factory.bond_mappings) == 6
        assert len(context.host.journal) == before

    def test_update_protocol_fee(self, context):
        context.admin.update_protocol_fee(AUTHORITY, 75)
        assert context.host.factory.fee_bps == 75
        last = context.host.journal.last_entry
        assert last.event_type == EventType.PROTOCOL_FEE_UPDATED
        assert last.payload == {"previous_fee_bps": "50", "fee_bps": "75"}

    def test_update_protocol_fee_checks(self, context):
        with pytest.raises(Unauthorized):
            context.admin.update_protocol_fee("mallory", 10)
        with pytest.raises(InvalidFeeBasisPoints):
            context.admin.update_protocol_fee(AUTHORITY, 10_001)
        assert context.host.factory.fee_bps == 50


# ─────────────────────────────────────────────────────────────
# Coins
# ─────────────────────────────────────────────────────────────

class TestCreateCoin:

    def test_reserve_requirement_fixed_at_creation(self, context):
        assert context.host.coin("USDs").required_reserve_bps == 3000
        assert context.host.coin("MXNs").required_reserve_bps == 3010
        assert context.host.factory.total_sovereign_coins == 2

    def test_coin_carries_mapping(self, context):
        coin = context.host.coin("MXNs")
        assert (coin.currency, coin.bond_instrument, coin.rating) == ("MXN", "CETES", 4)
        assert coin.total_supply == 0

    def test_creation_event(self, context):
        created = [
            e for e in context.host.journal.entries()
            if e.event_type == EventType.SOVEREIGN_COIN_CREATED
        ]
        assert [e.payload["symbol"] for e in created] == ["USDs", "MXNs"]
        assert created[1].payload["required_reserve_bps"] == "3010"

    def test_duplicate_symbol_rolls_back(self, context):
        before = len(context.host.journal)
        with pytest.raises(CoinAlreadyExists):
            context.admin.create_sovereign_coin(AUTHORITY, "Again", "USDs", "USD", 6)
        assert context.host.factory.total_sovereign_coins == 2
        assert len(context.host.journal) == before

    def test_no_mapping(self, context):
        with pytest.raises(NoBondMappingForCurrency):
            context.admin.create_sovereign_coin(AUTHORITY, "Real", "BRLs", "BRL", 6)

    @pytest.mark.parametrize(
        "kwargs,error",
        [
            ({"name": "N" * 33},        NameTooLong),
            ({"name": ""},              NameTooLong),
            ({"symbol": "LONGSYMB1"},   SymbolTooLong),
            ({"uri": "u" * 201},        UriTooLong),
            ({"decimals": 256},         MathOverflow),
        ],
    )
    def test_field_limits(self, context, kwargs, error):
        args = {
            "creator":  AUTHORITY,
            "name":     "Sovereign Euro",
            "symbol":   "EURs",
            "currency": "USD",
            "decimals": 6,
        }
        args.update(kwargs)
        with pytest.raises(error):
            context.admin.create_sovereign_coin(**args)
        assert "EURs" not in context.host.state.coins

    def test_multibyte_name_counts_bytes(self, context):
        with pytest.raises(NameTooLong):
            context.admin.create_sovereign_coin(AUTHORITY, "ñ" * 17, "EURs", "USD", 6)


# ─────────────────────────────────────────────────────────────
# Protocol vault
# ─────────────────────────────────────────────────────────────

class TestWithdrawal:

    def test_authority_withdraws_fees(self, minted):
        vault = minted.host.ledger.balance(Accounts.PROTOCOL_VAULT, SETTLEMENT_ASSET)
        assert vault == 5_000

        minted.admin.withdraw_from_protocol(AUTHORITY, "treasury", 2_000)
        assert minted.host.ledger.balance(Accounts.PROTOCOL_VAULT, SETTLEMENT_ASSET) == 3_000
        assert minted.host.ledger.balance("treasury", SETTLEMENT_ASSET) == 2_000
        assert minted.host.journal.last_entry.event_type == EventType.PROTOCOL_WITHDRAWAL

    def test_fee_operator(self, minted):
        minted.admin.add_fee_operator(AUTHORITY, "ops")
        minted.admin.withdraw_from_protocol("ops", "ops-wallet", 1_000)
        assert minted.host.ledger.balance("ops-wallet", SETTLEMENT_ASSET) == 1_000

        minted.admin.remove_fee_operator(AUTHORITY, "ops")
        with pytest.raises(Unauthorized):
            minted.admin.withdraw_from_protocol("ops", "ops-wallet", 1_000)

    def test_only_authority_manages_operators(self, minted):
        with pytest.raises(Unauthorized):
            minted.admin.add_fee_operator("mallory", "mallory")

    def test_stranger_rejected(self, minted):
        with pytest.raises(Unauthorized):
            minted.admin.withdraw_from_protocol("mallory", "mallory", 1)

    def test_zero_amount(self, minted):
        with pytest.raises(InvalidAmount):
            minted.admin.withdraw_from_protocol(AUTHORITY, "treasury", 0)

    def test_cannot_overdraw(self, minted):
        before = len(minted.host.journal)
        with pytest.raises(InsufficientFunds):
            minted.admin.withdraw_from_protocol(AUTHORITY, "treasury", 5_001)
        assert minted.host.ledger.balance(Accounts.PROTOCOL_VAULT, SETTLEMENT_ASSET) == 5_000
        assert len(minted.host.journal) == before
