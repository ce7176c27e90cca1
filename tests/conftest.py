"""
Shared fixtures for the sovcoin test suite.

The default deployment every settlement test starts from:

    authority        admin
    fee              50 bps
    base reserve     3000 bps, ratio 30/9 per rating notch
    USD  → UST       rating 1   (USDs requires 3000 bps)
    MXN  → CETES     rating 4   (MXNs requires 3010 bps), price 17.25
    alice            10_000_000 USDC
    issuer liquidity 5_000_000 USDC
"""

import logging

import pytest

from sovcoin.collaborators.converter import OracleCurrencyConverter, StaticPriceFeed
from sovcoin.core.crypto import JournalSigner
from sovcoin.core.models import SETTLEMENT_ASSET
from sovcoin.core.time import ManualClock
from sovcoin.ledger.journal import SettlementJournal
from sovcoin.logging import ROOT_LOGGER
from sovcoin.runtime.context import SettlementContext
from sovcoin.runtime.host import SettlementHost

AUTHORITY = "admin"
ALICE     = "alice"
BOB       = "bob"

ALICE_FUNDS     = 10_000_000
SELL_LIQUIDITY  = 5_000_000


@pytest.fixture(autouse=True)
def reset_sovcoin_logger():
    """configure_logging() detaches the package logger; undo it after each test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def signer():
    return JournalSigner.generate()


@pytest.fixture
def host(clock, signer):
    """Bare host: no factory, no coins."""
    return SettlementHost(clock=clock, journal=SettlementJournal(signer=signer))


@pytest.fixture
def converter():
    return OracleCurrencyConverter({"MXN": StaticPriceFeed("17.25")})


@pytest.fixture
def bare_context(host, converter):
    """Context whose factory has not been initialized yet."""
    return SettlementContext.create(host, converter)


@pytest.fixture
def context(bare_context):
    """Initialized factory with USDs and MXNs coins and a funded requester."""
    admin = bare_context.admin
    admin.initialize_factory(
        authority=                 AUTHORITY,
        base_reserve_bps=          3000,
        reserve_ratio_numerator=   30,
        reserve_ratio_denominator= 9,
        yield_share_protocol=      2000,
        yield_share_issuer=        3000,
        yield_share_holders=       5000,
        fee_bps=                   50,
    )
    admin.register_bond_mapping(AUTHORITY, "USD", "UST", 1)
    admin.register_bond_mapping(AUTHORITY, "MXN", "CETES", 4)
    admin.create_sovereign_coin(AUTHORITY, "Sovereign Dollar", "USDs", "USD", 6)
    admin.create_sovereign_coin(AUTHORITY, "Sovereign Peso", "MXNs", "MXN", 6)

    bare_context.host.ledger.mint_to(ALICE, SETTLEMENT_ASSET, ALICE_FUNDS)
    bare_context.issuer.fund_sell_liquidity(SELL_LIQUIDITY)
    return bare_context


@pytest.fixture
def minted(context):
    """alice has minted 1_000_000 USDC worth of USDs."""
    context.mint.quote(ALICE, "USDs", 1_000_000)
    context.mint.commit(ALICE, "USDs")
    return context
