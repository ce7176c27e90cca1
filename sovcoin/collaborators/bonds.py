"""
Bond-issuance collaborator.

The settlement engine only sees three calls, each returning a
CollaboratorResult. A failed call is a value, never an exception: the
redemption executor decides what a failure means (fallback or abort).

    purchase(coin, amount)                             mint-time bond buy
    instant_liquidate(coin, amount)                    sell bonds now
    issue_deferred_claim(coin, amount, requester, claim_accounts)
                                                       claim receipt instead

SimulatedBondIssuer runs all three against the host's BalanceLedger so
that balance-delta verification sees real movements.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sovcoin.collaborators.converter import CurrencyConverter
from sovcoin.core.exceptions import InvalidFeeBasisPoints
from sovcoin.core.models import (
    SETTLEMENT_ASSET,
    Accounts,
    ClaimReceipt,
    SovereignCoinState,
)
from sovcoin.core.time import Clock
from sovcoin.ledger.balances import BalanceLedger
from sovcoin.math.safe_math import BASIS_POINT_MAX, percentage_of, safe_sub

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollaboratorResult:
    ok:      bool
    detail:  str = ""
    receipt: Optional[ClaimReceipt] = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class ClaimAccounts:
    """Accounts a caller attaches so a deferred claim can be delivered."""
    claim_account: str


class BondIssuer:
    def purchase(self, coin: SovereignCoinState, amount: int) -> CollaboratorResult:
        raise NotImplementedError

    def instant_liquidate(self, coin: SovereignCoinState, amount: int) -> CollaboratorResult:
        raise NotImplementedError

    def issue_deferred_claim(
        self,
        coin:           SovereignCoinState,
        amount:         int,
        requester:      str,
        claim_accounts: ClaimAccounts,
    ) -> CollaboratorResult:
        raise NotImplementedError


class SimulatedBondIssuer(BondIssuer):
    """
    In-memory bond issuer.

    Bond units are denominated in the coin's currency: buying with ``amount``
    of settlement asset credits converter.bond_equivalent(amount) units to
    the coin's bond-holding account. Instant liquidation pays out of a
    sell-liquidity pool, less ``haircut_bps``, into the bond-purchase
    account, which is the balance the executor differences.
    """

    TREASURY       = "bond_issuer:treasury"
    SELL_LIQUIDITY = "bond_issuer:sell_liquidity"

    def __init__(
        self,
        ledger:              BalanceLedger,
        converter:           CurrencyConverter,
        clock:               Optional[Clock] = None,
        haircut_bps:         int = 0,
        liquidity_available: bool = True,
    ):
        if haircut_bps < 0 or haircut_bps > BASIS_POINT_MAX:
            raise InvalidFeeBasisPoints(details={"haircut_bps": haircut_bps})
        self.ledger              = ledger
        self.converter           = converter
        self.clock               = clock or Clock()
        self.haircut_bps         = haircut_bps
        self.liquidity_available = liquidity_available
        self.calls: List[str] = []

    def fund_sell_liquidity(self, amount: int) -> None:
        self.ledger.mint_to(self.SELL_LIQUIDITY, SETTLEMENT_ASSET, amount)

    # ── BondIssuer ────────────────────────────────────────────

    def purchase(self, coin: SovereignCoinState, amount: int) -> CollaboratorResult:
        self.calls.append("purchase")
        if self.ledger.balance(Accounts.BOND_PURCHASE, SETTLEMENT_ASSET) < amount:
            return CollaboratorResult(False, "bond purchase account underfunded")
        units = self.converter.bond_equivalent(amount, coin.currency, coin.bond_decimals)
        if units == 0:
            return CollaboratorResult(False, "purchase too small for one bond unit")

        self.ledger.move(Accounts.BOND_PURCHASE, self.TREASURY, SETTLEMENT_ASSET, amount)
        self.ledger.mint_to(Accounts.bond_holding(coin.symbol), coin.bond_instrument, units)
        logger.debug("bond purchase %s: %d -> %d units", coin.symbol, amount, units)
        return CollaboratorResult(True, f"purchased {units} {coin.bond_instrument}")

    def instant_liquidate(self, coin: SovereignCoinState, amount: int) -> CollaboratorResult:
        self.calls.append("instant_liquidate")
        if not self.liquidity_available:
            return CollaboratorResult(False, "no instant liquidity")

        units = self.converter.bond_equivalent(amount, coin.currency, coin.bond_decimals)
        holding = Accounts.bond_holding(coin.symbol)
        if units == 0 or self.ledger.balance(holding, coin.bond_instrument) < units:
            return CollaboratorResult(False, "insufficient bond units")

        payout = safe_sub(amount, percentage_of(amount, self.haircut_bps))
        if payout == 0 or self.ledger.balance(self.SELL_LIQUIDITY, SETTLEMENT_ASSET) < payout:
            return CollaboratorResult(False, "sell liquidity exhausted")

        self.ledger.burn_from(holding, coin.bond_instrument, units)
        self.ledger.move(self.SELL_LIQUIDITY, Accounts.BOND_PURCHASE, SETTLEMENT_ASSET, payout)
        logger.debug("instant liquidation %s: %d units -> %d", coin.symbol, units, payout)
        return CollaboratorResult(True, f"liquidated {units} units for {payout}")

    def issue_deferred_claim(
        self,
        coin:           SovereignCoinState,
        amount:         int,
        requester:      str,
        claim_accounts: ClaimAccounts,
    ) -> CollaboratorResult:
        self.calls.append("issue_deferred_claim")
        receipt = ClaimReceipt(
            claim_id=  f"claim-{uuid.uuid4()}",
            requester= requester,
            symbol=    coin.symbol,
            amount=    amount,
            issued_at= self.clock.now(),
            account=   claim_accounts.claim_account,
        )
        self.ledger.mint_to(claim_accounts.claim_account, receipt.claim_id, 1)
        logger.debug("deferred claim %s for %d", receipt.claim_id, amount)
        return CollaboratorResult(True, "claim issued", receipt=receipt)
