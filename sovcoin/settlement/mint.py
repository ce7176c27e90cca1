"""
sovcoin/settlement/mint.py

Mint Settlement — two-phase quote/commit.

    Quoted ──commit()──▶ Committed      (terminal)
       │
       └──── TTL ──────▶ Expired        (terminal, no side effects)

quote() computes everything and moves nothing. commit() consumes the plan
and applies it, in this order:

  1. Take the plan (PlanNotFound if none)
  2. Fail closed if expired (MintStateExpired)
  3. fee      requester → protocol vault
  4. reserve  requester → liquid reserve
  5. bond     requester → bond-purchase account, then issuer.purchase()
  6. mint sovereign_amount_to_mint to requester
  7. Coin aggregates += plan (safe_math)
  8. Re-read requester balance; must equal before + minted exactly

Any failure rolls the whole commit back via host.transaction(), including
the plan removal in step 1, so an expired plan stays reclaimable.
"""

import logging

from sovcoin.collaborators.bonds import BondIssuer
from sovcoin.collaborators.converter import CurrencyConverter
from sovcoin.core.exceptions import (
    BondPurchaseFailed,
    InvalidAmount,
    MintStateExpired,
    MintVerificationFailed,
)
from sovcoin.core.models import SETTLEMENT_ASSET, Accounts, MintPlan
from sovcoin.ledger.journal import EventType
from sovcoin.math.fee import extract_fee
from sovcoin.math.reserve import split_reserve
from sovcoin.math.safe_math import check_width, safe_add
from sovcoin.runtime.host import SettlementHost

logger = logging.getLogger(__name__)


class MintSettlement:
    def __init__(
        self,
        host:      SettlementHost,
        converter: CurrencyConverter,
        issuer:    BondIssuer,
    ):
        self.host      = host
        self.converter = converter
        self.issuer    = issuer

    def quote(self, requester: str, symbol: str, amount: int) -> MintPlan:
        """
        Price a mint of ``amount`` settlement asset and store the plan.

        Raises:
            InvalidAmount:            amount == 0
            InvalidCalculatedAmount:  reserve or bond side would be zero
            InvalidPriceFeed:         converter cannot price the currency
            PlanAlreadyExists:        a live mint plan already exists
        """
        check_width(amount)
        if amount == 0:
            raise InvalidAmount(details={"amount": amount})

        factory = self.host.factory
        coin = self.host.coin(symbol)

        net, fee = extract_fee(amount, factory.fee_bps)
        reserve_amount, bond_amount = split_reserve(net, coin.required_reserve_bps)
        sovereign_amount = self.converter.to_target(amount, coin.currency, coin.decimals)
        if sovereign_amount == 0:
            raise InvalidAmount("Amount converts to zero sovereign units",
                                details={"amount": amount, "currency": coin.currency})

        plan = MintPlan(
            requester=                requester,
            symbol=                   symbol,
            created_at=               self.host.now(),
            ttl=                      self.host.plan_ttl,
            input_amount=             amount,
            protocol_fee=             fee,
            reserve_amount=           reserve_amount,
            bond_amount=              bond_amount,
            sovereign_amount_to_mint= sovereign_amount,
        )

        with self.host.transaction("mint_quote"):
            self.host.put_mint_plan(plan)
            self.host.emit(EventType.MINT_QUOTED, plan.to_dict())

        logger.debug("mint quoted for %s/%s: %s", requester, symbol, plan.to_dict())
        return plan

    def commit(self, requester: str, symbol: str) -> MintPlan:
        """Execute and consume the requester's mint plan. Returns the plan applied."""
        ledger = self.host.ledger

        with self.host.transaction("mint_commit"):
            plan = self.host.take_mint_plan(requester, symbol)
            now = self.host.now()
            if plan.is_expired(now):
                raise MintStateExpired(
                    details={"expires_at": plan.expires_at, "now": now}
                )

            coin = self.host.coin(symbol)
            asset = coin.symbol
            previous_balance = ledger.balance(requester, asset)

            if plan.protocol_fee > 0:
                ledger.move(requester, Accounts.PROTOCOL_VAULT, SETTLEMENT_ASSET, plan.protocol_fee)
            ledger.move(requester, Accounts.LIQUID_RESERVE, SETTLEMENT_ASSET, plan.reserve_amount)
            ledger.move(requester, Accounts.BOND_PURCHASE, SETTLEMENT_ASSET, plan.bond_amount)

            result = self.issuer.purchase(coin, plan.bond_amount)
            if not result.ok:
                raise BondPurchaseFailed(
                    details={"symbol": symbol, "amount": plan.bond_amount, "reason": result.detail}
                )

            ledger.mint_to(requester, asset, plan.sovereign_amount_to_mint)
            coin.apply_mint(plan)

            expected = safe_add(previous_balance, plan.sovereign_amount_to_mint)
            observed = ledger.balance(requester, asset)
            if observed != expected:
                raise MintVerificationFailed(
                    details={"expected": expected, "observed": observed}
                )

            self.host.emit(
                EventType.SOVEREIGN_COIN_MINTED,
                {
                    "payer":                 requester,
                    "symbol":                symbol,
                    "settlement_amount":     plan.input_amount,
                    "sovereign_coin_amount": plan.sovereign_amount_to_mint,
                    "reserve_amount":        plan.reserve_amount,
                    "bond_amount":           plan.bond_amount,
                    "protocol_fee":          plan.protocol_fee,
                    "timestamp":             now,
                },
            )

        logger.info(
            "minted %d %s for %s (reserve=%d bond=%d fee=%d)",
            plan.sovereign_amount_to_mint, symbol, requester,
            plan.reserve_amount, plan.bond_amount, plan.protocol_fee,
        )
        return plan
