"""
sovcoin/settlement/executor.py

Redemption Executor — consumes a RedeemPlan and pays the requester out.

Execution variants, gated by the plan's redemption_path:

    execute_reserve()   ReserveOnly, ReserveAndProtocol
    execute_bond()      PendingBondLiquidation: instant, then deferred claim
    execute_deferred()  PendingBondLiquidation: straight to deferred claim
    execute()           any path; dispatches to the matching variant

Every variant, in order:

  1. Take the plan; fail closed if expired (RedeemStateExpired)
  2. Burn sovereign_amount from the requester
  3. from_liquid_reserve  liquid reserve  → requester   (if > 0)
     from_protocol_vault  protocol vault  → requester   (if > 0)
  4. Path-specific step:
       ReserveAndProtocol  bond-equivalent units holding → protocol ownership
       bond paths          liquidate_or_defer()
  5. Coin aggregates -= plan (safe_math)
  6. Verify: sovereign balance fell by exactly sovereign_amount,
     settlement balance did not fall

The instant → deferred cascade is liquidate_or_defer(): it returns a
BondSettlement value for both outcomes and never raises on a collaborator
failure. Only the caller turns "failed with nowhere to fall back to" into
an exception, which rolls back the burn in step 2 with everything else.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sovcoin.collaborators.bonds import BondIssuer, ClaimAccounts
from sovcoin.collaborators.converter import CurrencyConverter
from sovcoin.core.exceptions import (
    InsufficientRedemptionPayout,
    NFTRedemptionFailed,
    NFTTokenAccountRequired,
    RedeemStateExpired,
    RedemptionPathMismatch,
    RedemptionVerificationFailed,
)
from sovcoin.core.models import (
    SETTLEMENT_ASSET,
    Accounts,
    ClaimReceipt,
    RedeemPlan,
    RedemptionPath,
    SovereignCoinState,
)
from sovcoin.ledger.journal import EventType
from sovcoin.math.safe_math import safe_add, safe_sub
from sovcoin.runtime.host import SettlementHost

logger = logging.getLogger(__name__)

RESERVE_PATHS = (RedemptionPath.RESERVE_ONLY, RedemptionPath.RESERVE_AND_PROTOCOL)


@dataclass(frozen=True)
class BondSettlement:
    """
    Outcome of settling the bond-liquidation portion of a redemption.

    path is INSTANT_BOND_REDEMPTION or NFT_BOND_REDEMPTION on success and
    None when instant liquidation failed and no fallback was possible.
    """
    path:     Optional[RedemptionPath]
    received: int = 0
    claim:    Optional[ClaimReceipt] = None
    failure:  str = ""

    @property
    def ok(self) -> bool:
        return self.path is not None


@dataclass(frozen=True)
class RedemptionResult:
    plan:          RedeemPlan
    path:          RedemptionPath
    paid_out:      int
    bond_received: int = 0
    claim:         Optional[ClaimReceipt] = None


class RedemptionExecutor:
    def __init__(
        self,
        host:      SettlementHost,
        converter: CurrencyConverter,
        issuer:    BondIssuer,
    ):
        self.host      = host
        self.converter = converter
        self.issuer    = issuer

    # ── Entry points ──────────────────────────────────────────

    def execute(
        self,
        requester:      str,
        symbol:         str,
        claim_accounts: Optional[ClaimAccounts] = None,
    ) -> RedemptionResult:
        """Combined entry point: runs whichever variant the plan's path allows."""
        plan = self.host.redeem_plan(requester, symbol)
        if plan is not None and plan.redemption_path in RESERVE_PATHS:
            return self.execute_reserve(requester, symbol)
        return self.execute_bond(requester, symbol, claim_accounts)

    def execute_reserve(self, requester: str, symbol: str) -> RedemptionResult:
        return self._run(requester, symbol, RESERVE_PATHS, self._settle_reserve_path)

    def execute_bond(
        self,
        requester:      str,
        symbol:         str,
        claim_accounts: Optional[ClaimAccounts] = None,
    ) -> RedemptionResult:
        """
        Instant liquidation with deferred-claim fallback.

        Raises:
            NFTTokenAccountRequired: instant liquidation failed and no
                claim_accounts were supplied. Nothing is applied; retry
                via execute_deferred() with claim accounts attached.
        """
        def settle(coin, plan):
            return self.liquidate_or_defer(coin, plan, claim_accounts)
        return self._run(
            requester, symbol, (RedemptionPath.PENDING_BOND_LIQUIDATION,), settle
        )

    def execute_deferred(
        self,
        requester:      str,
        symbol:         str,
        claim_accounts: ClaimAccounts,
    ) -> RedemptionResult:
        """Fallback entry point: skip the instant attempt, issue a claim."""
        if claim_accounts is None:
            raise NFTTokenAccountRequired(details={"requester": requester, "symbol": symbol})

        def settle(coin, plan):
            return self._defer(coin, plan, claim_accounts)
        return self._run(
            requester, symbol, (RedemptionPath.PENDING_BOND_LIQUIDATION,), settle
        )

    # ── Bond portion ──────────────────────────────────────────

    def liquidate_or_defer(
        self,
        coin:           SovereignCoinState,
        plan:           RedeemPlan,
        claim_accounts: Optional[ClaimAccounts],
    ) -> BondSettlement:
        """Try instant liquidation; on failure fall back to a deferred claim."""
        instant = self._attempt_instant(coin, plan)
        if instant.ok:
            return instant

        logger.warning(
            "instant liquidation failed for %s/%s (%s); %s",
            plan.requester, plan.symbol, instant.failure,
            "issuing deferred claim" if claim_accounts else "no claim accounts attached",
        )
        if claim_accounts is None:
            return instant
        return self._defer(coin, plan, claim_accounts)

    def _attempt_instant(self, coin: SovereignCoinState, plan: RedeemPlan) -> BondSettlement:
        """
        Liquidate plan.from_bond_liquidation and forward what actually arrived.

        The received amount is the observed delta on the bond-purchase
        account, not the amount requested. A failed call is rolled back to
        the state before the call so the fallback starts clean.
        """
        ledger = self.host.ledger
        savepoint = ledger.snapshot()
        before = ledger.balance(Accounts.BOND_PURCHASE, SETTLEMENT_ASSET)

        result = self.issuer.instant_liquidate(coin, plan.from_bond_liquidation)
        if not result.ok:
            ledger.restore(savepoint)
            return BondSettlement(path=None, failure=result.detail)

        after = ledger.balance(Accounts.BOND_PURCHASE, SETTLEMENT_ASSET)
        if after <= before:
            ledger.restore(savepoint)
            return BondSettlement(path=None, failure="no settlement asset received")

        received = safe_sub(after, before)
        ledger.move(Accounts.BOND_PURCHASE, plan.requester, SETTLEMENT_ASSET, received)
        if received != plan.from_bond_liquidation:
            logger.info(
                "bond liquidation for %s returned %d of %d requested",
                plan.symbol, received, plan.from_bond_liquidation,
            )
        return BondSettlement(path=RedemptionPath.INSTANT_BOND_REDEMPTION, received=received)

    def _defer(
        self,
        coin:           SovereignCoinState,
        plan:           RedeemPlan,
        claim_accounts: ClaimAccounts,
    ) -> BondSettlement:
        result = self.issuer.issue_deferred_claim(
            coin, plan.from_bond_liquidation, plan.requester, claim_accounts
        )
        if not result.ok:
            raise NFTRedemptionFailed(details={"symbol": plan.symbol, "reason": result.detail})
        return BondSettlement(path=RedemptionPath.NFT_BOND_REDEMPTION, claim=result.receipt)

    # ── Reserve portion ───────────────────────────────────────

    def _settle_reserve_path(self, coin: SovereignCoinState, plan: RedeemPlan) -> BondSettlement:
        if plan.redemption_path is RedemptionPath.RESERVE_AND_PROTOCOL:
            units = self.converter.bond_equivalent(
                plan.from_protocol_vault, coin.currency, coin.bond_decimals
            )
            if units > 0:
                self.host.ledger.move(
                    Accounts.bond_holding(coin.symbol),
                    Accounts.bond_ownership(coin.symbol),
                    coin.bond_instrument,
                    units,
                )
        return BondSettlement(path=plan.redemption_path)

    # ── Shared skeleton ───────────────────────────────────────

    def _run(self, requester, symbol, allowed_paths, settle) -> RedemptionResult:
        ledger = self.host.ledger

        with self.host.transaction("redeem_execute"):
            plan = self.host.take_redeem_plan(requester, symbol)
            now = self.host.now()
            if plan.is_expired(now):
                raise RedeemStateExpired(details={"expires_at": plan.expires_at, "now": now})
            if plan.redemption_path not in allowed_paths:
                raise RedemptionPathMismatch(
                    details={
                        "path":    plan.redemption_path.value,
                        "allowed": ",".join(p.value for p in allowed_paths),
                    }
                )

            coin = self.host.coin(symbol)
            sovereign_before  = ledger.balance(requester, coin.symbol)
            settlement_before = ledger.balance(requester, SETTLEMENT_ASSET)

            ledger.burn_from(requester, coin.symbol, plan.sovereign_amount)
            if plan.from_liquid_reserve > 0:
                ledger.move(Accounts.LIQUID_RESERVE, requester, SETTLEMENT_ASSET, plan.from_liquid_reserve)
            if plan.from_protocol_vault > 0:
                ledger.move(Accounts.PROTOCOL_VAULT, requester, SETTLEMENT_ASSET, plan.from_protocol_vault)

            outcome = settle(coin, plan)
            if not outcome.ok:
                raise NFTTokenAccountRequired(
                    details={"symbol": symbol, "reason": outcome.failure}
                )

            # a vault draw-down only moves bond ownership; collateral is unchanged
            coin.apply_redemption(plan, plan.from_bond_liquidation)

            self._verify(requester, coin, plan, sovereign_before, settlement_before)

            paid_out = safe_add(
                safe_add(plan.from_liquid_reserve, plan.from_protocol_vault),
                outcome.received,
            )
            payload = {
                "payer":                 requester,
                "symbol":                symbol,
                "sovereign_amount":      plan.sovereign_amount,
                "settlement_amount":     plan.settlement_amount,
                "from_liquid_reserve":   plan.from_liquid_reserve,
                "from_protocol_vault":   plan.from_protocol_vault,
                "from_bond_liquidation": plan.from_bond_liquidation,
                "bond_received":         outcome.received,
                "protocol_fee":          plan.protocol_fee,
                "redemption_path":       outcome.path,
                "timestamp":             now,
            }
            if outcome.claim is not None:
                payload["claim_id"] = outcome.claim.claim_id
            self.host.emit(EventType.SOVEREIGN_COIN_REDEEMED, payload)

        logger.info(
            "redeemed %d %s for %s via %s (paid out %d)",
            plan.sovereign_amount, symbol, requester, outcome.path.value, paid_out,
        )
        return RedemptionResult(
            plan=          plan.with_path(outcome.path),
            path=          outcome.path,
            paid_out=      paid_out,
            bond_received= outcome.received,
            claim=         outcome.claim,
        )

    def _verify(self, requester, coin, plan, sovereign_before, settlement_before) -> None:
        ledger = self.host.ledger
        expected = safe_sub(sovereign_before, plan.sovereign_amount)
        observed = ledger.balance(requester, coin.symbol)
        if observed != expected:
            raise RedemptionVerificationFailed(
                details={"expected": expected, "observed": observed}
            )
        settlement_after = ledger.balance(requester, SETTLEMENT_ASSET)
        if settlement_after < settlement_before:
            raise InsufficientRedemptionPayout(
                details={"before": settlement_before, "after": settlement_after}
            )
