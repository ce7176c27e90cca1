"""
sovcoin/settlement/redemption.py

Redemption Planner — multi-tier sourcing waterfall.

Waterfall, in strict priority order:

    1. from_liquid_reserve   = min(settlement_amount, user_share)
    2. from_protocol_vault   = min(remainder_1, protocol_vault_balance)
    3. from_bond_liquidation = remainder_2

    user_share = floor(requester_balance * coin.liquid_reserve_amount
                       / coin.total_supply)

Classification:
    remainder_2 == 0 and vault == 0  → ReserveOnly
    remainder_2 == 0 and vault  > 0  → ReserveAndProtocol
    remainder_2  > 0                 → PendingBondLiquidation

Whether a pending bond liquidation ends up instant or deferred is decided
by the executor, not here.
"""

import logging
from dataclasses import dataclass

from sovcoin.collaborators.converter import CurrencyConverter
from sovcoin.core.exceptions import InsufficientBalance, InvalidAmount
from sovcoin.core.models import (
    SETTLEMENT_ASSET,
    Accounts,
    RedeemPlan,
    RedemptionPath,
)
from sovcoin.ledger.journal import EventType
from sovcoin.math.fee import extract_fee
from sovcoin.math.safe_math import Rounding, check_width, mul_div, safe_sub
from sovcoin.runtime.host import SettlementHost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Waterfall:
    from_liquid_reserve:   int
    from_protocol_vault:   int
    from_bond_liquidation: int

    @property
    def path(self) -> RedemptionPath:
        if self.from_bond_liquidation > 0:
            return RedemptionPath.PENDING_BOND_LIQUIDATION
        if self.from_protocol_vault > 0:
            return RedemptionPath.RESERVE_AND_PROTOCOL
        return RedemptionPath.RESERVE_ONLY


def compute_waterfall(settlement_amount: int, user_share: int, vault_balance: int) -> Waterfall:
    """Pure sourcing split. Components always sum to settlement_amount."""
    from_liquid_reserve = min(settlement_amount, user_share)
    remainder = safe_sub(settlement_amount, from_liquid_reserve)

    from_protocol_vault = min(remainder, vault_balance)
    remainder = safe_sub(remainder, from_protocol_vault)

    return Waterfall(
        from_liquid_reserve=   from_liquid_reserve,
        from_protocol_vault=   from_protocol_vault,
        from_bond_liquidation= remainder,
    )


def user_reserve_share(balance: int, liquid_reserve: int, total_supply: int) -> int:
    if total_supply == 0:
        return 0
    return mul_div(balance, liquid_reserve, total_supply, Rounding.DOWN)


class RedemptionPlanner:
    def __init__(self, host: SettlementHost, converter: CurrencyConverter):
        self.host      = host
        self.converter = converter

    def plan(self, requester: str, symbol: str, sovereign_amount: int) -> RedeemPlan:
        """
        Compute and store a redeem plan for ``sovereign_amount`` coins.

        Raises:
            InvalidAmount:        sovereign_amount == 0
            InsufficientBalance:  requester holds less than sovereign_amount
            InvalidPriceFeed:     converter cannot price the currency
            PlanAlreadyExists:    a live redeem plan already exists
        """
        check_width(sovereign_amount)
        if sovereign_amount == 0:
            raise InvalidAmount(details={"amount": sovereign_amount})

        factory = self.host.factory
        coin = self.host.coin(symbol)
        ledger = self.host.ledger

        balance = ledger.balance(requester, coin.symbol)
        if balance < sovereign_amount:
            raise InsufficientBalance(
                details={"balance": balance, "requested": sovereign_amount}
            )

        gross = self.converter.to_settlement(sovereign_amount, coin.currency, coin.decimals)
        settlement_amount, fee = extract_fee(gross, factory.fee_bps)

        share = user_reserve_share(balance, coin.liquid_reserve_amount, coin.total_supply)
        vault_balance = ledger.balance(Accounts.PROTOCOL_VAULT, SETTLEMENT_ASSET)
        waterfall = compute_waterfall(settlement_amount, share, vault_balance)

        plan = RedeemPlan(
            requester=             requester,
            symbol=                symbol,
            created_at=            self.host.now(),
            ttl=                   self.host.plan_ttl,
            sovereign_amount=      sovereign_amount,
            gross_settlement=      gross,
            settlement_amount=     settlement_amount,
            protocol_fee=          fee,
            from_liquid_reserve=   waterfall.from_liquid_reserve,
            from_protocol_vault=   waterfall.from_protocol_vault,
            from_bond_liquidation= waterfall.from_bond_liquidation,
            redemption_path=       waterfall.path,
        )

        with self.host.transaction("redeem_plan"):
            self.host.put_redeem_plan(plan)
            self.host.emit(EventType.REDEEM_PLANNED, plan.to_dict())

        logger.debug("redeem planned for %s/%s: %s", requester, symbol, plan.to_dict())
        return plan
