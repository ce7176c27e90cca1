"""
Balance ledger — the host's token transfer primitive.

Balances are keyed by (account, asset). Three mutations exist:

    move(src, dst, asset, amount)   strict: src must cover amount
    mint_to(account, asset, amount)
    burn_from(account, asset, amount)

Every mutation is all-or-nothing on its own; multi-step atomicity is the
SettlementHost's job (snapshot()/restore()).
"""

import logging
from typing import Dict, Optional, Tuple

from sovcoin.core.exceptions import InsufficientFunds, InvalidAmount
from sovcoin.math.safe_math import U64, check_width, safe_add, safe_sub

logger = logging.getLogger(__name__)

BalanceKey = Tuple[str, str]


class BalanceLedger:
    """In-memory token balances with strict u64 checks."""

    def __init__(self, balances: Optional[Dict[BalanceKey, int]] = None):
        self._balances: Dict[BalanceKey, int] = dict(balances or {})
        self._supply:   Dict[str, int] = {}
        for (_, asset), amount in self._balances.items():
            self._supply[asset] = self._supply.get(asset, 0) + amount

    # ── Reads ─────────────────────────────────────────────────

    def balance(self, account: str, asset: str) -> int:
        return self._balances.get((account, asset), 0)

    def supply(self, asset: str) -> int:
        return self._supply.get(asset, 0)

    # ── Mutations ─────────────────────────────────────────────

    def move(self, src: str, dst: str, asset: str, amount: int) -> None:
        self._check_amount(amount)
        available = self.balance(src, asset)
        if available < amount:
            raise InsufficientFunds(
                details={
                    "account":   src,
                    "asset":     asset,
                    "available": available,
                    "requested": amount,
                }
            )
        new_dst = safe_add(self.balance(dst, asset), amount, U64)
        self._balances[(src, asset)] = safe_sub(available, amount, U64)
        self._balances[(dst, asset)] = new_dst
        logger.debug("move %d %s %s -> %s", amount, asset, src, dst)

    def mint_to(self, account: str, asset: str, amount: int) -> None:
        self._check_amount(amount)
        new_balance = safe_add(self.balance(account, asset), amount, U64)
        new_supply = safe_add(self.supply(asset), amount, U64)
        self._balances[(account, asset)] = new_balance
        self._supply[asset] = new_supply
        logger.debug("mint %d %s -> %s", amount, asset, account)

    def burn_from(self, account: str, asset: str, amount: int) -> None:
        self._check_amount(amount)
        available = self.balance(account, asset)
        if available < amount:
            raise InsufficientFunds(
                details={
                    "account":   account,
                    "asset":     asset,
                    "available": available,
                    "requested": amount,
                }
            )
        self._balances[(account, asset)] = safe_sub(available, amount, U64)
        self._supply[asset] = safe_sub(self.supply(asset), amount, U64)
        logger.debug("burn %d %s from %s", amount, asset, account)

    # ── Transactions ──────────────────────────────────────────

    def snapshot(self) -> Tuple[Dict[BalanceKey, int], Dict[str, int]]:
        return dict(self._balances), dict(self._supply)

    def restore(self, snapshot: Tuple[Dict[BalanceKey, int], Dict[str, int]]) -> None:
        balances, supply = snapshot
        self._balances = dict(balances)
        self._supply = dict(supply)

    @staticmethod
    def _check_amount(amount: int) -> None:
        check_width(amount, U64)
        if amount == 0:
            raise InvalidAmount(details={"amount": amount})
