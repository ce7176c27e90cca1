"""
sovcoin/runtime/host.py

Settlement Host — the atomic unit of work every transition runs in.

TRANSACTION CONTRACT:
    with host.transaction("mint_commit"):
        ... ledger moves, state mutations, host.emit(...) ...

    On normal exit:  buffered journal events are appended as one batch.
                     A failed append rolls the transaction back.
    On any raise:    ledger balances and state are restored to the
                     snapshot taken on entry, buffered events are dropped,
                     and the exception propagates unchanged.

    Nested transaction() calls join the outermost one.

PLAN STORE:
    Mint and redeem plans are keyed by (requester, symbol). One live plan
    per key per kind. An expired plan still occupying its key is reclaimed
    when a new plan is stored there.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sovcoin.core.exceptions import (
    CoinAlreadyExists,
    CoinNotFound,
    FactoryNotInitialized,
    PlanAlreadyExists,
    PlanNotFound,
    SovCoinError,
)
from sovcoin.core.models import (
    PLAN_TTL_SECONDS,
    FactoryConfig,
    MintPlan,
    PlanKey,
    RedeemPlan,
    SovereignCoinState,
)
from sovcoin.core.time import Clock
from sovcoin.ledger.balances import BalanceLedger
from sovcoin.ledger.journal import SettlementJournal

logger = logging.getLogger(__name__)


@dataclass
class StateStore:
    """Persisted settlement state: factory singleton, coins, pending plans."""
    factory:      Optional[FactoryConfig]          = None
    coins:        Dict[str, SovereignCoinState]    = field(default_factory=dict)
    mint_plans:   Dict[PlanKey, MintPlan]          = field(default_factory=dict)
    redeem_plans: Dict[PlanKey, RedeemPlan]        = field(default_factory=dict)


class SettlementHost:
    """
    Bundles the balance ledger, state store, clock and journal.

    Transitions are serialized by an internal re-entrant lock; the
    optimistic checks (TTL, strict balance moves, post-transition
    verification) still run inside each one.
    """

    def __init__(
        self,
        ledger:   Optional[BalanceLedger] = None,
        clock:    Optional[Clock] = None,
        journal:  Optional[SettlementJournal] = None,
        plan_ttl: int = PLAN_TTL_SECONDS,
    ):
        self.ledger   = ledger or BalanceLedger()
        self.clock    = clock or Clock()
        self.journal  = journal or SettlementJournal()
        self.plan_ttl = plan_ttl
        self.state    = StateStore()

        self._lock = threading.RLock()
        self._pending_events: Optional[List[Tuple[str, Dict[str, Any]]]] = None

    # ── Transactions ──────────────────────────────────────────

    @contextmanager
    def transaction(self, name: str = "transition") -> Iterator["SettlementHost"]:
        with self._lock:
            if self._pending_events is not None:
                yield self
                return

            ledger_snapshot = self.ledger.snapshot()
            state_snapshot  = copy.deepcopy(self.state)
            self._pending_events = []
            try:
                yield self
                events, self._pending_events = self._pending_events, None
                if events:
                    self.journal.emit_batch(events)
            except BaseException as exc:
                self.ledger.restore(ledger_snapshot)
                self.state = state_snapshot
                self._pending_events = None
                code = exc.code if isinstance(exc, SovCoinError) else type(exc).__name__
                logger.warning("%s rolled back: %s (%s)", name, code, exc)
                raise

    @property
    def in_transaction(self) -> bool:
        return self._pending_events is not None

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Queue an event for the current transaction, or emit immediately."""
        if self._pending_events is not None:
            self._pending_events.append((event_type, payload))
        else:
            self.journal.emit(event_type, payload)

    def now(self) -> int:
        return self.clock.now()

    # ── Factory / coins ───────────────────────────────────────

    @property
    def factory(self) -> FactoryConfig:
        if self.state.factory is None:
            raise FactoryNotInitialized()
        return self.state.factory

    def coin(self, symbol: str) -> SovereignCoinState:
        try:
            return self.state.coins[symbol]
        except KeyError:
            raise CoinNotFound(details={"symbol": symbol}) from None

    def add_coin(self, coin: SovereignCoinState) -> None:
        if coin.symbol in self.state.coins:
            raise CoinAlreadyExists(details={"symbol": coin.symbol})
        self.state.coins[coin.symbol] = coin

    # ── Plans ─────────────────────────────────────────────────

    def put_mint_plan(self, plan: MintPlan) -> None:
        self._put_plan(self.state.mint_plans, plan, "mint")

    def take_mint_plan(self, requester: str, symbol: str) -> MintPlan:
        return self._take_plan(self.state.mint_plans, (requester, symbol), "mint")

    def mint_plan(self, requester: str, symbol: str) -> Optional[MintPlan]:
        return self.state.mint_plans.get((requester, symbol))

    def put_redeem_plan(self, plan: RedeemPlan) -> None:
        self._put_plan(self.state.redeem_plans, plan, "redeem")

    def take_redeem_plan(self, requester: str, symbol: str) -> RedeemPlan:
        return self._take_plan(self.state.redeem_plans, (requester, symbol), "redeem")

    def redeem_plan(self, requester: str, symbol: str) -> Optional[RedeemPlan]:
        return self.state.redeem_plans.get((requester, symbol))

    def reclaim_expired_plans(self) -> int:
        """Drop every expired plan. Returns the number reclaimed."""
        now = self.now()
        reclaimed = 0
        with self.transaction("reclaim_expired_plans"):
            for store in (self.state.mint_plans, self.state.redeem_plans):
                for key in [k for k, p in store.items() if p.is_expired(now)]:
                    del store[key]
                    reclaimed += 1
        if reclaimed:
            logger.info("reclaimed %d expired plan(s)", reclaimed)
        return reclaimed

    def _put_plan(self, store: Dict[PlanKey, Any], plan, kind: str) -> None:
        existing = store.get(plan.key)
        if existing is not None:
            if not existing.is_expired(self.now()):
                raise PlanAlreadyExists(
                    details={"kind": kind, "requester": plan.requester, "symbol": plan.symbol}
                )
            logger.debug("reclaiming expired %s plan for %s", kind, plan.key)
        store[plan.key] = plan

    @staticmethod
    def _take_plan(store: Dict[PlanKey, Any], key: PlanKey, kind: str):
        try:
            return store.pop(key)
        except KeyError:
            raise PlanNotFound(
                details={"kind": kind, "requester": key[0], "symbol": key[1]}
            ) from None
