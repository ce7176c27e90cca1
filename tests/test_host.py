"""
tests/test_host.py

Balance ledger and settlement host.

Laws tested:

  LEDGER
    move() is strict: the source must cover the amount
    zero-amount mutations are rejected
    supply tracks mint_to / burn_from exactly
    restore(snapshot()) returns balances and supply to the snapshot

  TRANSACTIONS
    a raise inside transaction() restores ledger and state and drops events
    events are journaled only when the outermost transaction commits
    a failed journal write rolls the transaction back
    nested transactions join the outer one

  PLANS
    one live plan per (requester, symbol) and kind
    an expired plan at the key is replaced, a live one is not
    a plan is expired from created_at + ttl onwards
"""

import logging

import pytest

from sovcoin.core.exceptions import (
    CoinNotFound,
    FactoryNotInitialized,
    InsufficientFunds,
    InvalidAmount,
    LedgerError,
    MathOverflow,
    PlanAlreadyExists,
    PlanNotFound,
)
from sovcoin.core.models import (
    PLAN_TTL_SECONDS,
    SETTLEMENT_ASSET,
    FactoryConfig,
    MintPlan,
    RedeemPlan,
)
from sovcoin.ledger.balances import BalanceLedger
from sovcoin.ledger.journal import EventType
from sovcoin.math.safe_math import U64_MAX


def make_mint_plan(host, requester="alice", symbol="USDs", amount=100) -> MintPlan:
    return MintPlan(
        requester=                requester,
        symbol=                   symbol,
        created_at=               host.now(),
        ttl=                      host.plan_ttl,
        input_amount=             amount,
        sovereign_amount_to_mint= amount,
    )


def make_redeem_plan(host, requester="alice", symbol="USDs") -> RedeemPlan:
    return RedeemPlan(
        requester=        requester,
        symbol=           symbol,
        created_at=       host.now(),
        ttl=              host.plan_ttl,
        sovereign_amount= 10,
    )


# ─────────────────────────────────────────────────────────────
# Balance ledger
# ─────────────────────────────────────────────────────────────

class TestBalanceLedger:

    def test_initial_balances_count_toward_supply(self):
        ledger = BalanceLedger({("a", "USDC"): 5, ("b", "USDC"): 7})
        assert ledger.supply("USDC") == 12
        assert ledger.balance("c", "USDC") == 0

    def test_move(self):
        ledger = BalanceLedger({("a", "USDC"): 10})
        ledger.move("a", "b", "USDC", 4)
        assert ledger.balance("a", "USDC") == 6
        assert ledger.balance("b", "USDC") == 4
        assert ledger.supply("USDC") == 10

    def test_move_is_strict(self):
        ledger = BalanceLedger({("a", "USDC"): 3})
        with pytest.raises(InsufficientFunds) as exc_info:
            ledger.move("a", "b", "USDC", 4)
        assert exc_info.value.details["available"] == 3
        assert ledger.balance("a", "USDC") == 3
        assert ledger.balance("b", "USDC") == 0

    @pytest.mark.parametrize("op", ["move", "mint_to", "burn_from"])
    def test_zero_amount_rejected(self, op):
        ledger = BalanceLedger({("a", "USDC"): 3})
        args = ("a", "b", "USDC", 0) if op == "move" else ("a", "USDC", 0)
        with pytest.raises(InvalidAmount):
            getattr(ledger, op)(*args)

    def test_mint_and_burn_track_supply(self):
        ledger = BalanceLedger()
        ledger.mint_to("a", "USDs", 100)
        ledger.burn_from("a", "USDs", 40)
        assert ledger.balance("a", "USDs") == 60
        assert ledger.supply("USDs") == 60

    def test_burn_more_than_held(self):
        ledger = BalanceLedger()
        ledger.mint_to("a", "USDs", 1)
        with pytest.raises(InsufficientFunds):
            ledger.burn_from("a", "USDs", 2)

    def test_balance_width(self):
        ledger = BalanceLedger()
        ledger.mint_to("a", "USDC", U64_MAX)
        with pytest.raises(MathOverflow):
            ledger.mint_to("b", "USDC", 1)

    def test_snapshot_restore(self):
        ledger = BalanceLedger({("a", "USDC"): 10})
        snap = ledger.snapshot()
        ledger.move("a", "b", "USDC", 10)
        ledger.mint_to("c", "X", 5)
        ledger.restore(snap)
        assert ledger.balance("a", "USDC") == 10
        assert ledger.balance("b", "USDC") == 0
        assert ledger.supply("X") == 0


# ─────────────────────────────────────────────────────────────
# Transactions
# ─────────────────────────────────────────────────────────────

class TestTransactions:

    def test_commit_flushes_events_in_order(self, host):
        with host.transaction("t"):
            host.emit(EventType.MINT_QUOTED, {"n": 1})
            host.emit(EventType.REDEEM_PLANNED, {"n": 2})
            assert len(host.journal) == 0, "events must be buffered until commit"
        entries = host.journal.entries()
        assert [e.event_type for e in entries] == [
            EventType.MINT_QUOTED, EventType.REDEEM_PLANNED,
        ]
        assert host.journal.verify().valid

    def test_rollback_restores_everything(self, host):
        host.ledger.mint_to("a", SETTLEMENT_ASSET, 100)
        with pytest.raises(InsufficientFunds):
            with host.transaction("t"):
                host.ledger.move("a", "b", SETTLEMENT_ASSET, 60)
                host.put_mint_plan(make_mint_plan(host))
                host.emit(EventType.MINT_QUOTED, {})
                host.ledger.move("a", "b", SETTLEMENT_ASSET, 60)

        assert host.ledger.balance("a", SETTLEMENT_ASSET) == 100
        assert host.ledger.balance("b", SETTLEMENT_ASSET) == 0
        assert host.mint_plan("alice", "USDs") is None
        assert len(host.journal) == 0
        assert not host.in_transaction

    def test_rollback_logs_warning(self, host, caplog):
        with caplog.at_level(logging.WARNING, logger="sovcoin"):
            with pytest.raises(PlanNotFound):
                with host.transaction("mint_commit"):
                    host.take_mint_plan("alice", "USDs")
        assert "mint_commit rolled back: PlanNotFound" in caplog.text

    def test_nested_transaction_joins_outer(self, host):
        with host.transaction("outer"):
            with host.transaction("inner"):
                host.emit(EventType.MINT_QUOTED, {})
            assert len(host.journal) == 0
            assert host.in_transaction
        assert len(host.journal) == 1

    def test_inner_failure_rolls_back_outer(self, host):
        host.ledger.mint_to("a", SETTLEMENT_ASSET, 10)
        with pytest.raises(PlanNotFound):
            with host.transaction("outer"):
                host.ledger.move("a", "b", SETTLEMENT_ASSET, 5)
                with host.transaction("inner"):
                    host.take_redeem_plan("alice", "USDs")
        assert host.ledger.balance("a", SETTLEMENT_ASSET) == 10

    def test_emit_outside_transaction_is_immediate(self, host):
        host.emit(EventType.PROTOCOL_FEE_UPDATED, {"fee_bps": 1})
        assert len(host.journal) == 1
        assert host.journal.last_entry.payload == {"fee_bps": "1"}

    def test_failed_journal_write_rolls_back(self, host, tmp_path):
        host.ledger.mint_to("a", SETTLEMENT_ASSET, 100)
        host.journal.path = tmp_path
        with pytest.raises(LedgerError):
            with host.transaction("t"):
                host.ledger.move("a", "b", SETTLEMENT_ASSET, 60)
                host.put_mint_plan(make_mint_plan(host))
                host.emit(EventType.MINT_QUOTED, {})
                host.emit(EventType.REDEEM_PLANNED, {})

        assert host.ledger.balance("a", SETTLEMENT_ASSET) == 100
        assert host.ledger.balance("b", SETTLEMENT_ASSET) == 0
        assert host.mint_plan("alice", "USDs") is None
        assert len(host.journal) == 0
        assert not host.in_transaction

    def test_failed_journal_write_keeps_commit_undone(self, context, tmp_path):
        host = context.host
        context.mint.quote("alice", "USDs", 1_000_000)
        usdc_before = host.ledger.balance("alice", SETTLEMENT_ASSET)
        entries_before = len(host.journal)

        host.journal.path = tmp_path
        with pytest.raises(LedgerError):
            context.mint.commit("alice", "USDs")

        assert host.ledger.balance("alice", "USDs") == 0
        assert host.ledger.balance("alice", SETTLEMENT_ASSET) == usdc_before
        assert host.coin("USDs").total_supply == 0
        assert host.mint_plan("alice", "USDs") is not None
        assert len(host.journal) == entries_before


# ─────────────────────────────────────────────────────────────
# State
# ─────────────────────────────────────────────────────────────

class TestState:

    def test_factory_required(self, host):
        with pytest.raises(FactoryNotInitialized):
            host.factory

    def test_unknown_coin(self, host):
        with pytest.raises(CoinNotFound):
            host.coin("NOPE")

    def test_state_rollback_covers_factory(self, host):
        with pytest.raises(RuntimeError):
            with host.transaction("t"):
                host.state.factory = FactoryConfig("admin", 0, 0, 1, 10_000, 0, 0)
                raise RuntimeError("boom")
        assert host.state.factory is None


# ─────────────────────────────────────────────────────────────
# Plans
# ─────────────────────────────────────────────────────────────

class TestPlanStore:

    def test_default_ttl(self, host):
        assert host.plan_ttl == PLAN_TTL_SECONDS

    def test_put_and_take(self, host):
        plan = make_mint_plan(host)
        host.put_mint_plan(plan)
        assert host.mint_plan("alice", "USDs") is plan
        assert host.take_mint_plan("alice", "USDs") is plan
        assert host.mint_plan("alice", "USDs") is None

    def test_take_missing(self, host):
        with pytest.raises(PlanNotFound):
            host.take_redeem_plan("alice", "USDs")

    def test_one_live_plan_per_key(self, host):
        host.put_mint_plan(make_mint_plan(host))
        with pytest.raises(PlanAlreadyExists):
            host.put_mint_plan(make_mint_plan(host, amount=200))

    def test_kinds_and_keys_are_independent(self, host):
        host.put_mint_plan(make_mint_plan(host))
        host.put_redeem_plan(make_redeem_plan(host))
        host.put_mint_plan(make_mint_plan(host, requester="bob"))
        host.put_mint_plan(make_mint_plan(host, symbol="MXNs"))
        assert len(host.state.mint_plans) == 3
        assert len(host.state.redeem_plans) == 1

    def test_expiry_boundary(self, host, clock):
        plan = make_mint_plan(host)
        clock.advance(PLAN_TTL_SECONDS - 1)
        assert not plan.is_expired(host.now())
        clock.advance(1)
        assert plan.is_expired(host.now())

    def test_expired_plan_is_replaced(self, host, clock):
        host.put_mint_plan(make_mint_plan(host, amount=100))
        clock.advance(PLAN_TTL_SECONDS)
        host.put_mint_plan(make_mint_plan(host, amount=200))
        assert host.mint_plan("alice", "USDs").input_amount == 200

    def test_reclaim_expired_plans(self, host, clock):
        host.put_mint_plan(make_mint_plan(host))
        host.put_redeem_plan(make_redeem_plan(host))
        clock.advance(PLAN_TTL_SECONDS)
        host.put_mint_plan(make_mint_plan(host, requester="bob"))

        assert host.reclaim_expired_plans() == 2
        assert host.mint_plan("alice", "USDs") is None
        assert host.redeem_plan("alice", "USDs") is None
        assert host.mint_plan("bob", "USDs") is not None
        assert host.reclaim_expired_plans() == 0
