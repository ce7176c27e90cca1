"""
tests/test_preview.py

Exchange preview: conversion without state change.
"""

import pytest

from sovcoin.core.exceptions import CoinNotFound, InvalidPreviewInput
from sovcoin.settlement.preview import ExchangePreview, preview_exchange


class TestPreview:

    def test_settlement_input_includes_breakdown(self, context):
        result = preview_exchange(context.host, context.converter, "MXNs", settlement_amount=1_000_000)
        assert result == ExchangePreview(
            settlement_amount= 1_000_000,
            sovereign_amount=  17_250_000,
            protocol_fee=      5_000,
            reserve_amount=    299_495,
            bond_amount=       695_505,
        )

    def test_sovereign_input(self, context):
        result = preview_exchange(context.host, context.converter, "MXNs", sovereign_amount=17_250_000)
        assert result.settlement_amount == 1_000_000
        assert result.protocol_fee is None
        assert result.to_dict() == {"settlement_amount": 1_000_000, "sovereign_amount": 17_250_000}

    def test_neither_input(self, context):
        result = preview_exchange(context.host, context.converter, "MXNs")
        assert result.to_dict() == {"settlement_amount": 0, "sovereign_amount": 0}

    def test_zero_settlement(self, context):
        result = preview_exchange(context.host, context.converter, "MXNs", settlement_amount=0)
        assert (result.sovereign_amount, result.protocol_fee) == (0, None)

    def test_both_inputs(self, context):
        with pytest.raises(InvalidPreviewInput):
            preview_exchange(context.host, context.converter, "MXNs", settlement_amount=1, sovereign_amount=1)

    def test_unknown_coin(self, context):
        with pytest.raises(CoinNotFound):
            preview_exchange(context.host, context.converter, "NOPE", settlement_amount=1)

    def test_preview_is_read_only(self, context):
        entries = len(context.host.journal)
        preview_exchange(context.host, context.converter, "USDs", settlement_amount=1_000_000)
        assert len(context.host.journal) == entries
        assert not context.host.state.mint_plans

    def test_matches_mint_quote(self, context):
        preview = preview_exchange(context.host, context.converter, "USDs", settlement_amount=1_000_000)
        plan = context.mint.quote("alice", "USDs", 1_000_000)
        assert preview.sovereign_amount == plan.sovereign_amount_to_mint
        assert preview.protocol_fee == plan.protocol_fee
        assert preview.reserve_amount == plan.reserve_amount
        assert preview.bond_amount == plan.bond_amount
