"""
sovcoin/__init__.py

sovcoin: settlement engine for reserve-backed sovereign coins

A sovereign coin is a fiat-pegged token collateralized by a tiered
reserve: a liquid settlement-asset reserve, a fee-funded protocol vault,
and bond instruments bought with the rest of every mint.

Every mint and redemption runs in two phases. A quote/plan step computes
an immutable, time-boxed plan; a commit/execute step consumes it exactly
once inside an all-or-nothing host transaction, verifies the observed
balance deltas, and appends a signed event to the settlement journal.
"""

__version__ = "0.1.0"

from sovcoin.core.exceptions import SovCoinError
from sovcoin.core.models import (
    MintPlan,
    RedeemPlan,
    RedemptionPath,
    SovereignCoinState,
)
from sovcoin.runtime.context import SettlementContext
from sovcoin.runtime.host import SettlementHost
from sovcoin.settlement import (
    MintSettlement,
    RedemptionExecutor,
    RedemptionPlanner,
    compute_waterfall,
    preview_exchange,
)

__all__ = [
    # Engines
    "MintSettlement",
    "RedemptionPlanner",
    "RedemptionExecutor",
    "SettlementContext",
    "SettlementHost",
    # Model
    "MintPlan",
    "RedeemPlan",
    "RedemptionPath",
    "SovereignCoinState",
    # Helpers
    "compute_waterfall",
    "preview_exchange",
    # Errors
    "SovCoinError",
]
