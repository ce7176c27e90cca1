"""
sovcoin settlement engine

Planners run first and persist an immutable, time-boxed plan; a second
step consumes and destroys it while moving funds.

- mint:       MintSettlement (quote / commit)
- redemption: RedemptionPlanner and the pure waterfall
- executor:   RedemptionExecutor with the instant → deferred cascade
- preview:    preview_exchange, no state change
"""

from sovcoin.settlement.executor import (
    BondSettlement,
    RedemptionExecutor,
    RedemptionResult,
)
from sovcoin.settlement.mint import MintSettlement
from sovcoin.settlement.preview import ExchangePreview, preview_exchange
from sovcoin.settlement.redemption import (
    RedemptionPlanner,
    Waterfall,
    compute_waterfall,
)

__all__ = [
    "BondSettlement",
    "ExchangePreview",
    "MintSettlement",
    "RedemptionExecutor",
    "RedemptionPlanner",
    "RedemptionResult",
    "Waterfall",
    "compute_waterfall",
    "preview_exchange",
]
