"""
External collaborators consumed by settlement: currency conversion and
bond issuance. Reference implementations live beside the interfaces.
"""

from sovcoin.collaborators.bonds import (
    BondIssuer,
    ClaimAccounts,
    CollaboratorResult,
    SimulatedBondIssuer,
)
from sovcoin.collaborators.converter import (
    CurrencyConverter,
    OracleCurrencyConverter,
    PriceFeed,
    StaticPriceFeed,
)

__all__ = [
    "BondIssuer",
    "ClaimAccounts",
    "CollaboratorResult",
    "CurrencyConverter",
    "OracleCurrencyConverter",
    "PriceFeed",
    "SimulatedBondIssuer",
    "StaticPriceFeed",
]
