"""
sovcoin/core/models.py

Settlement Data Model

═══════════════════════════════════════════════════════════════════
STATE CONTRACTS
═══════════════════════════════════════════════════════════════════

FactoryConfig — singleton
    Created once by initialize_factory(); mutated only by admin
    instructions. fee_bps <= 10000, base_reserve_bps <= 10000,
    reserve_ratio_denominator > 0, at most MAX_BOND_MAPPINGS mappings.

SovereignCoinState — one per coin, keyed by symbol
    required_reserve_bps is computed once at creation and never
    recomputed. total_supply / liquid_reserve_amount /
    bond_collateral_amount are mutated only inside an atomic
    commit/execute, and only through safe_math.

MintPlan / RedeemPlan — ephemeral, keyed by (requester, symbol)
    Immutable once created. Live while created_at + ttl > now.
    Consumed exactly once: the commit/execute that reads a plan also
    deletes it, inside the same transaction.
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sovcoin.core.exceptions import (
    FiatCurrencyTooLong,
    MaxBondMappingsReached,
    NoBondMappingForCurrency,
    StateUpdateFailed,
)
from sovcoin.math.reserve import validate_rating
from sovcoin.math.safe_math import safe_add, safe_sub

# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

PLAN_TTL_SECONDS  = 300
MAX_BOND_MAPPINGS = 6

MAX_NAME_BYTES     = 32
MAX_SYMBOL_BYTES   = 8
MAX_URI_BYTES      = 200
MAX_CURRENCY_BYTES = 8

SETTLEMENT_ASSET = "USDC"
BOND_DECIMALS    = 6

PlanKey = Tuple[str, str]


# ─────────────────────────────────────────────────────────────
# Well-known ledger accounts
# ─────────────────────────────────────────────────────────────

class Accounts:
    """
    Ledger account names owned by the factory.

    The liquid reserve, protocol vault and bond-purchase account are shared
    by every coin; bond holding/ownership accounts are per coin.
    """
    LIQUID_RESERVE  = "factory:liquid_reserve"
    PROTOCOL_VAULT  = "factory:protocol_vault"
    BOND_PURCHASE   = "factory:bond_purchase"

    @staticmethod
    def bond_holding(symbol: str) -> str:
        return f"coin:{symbol}:bond_holding"

    @staticmethod
    def bond_ownership(symbol: str) -> str:
        return f"coin:{symbol}:bond_ownership"


def fits_bytes(text: str, limit: int) -> bool:
    return 0 < len(text.encode("utf-8")) <= limit


# ─────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BondMapping:
    """Active currency → bond instrument mapping with its credit rating."""
    currency:        str
    bond_instrument: str
    rating:          int
    bond_decimals:   int  = BOND_DECIMALS
    active:          bool = True

    def __post_init__(self):
        if not fits_bytes(self.currency, MAX_CURRENCY_BYTES):
            raise FiatCurrencyTooLong(details={"currency": self.currency})
        validate_rating(self.rating)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency":        self.currency,
            "bond_instrument": self.bond_instrument,
            "rating":          self.rating,
            "bond_decimals":   self.bond_decimals,
            "active":          self.active,
        }


@dataclass
class FactoryConfig:
    authority:                 str
    base_reserve_bps:          int
    reserve_ratio_numerator:   int
    reserve_ratio_denominator: int
    yield_share_protocol:      int
    yield_share_issuer:        int
    yield_share_holders:       int
    fee_bps:                   int = 0
    bond_mappings:             List[BondMapping] = field(default_factory=list)
    fee_operators:             List[str] = field(default_factory=list)
    total_sovereign_coins:     int = 0

    def add_mapping(self, mapping: BondMapping) -> None:
        if len(self.bond_mappings) >= MAX_BOND_MAPPINGS:
            raise MaxBondMappingsReached(details={"limit": MAX_BOND_MAPPINGS})
        self.bond_mappings.append(mapping)

    def mapping_for(self, currency: str) -> BondMapping:
        for mapping in self.bond_mappings:
            if mapping.active and mapping.currency == currency:
                return mapping
        raise NoBondMappingForCurrency(details={"currency": currency})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authority":                 self.authority,
            "base_reserve_bps":          self.base_reserve_bps,
            "reserve_ratio_numerator":   self.reserve_ratio_numerator,
            "reserve_ratio_denominator": self.reserve_ratio_denominator,
            "yield_share_protocol":      self.yield_share_protocol,
            "yield_share_issuer":        self.yield_share_issuer,
            "yield_share_holders":       self.yield_share_holders,
            "fee_bps":                   self.fee_bps,
            "bond_mappings":             [m.to_dict() for m in self.bond_mappings],
            "total_sovereign_coins":     self.total_sovereign_coins,
        }


# ─────────────────────────────────────────────────────────────
# Sovereign coin
# ─────────────────────────────────────────────────────────────

@dataclass
class SovereignCoinState:
    """
    Aggregate state of one issued coin.

    cumulative_minted / cumulative_redeemed exist so that the supply
    identity total_supply == minted - redeemed can be checked on every
    mutation rather than trusted.
    """
    symbol:                 str
    name:                   str
    creator:                str
    currency:               str
    bond_instrument:        str
    rating:                 int
    decimals:               int
    required_reserve_bps:   int
    uri:                    str = ""
    bond_decimals:          int = BOND_DECIMALS
    total_supply:           int = 0
    liquid_reserve_amount:  int = 0
    bond_collateral_amount: int = 0
    cumulative_minted:      int = 0
    cumulative_redeemed:    int = 0

    def apply_mint(self, plan: "MintPlan") -> None:
        self.total_supply = safe_add(self.total_supply, plan.sovereign_amount_to_mint)
        self.liquid_reserve_amount = safe_add(self.liquid_reserve_amount, plan.reserve_amount)
        self.bond_collateral_amount = safe_add(self.bond_collateral_amount, plan.bond_amount)
        self.cumulative_minted = safe_add(self.cumulative_minted, plan.sovereign_amount_to_mint)
        self.check_supply_identity()

    def apply_redemption(self, plan: "RedeemPlan", bond_redeemed: int) -> None:
        self.total_supply = safe_sub(self.total_supply, plan.sovereign_amount)
        self.liquid_reserve_amount = safe_sub(self.liquid_reserve_amount, plan.from_liquid_reserve)
        self.bond_collateral_amount = safe_sub(self.bond_collateral_amount, bond_redeemed)
        self.cumulative_redeemed = safe_add(self.cumulative_redeemed, plan.sovereign_amount)
        self.check_supply_identity()

    def check_supply_identity(self) -> None:
        if self.total_supply != self.cumulative_minted - self.cumulative_redeemed:
            raise StateUpdateFailed(
                "Supply identity broken",
                details={
                    "symbol":       self.symbol,
                    "total_supply": self.total_supply,
                    "minted":       self.cumulative_minted,
                    "redeemed":     self.cumulative_redeemed,
                },
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol":                 self.symbol,
            "name":                   self.name,
            "creator":                self.creator,
            "currency":               self.currency,
            "bond_instrument":        self.bond_instrument,
            "rating":                 self.rating,
            "decimals":               self.decimals,
            "required_reserve_bps":   self.required_reserve_bps,
            "uri":                    self.uri,
            "bond_decimals":          self.bond_decimals,
            "total_supply":           self.total_supply,
            "liquid_reserve_amount":  self.liquid_reserve_amount,
            "bond_collateral_amount": self.bond_collateral_amount,
        }


# ─────────────────────────────────────────────────────────────
# Plans
# ─────────────────────────────────────────────────────────────

class RedemptionPath(str, Enum):
    """
    Where a redemption is funded from.

    PENDING_BOND_LIQUIDATION is a plan-time classification only; execution
    resolves it to INSTANT_BOND_REDEMPTION or NFT_BOND_REDEMPTION.
    """
    RESERVE_ONLY             = "ReserveOnly"
    RESERVE_AND_PROTOCOL     = "ReserveAndProtocol"
    PENDING_BOND_LIQUIDATION = "PendingBondLiquidation"
    INSTANT_BOND_REDEMPTION  = "InstantBondRedemption"
    NFT_BOND_REDEMPTION      = "NFTBondRedemption"


@dataclass(frozen=True)
class _Plan:
    requester:  str
    symbol:     str
    created_at: int
    ttl:        int

    @property
    def key(self) -> PlanKey:
        return (self.requester, self.symbol)

    @property
    def expires_at(self) -> int:
        return self.created_at + self.ttl

    def is_expired(self, now: int) -> bool:
        return not (self.expires_at > now)


@dataclass(frozen=True)
class MintPlan(_Plan):
    input_amount:             int = 0
    protocol_fee:             int = 0
    reserve_amount:           int = 0
    bond_amount:              int = 0
    sovereign_amount_to_mint: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requester":                self.requester,
            "symbol":                   self.symbol,
            "input_amount":             self.input_amount,
            "protocol_fee":             self.protocol_fee,
            "reserve_amount":           self.reserve_amount,
            "bond_amount":              self.bond_amount,
            "sovereign_amount_to_mint": self.sovereign_amount_to_mint,
            "created_at":               self.created_at,
            "expires_at":               self.expires_at,
        }


@dataclass(frozen=True)
class RedeemPlan(_Plan):
    sovereign_amount:      int = 0
    gross_settlement:      int = 0
    settlement_amount:     int = 0
    protocol_fee:          int = 0
    from_liquid_reserve:   int = 0
    from_protocol_vault:   int = 0
    from_bond_liquidation: int = 0
    redemption_path:       RedemptionPath = RedemptionPath.RESERVE_ONLY

    def with_path(self, path: RedemptionPath) -> "RedeemPlan":
        return replace(self, redemption_path=path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requester":             self.requester,
            "symbol":                self.symbol,
            "sovereign_amount":      self.sovereign_amount,
            "gross_settlement":      self.gross_settlement,
            "settlement_amount":     self.settlement_amount,
            "protocol_fee":          self.protocol_fee,
            "from_liquid_reserve":   self.from_liquid_reserve,
            "from_protocol_vault":   self.from_protocol_vault,
            "from_bond_liquidation": self.from_bond_liquidation,
            "redemption_path":       self.redemption_path.value,
            "created_at":            self.created_at,
            "expires_at":            self.expires_at,
        }


@dataclass(frozen=True)
class ClaimReceipt:
    """Deferred claim on bond proceeds issued when instant liquidation fails."""
    claim_id:   str
    requester:  str
    symbol:     str
    amount:     int
    issued_at:  int
    account:    Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claim_id":  self.claim_id,
            "requester": self.requester,
            "symbol":    self.symbol,
            "amount":    self.amount,
            "issued_at": self.issued_at,
            "account":   self.account,
        }
