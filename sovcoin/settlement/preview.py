"""
Exchange preview: what a mint or redemption would convert to, without
storing a plan or touching the ledger.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sovcoin.collaborators.converter import CurrencyConverter
from sovcoin.core.exceptions import InvalidPreviewInput
from sovcoin.math.fee import extract_fee
from sovcoin.math.reserve import split_reserve
from sovcoin.runtime.host import SettlementHost


@dataclass(frozen=True)
class ExchangePreview:
    settlement_amount: int
    sovereign_amount:  int
    protocol_fee:      Optional[int] = None
    reserve_amount:    Optional[int] = None
    bond_amount:       Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "settlement_amount": self.settlement_amount,
            "sovereign_amount":  self.sovereign_amount,
        }
        if self.protocol_fee is not None:
            data["protocol_fee"]   = self.protocol_fee
            data["reserve_amount"] = self.reserve_amount
            data["bond_amount"]    = self.bond_amount
        return data


def preview_exchange(
    host:              SettlementHost,
    converter:         CurrencyConverter,
    symbol:            str,
    settlement_amount: Optional[int] = None,
    sovereign_amount:  Optional[int] = None,
) -> ExchangePreview:
    """
    Convert exactly one of the two amounts into the other.

    With a settlement amount, the mint breakdown (fee, reserve, bond) is
    included as well. Both given → InvalidPreviewInput; neither → zeros.
    """
    if settlement_amount is not None and sovereign_amount is not None:
        raise InvalidPreviewInput()
    if settlement_amount is None and sovereign_amount is None:
        return ExchangePreview(settlement_amount=0, sovereign_amount=0)

    coin = host.coin(symbol)

    if sovereign_amount is not None:
        return ExchangePreview(
            settlement_amount= converter.to_settlement(sovereign_amount, coin.currency, coin.decimals),
            sovereign_amount=  sovereign_amount,
        )

    converted = converter.to_target(settlement_amount, coin.currency, coin.decimals)
    if settlement_amount == 0:
        return ExchangePreview(settlement_amount=0, sovereign_amount=converted)

    net, fee = extract_fee(settlement_amount, host.factory.fee_bps)
    reserve_amount, bond_amount = split_reserve(net, coin.required_reserve_bps)
    return ExchangePreview(
        settlement_amount= settlement_amount,
        sovereign_amount=  converted,
        protocol_fee=      fee,
        reserve_amount=    reserve_amount,
        bond_amount=       bond_amount,
    )
