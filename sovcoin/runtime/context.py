"""
Runtime context: one host plus the engines and collaborators wired to it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sovcoin.admin.factory import FactoryAdmin
from sovcoin.collaborators.bonds import SimulatedBondIssuer
from sovcoin.collaborators.converter import OracleCurrencyConverter, StaticPriceFeed
from sovcoin.core.crypto import JournalSigner
from sovcoin.core.time import Clock
from sovcoin.ledger.journal import SettlementJournal
from sovcoin.runtime.host import SettlementHost
from sovcoin.settlement.executor import RedemptionExecutor
from sovcoin.settlement.mint import MintSettlement
from sovcoin.settlement.redemption import RedemptionPlanner


@dataclass
class SettlementContext:
    host:      SettlementHost
    converter: OracleCurrencyConverter
    issuer:    SimulatedBondIssuer
    admin:     FactoryAdmin
    mint:      MintSettlement
    planner:   RedemptionPlanner
    executor:  RedemptionExecutor

    @classmethod
    def create(
        cls,
        host:      SettlementHost,
        converter: OracleCurrencyConverter,
        issuer:    Optional[SimulatedBondIssuer] = None,
    ) -> "SettlementContext":
        issuer = issuer or SimulatedBondIssuer(host.ledger, converter, clock=host.clock)
        return cls(
            host=      host,
            converter= converter,
            issuer=    issuer,
            admin=     FactoryAdmin(host),
            mint=      MintSettlement(host, converter, issuer),
            planner=   RedemptionPlanner(host, converter),
            executor=  RedemptionExecutor(host, converter, issuer),
        )

    @classmethod
    def from_settings(
        cls,
        settings,
        clock:  Optional[Clock] = None,
        signer: Optional[JournalSigner] = None,
    ) -> "SettlementContext":
        """Create a context from loaded Settings and replay its admin setup."""
        if signer is None:
            key_path = Path(settings.journal_key_path) if settings.journal_key_path else None
            if key_path and key_path.exists():
                signer = JournalSigner.from_file(key_path)
            else:
                signer = JournalSigner.generate()
                if key_path:
                    signer.save(key_path)

        journal = SettlementJournal(signer=signer, path=settings.journal_path)
        host = SettlementHost(clock=clock, journal=journal, plan_ttl=settings.plan_ttl_seconds)
        converter = OracleCurrencyConverter(
            {currency: StaticPriceFeed(price) for currency, price in settings.price_feeds.items()}
        )
        context = cls.create(host, converter)

        factory = settings.factory
        context.admin.initialize_factory(
            authority=                 factory.authority,
            base_reserve_bps=          factory.base_reserve_bps,
            reserve_ratio_numerator=   factory.reserve_ratio_numerator,
            reserve_ratio_denominator= factory.reserve_ratio_denominator,
            yield_share_protocol=      factory.yield_share_protocol,
            yield_share_issuer=        factory.yield_share_issuer,
            yield_share_holders=       factory.yield_share_holders,
            fee_bps=                   factory.fee_bps,
        )
        for mapping in settings.bond_mappings:
            context.admin.register_bond_mapping(
                factory.authority,
                mapping.currency,
                mapping.bond_instrument,
                mapping.rating,
                mapping.bond_decimals,
            )
        for coin in settings.coins:
            context.admin.create_sovereign_coin(
                creator=  coin.creator or factory.authority,
                name=     coin.name,
                symbol=   coin.symbol,
                currency= coin.currency,
                decimals= coin.decimals,
                uri=      coin.uri,
            )
        return context

    def __repr__(self) -> str:
        return (
            f"SettlementContext("
            f"coins={sorted(self.host.state.coins)}, "
            f"journal_entries={len(self.host.journal)})"
        )
