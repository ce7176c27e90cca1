"""
sovcoin: Basic Usage Example

Demonstrates:
- Factory setup (fee, reserve ratio, bond mapping, coin)
- Two-phase mint (quote, commit)
- Redemption through the reserve, then through instant bond liquidation
- Deferred claim fallback when the bond market is closed
- Journal verification
"""

from sovcoin.collaborators import ClaimAccounts, OracleCurrencyConverter, StaticPriceFeed
from sovcoin.core.models import SETTLEMENT_ASSET
from sovcoin.core.time import ManualClock
from sovcoin.logging import LoggingOptions, configure_logging
from sovcoin.runtime.context import SettlementContext
from sovcoin.runtime.host import SettlementHost


def main():
    """Basic sovcoin usage."""
    configure_logging(LoggingOptions(level="WARNING"))

    print("=" * 60)
    print("sovcoin: Basic Usage Example")
    print("=" * 60)
    print()

    # 1. Factory
    print("1. Setting up the factory...")
    host = SettlementHost(clock=ManualClock())
    converter = OracleCurrencyConverter({"MXN": StaticPriceFeed("17.25")})
    ctx = SettlementContext.create(host, converter)

    ctx.admin.initialize_factory(
        authority=                 "admin",
        base_reserve_bps=          3000,
        reserve_ratio_numerator=   30,
        reserve_ratio_denominator= 9,
        yield_share_protocol=      2000,
        yield_share_issuer=        3000,
        yield_share_holders=       5000,
        fee_bps=                   50,
    )
    ctx.admin.register_bond_mapping("admin", "MXN", "CETES", 4)
    coin = ctx.admin.create_sovereign_coin("admin", "Sovereign Peso", "MXNs", "MXN", 6)
    print(f"   MXNs requires a {coin.required_reserve_bps} bps liquid reserve")

    host.ledger.mint_to("alice", SETTLEMENT_ASSET, 5_000_000)
    ctx.issuer.fund_sell_liquidity(1_000_000)
    print()

    # 2. Mint
    print("2. Minting...")
    plan = ctx.mint.quote("alice", "MXNs", 2_000_000)
    print(f"   quote: fee={plan.protocol_fee} reserve={plan.reserve_amount} bond={plan.bond_amount}")
    ctx.mint.commit("alice", "MXNs")
    print(f"   alice holds {host.ledger.balance('alice', 'MXNs')} MXNs")
    print()

    # 3. Redeem from the reserve
    print("3. Redeeming a little (reserve only)...")
    ctx.planner.plan("alice", "MXNs", 1_725_000)
    result = ctx.executor.execute("alice", "MXNs")
    print(f"   {result.path.value}: paid out {result.paid_out} {SETTLEMENT_ASSET}")
    print()

    # 4. Redeem into the bond tier
    print("4. Redeeming more than the reserve covers...")
    ctx.planner.plan("alice", "MXNs", 17_250_000)
    result = ctx.executor.execute("alice", "MXNs")
    print(f"   {result.path.value}: paid out {result.paid_out}, {result.bond_received} from bonds")
    print()

    # 5. Bond market closed
    print("5. Redeeming with the bond market closed...")
    ctx.issuer.liquidity_available = False
    ctx.planner.plan("alice", "MXNs", 8_625_000)
    result = ctx.executor.execute(
        "alice", "MXNs", claim_accounts=ClaimAccounts("alice:claims")
    )
    print(f"   {result.path.value}: claim {result.claim.claim_id} for {result.claim.amount}")
    print()

    # 6. Journal
    print("6. Verifying the settlement journal...")
    report = host.journal.verify()
    print(f"   {report.entries} entries, valid={report.valid}")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
