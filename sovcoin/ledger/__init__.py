"""
sovcoin ledger layer

- balances: BalanceLedger, the strict token transfer primitive
- journal:  SettlementJournal, the signed hash-chained event record
"""

from sovcoin.ledger.balances import BalanceLedger
from sovcoin.ledger.journal import (
    EventType,
    JournalEntry,
    JournalReport,
    SettlementJournal,
    load_entries,
    verify_entries,
)

__all__ = [
    "BalanceLedger",
    "EventType",
    "JournalEntry",
    "JournalReport",
    "SettlementJournal",
    "load_entries",
    "verify_entries",
]
